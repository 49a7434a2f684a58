from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, List, Optional

from .rl import LearnerConfig, QLearner, Transition
from .world import Direction, GridWorld, Position, TieBreak


class AgentKind(Enum):
    HUNTER = "hunter"
    SENSING_HUNTER = "sensing_hunter"
    OPTIMIZED_SENSING_HUNTER = "optimized_sensing_hunter"
    TEAM_HUNTER = "team_hunter"
    VICTIM = "victim"
    STILL_VICTIM = "still_victim"
    MANUAL_VICTIM = "manual_victim"

    @property
    def is_hunter(self) -> bool:
        return self in (
            AgentKind.HUNTER,
            AgentKind.SENSING_HUNTER,
            AgentKind.OPTIMIZED_SENSING_HUNTER,
            AgentKind.TEAM_HUNTER,
        )

    @property
    def is_victim(self) -> bool:
        return not self.is_hunter


class MovePolicy(Enum):
    LEARN = auto()
    RANDOM = auto()
    STILL = auto()
    EXTERNAL = auto()


@dataclass
class RewardConfig:
    capture_reward: float = 100.0
    step_penalty: float = -1.0
    capture_distance: int = 1


@dataclass
class AgentConfig:
    sight: int = 10  # max Manhattan distance at which victims are sensed
    tie_break: TieBreak = TieBreak.RANDOM
    reward: RewardConfig = field(default_factory=lambda: RewardConfig())
    learner: LearnerConfig = field(default_factory=lambda: LearnerConfig())


# Hashing strategies --------------------------------------------------------
class PositionHash:
    def state_hash(self, agent: "Agent") -> str:
        return agent.position.hash()


@dataclass
class SensingHash:
    """Position plus what the agent senses about each victim in sight.

    Per sensed victim the hash gains ``>N`` (direction index), optionally
    ``@D`` (distance) and ``~N`` / ``~-`` (the team peer's sensed direction).
    """

    include_distance: bool = False
    include_peer: bool = False

    def state_hash(self, agent: "Agent") -> str:
        parts = [agent.position.hash()]
        for victim in agent.world.victims():
            direction = agent.sense(victim)
            if direction is None:
                continue
            parts.append(f">{int(direction)}")
            if self.include_distance:
                parts.append(f"@{agent.position.distance(victim.position)}")
            if self.include_peer:
                peer_direction = agent.peer_sense(victim)
                parts.append("~-" if peer_direction is None else f"~{int(peer_direction)}")
        return "".join(parts)


# Reward strategies ---------------------------------------------------------
@dataclass
class CaptureReward:
    config: RewardConfig = field(default_factory=RewardConfig)

    def evaluate(self, agent: "Agent") -> float:
        for victim in agent.world.victims():
            if agent.position.distance(victim.position) <= self.config.capture_distance:
                agent.goal_reached = True
                return self.config.capture_reward
        agent.goal_reached = False
        return self.config.step_penalty


class NoReward:
    def evaluate(self, agent: "Agent") -> float:
        return 0.0


class Agent:
    """A hunter or victim occupying one cell of a :class:`GridWorld`.

    Behaviour is composed rather than inherited: ``hasher`` builds the state
    hash, ``rewarder`` scores the current state and ``policy`` decides how a
    turn is taken.
    """

    def __init__(
        self,
        kind: AgentKind,
        position: Position,
        world: GridWorld,
        *,
        hasher,
        rewarder,
        policy: MovePolicy,
        config: Optional[AgentConfig] = None,
    ) -> None:
        if not isinstance(kind, AgentKind):
            raise TypeError(f"kind must be an AgentKind, got {type(kind).__name__}")
        if not isinstance(position, Position):
            raise TypeError(f"position must be a Position, got {type(position).__name__}")
        if not isinstance(world, GridWorld):
            raise TypeError(f"world must be a GridWorld, got {type(world).__name__}")
        self.kind = kind
        self.position = position
        self.start_position = position
        self.world = world
        self.hasher = hasher
        self.rewarder = rewarder
        self.policy = policy
        self.config = config or AgentConfig()
        self.goal_reached = False
        self.learner = QLearner(self.config.learner, rng=world.rng)

    def __repr__(self) -> str:
        return f"Agent(kind={self.kind.value}, position=({self.position.x}, {self.position.y}))"

    def move(self) -> Optional[Transition]:
        """Take one turn according to the agent's policy."""
        if self.policy == MovePolicy.LEARN:
            return self.learner.step(self)
        if self.policy in (MovePolicy.RANDOM, MovePolicy.STILL):
            self.apply_action(Direction(int(self.world.rng.integers(len(Direction)))))
        return None

    def apply_action(self, direction: Direction) -> Position:
        direction = Direction.coerce(direction)
        if self.policy in (MovePolicy.STILL, MovePolicy.EXTERNAL):
            return self.position
        self.position = self.world.resolve_move(self.position, self.position.move(direction))
        return self.position

    def hash(self) -> str:
        return self.hasher.state_hash(self)

    def reward(self) -> float:
        return self.rewarder.evaluate(self)

    def sense(self, other: "Agent") -> Optional[Direction]:
        return self.position.direction_to(
            other.position,
            self.config.sight,
            tie_break=self.config.tie_break,
            rng=self.world.rng,
        )

    def team_peer(self) -> Optional["Agent"]:
        for agent in self.world.agents:
            if agent is not self and agent.kind == AgentKind.TEAM_HUNTER:
                return agent
        return None

    def peer_sense(self, victim: "Agent") -> Optional[Direction]:
        peer = self.team_peer()
        if peer is None:
            return None
        return peer.sense(victim)

    def is_stuck(self) -> bool:
        return all(
            self.world.resolve_move(self.position, self.position.move(direction)) == self.position
            for direction in Direction
        )

    def shuffle_position(self) -> Position:
        # Lands on a random cell; stays put when that cell is taken.
        if self.policy != MovePolicy.EXTERNAL:
            self.position = self.world.resolve_move(self.position, self.world.random_cell())
        return self.position

    def reset_learner(self) -> None:
        self.learner = QLearner(self.config.learner, rng=self.world.rng)


AgentFactory = Callable[[GridWorld, Position, AgentConfig], Agent]


def make_hunter(world: GridWorld, position: Position, config: AgentConfig) -> Agent:
    return Agent(
        AgentKind.HUNTER,
        position,
        world,
        hasher=PositionHash(),
        rewarder=CaptureReward(config.reward),
        policy=MovePolicy.LEARN,
        config=config,
    )


def make_sensing_hunter(world: GridWorld, position: Position, config: AgentConfig) -> Agent:
    return Agent(
        AgentKind.SENSING_HUNTER,
        position,
        world,
        hasher=SensingHash(),
        rewarder=CaptureReward(config.reward),
        policy=MovePolicy.LEARN,
        config=config,
    )


def make_optimized_sensing_hunter(world: GridWorld, position: Position, config: AgentConfig) -> Agent:
    return Agent(
        AgentKind.OPTIMIZED_SENSING_HUNTER,
        position,
        world,
        hasher=SensingHash(include_distance=True),
        rewarder=CaptureReward(config.reward),
        policy=MovePolicy.LEARN,
        config=config,
    )


def make_team_hunter(world: GridWorld, position: Position, config: AgentConfig) -> Agent:
    return Agent(
        AgentKind.TEAM_HUNTER,
        position,
        world,
        hasher=SensingHash(include_peer=True),
        rewarder=CaptureReward(config.reward),
        policy=MovePolicy.LEARN,
        config=config,
    )


def make_victim(world: GridWorld, position: Position, config: AgentConfig) -> Agent:
    return Agent(
        AgentKind.VICTIM,
        position,
        world,
        hasher=PositionHash(),
        rewarder=NoReward(),
        policy=MovePolicy.RANDOM,
        config=config,
    )


def make_still_victim(world: GridWorld, position: Position, config: AgentConfig) -> Agent:
    return Agent(
        AgentKind.STILL_VICTIM,
        position,
        world,
        hasher=PositionHash(),
        rewarder=NoReward(),
        policy=MovePolicy.STILL,
        config=config,
    )


def make_manual_victim(world: GridWorld, position: Position, config: AgentConfig) -> Agent:
    return Agent(
        AgentKind.MANUAL_VICTIM,
        position,
        world,
        hasher=PositionHash(),
        rewarder=NoReward(),
        policy=MovePolicy.EXTERNAL,
        config=config,
    )


AGENT_FACTORIES: Dict[AgentKind, AgentFactory] = {
    AgentKind.HUNTER: make_hunter,
    AgentKind.SENSING_HUNTER: make_sensing_hunter,
    AgentKind.OPTIMIZED_SENSING_HUNTER: make_optimized_sensing_hunter,
    AgentKind.TEAM_HUNTER: make_team_hunter,
    AgentKind.VICTIM: make_victim,
    AgentKind.STILL_VICTIM: make_still_victim,
    AgentKind.MANUAL_VICTIM: make_manual_victim,
}


def parse_kind(value: object) -> AgentKind:
    if isinstance(value, AgentKind):
        return value
    try:
        return AgentKind(value)
    except ValueError:
        known: List[str] = [kind.value for kind in AgentKind]
        raise ValueError(f"unknown agent kind {value!r}; expected one of {known}") from None


def build_agent(
    kind: AgentKind,
    world: GridWorld,
    position: Position,
    config: Optional[AgentConfig] = None,
) -> Agent:
    factory = AGENT_FACTORIES[parse_kind(kind)]
    return factory(world, position, config or AgentConfig())
