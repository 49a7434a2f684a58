from __future__ import annotations

import json
import math
import time
from dataclasses import asdict, dataclass, field
from typing import Callable, List, Optional, Tuple

import numpy as np

from .agents import Agent, AgentConfig, AgentKind, MovePolicy, build_agent
from .world import GridWorld, Obstacle, Position


@dataclass
class SimConfig:
    height: int = 10
    width: int = 10
    seed: Optional[int] = None
    final_moves: bool = False  # let every other agent move once more when an episode ends
    max_steps: Optional[int] = None  # truncate episodes that never reach a goal
    agent: AgentConfig = field(default_factory=lambda: AgentConfig())


@dataclass
class EpisodeResult:
    episode: int
    steps: int
    rounds: int
    reached_goal: bool = True


@dataclass
class RunStats:
    episodes_played: int
    player_count: int
    average_steps: Optional[float]
    median_steps: Optional[float]
    chart: List[Tuple[int, float, float]] = field(default_factory=list)


StepHook = Callable[[GridWorld], None]
EpisodeHook = Callable[[RunStats], None]


class EpisodeRunner:
    """Turn-based driver: one agent acts per step, round-robin over the roster.

    An episode ends as soon as any agent reaches its goal. The runner then
    records the result and halts; ``restart()`` reshuffles the agents and
    clears the halt so stepping can continue. ``play_episode`` and ``run``
    chain the two for batch training, with an optional pacing delay that
    only affects wall-clock time.
    """

    def __init__(
        self,
        config: Optional[SimConfig] = None,
        *,
        world: Optional[GridWorld] = None,
        on_step: Optional[StepHook] = None,
        on_episode_end: Optional[EpisodeHook] = None,
        log_path: Optional[str] = None,
    ) -> None:
        self.config = config or SimConfig()
        if world is None:
            world = GridWorld(
                height=self.config.height,
                width=self.config.width,
                rng=np.random.default_rng(self.config.seed),
            )
        self.world = world
        self.on_step = on_step
        self.on_episode_end = on_episode_end
        self.log_path = log_path
        self.steps_played = 0
        self.episodes_played = 0
        self.active_index = -1
        self.halted = False
        self.results: List[EpisodeResult] = []
        self.chart: List[Tuple[int, float, float]] = []

    @property
    def agents(self) -> List[Agent]:
        return self.world.agents

    # Setup ---------------------------------------------------------------
    def add_agent(self, kind: AgentKind, position: Position) -> Agent:
        agent = build_agent(kind, self.world, position, self.config.agent)
        self.world.add_agent(agent)
        return agent

    def add_obstacle(self, position: Position) -> Obstacle:
        return self.world.add_obstacle(position)

    # Stepping --------------------------------------------------------------
    def step(self) -> bool:
        """Advance the next agent by one move. Returns True once the episode is over."""
        if self.halted:
            return True
        if not self.agents:
            raise ValueError("cannot step a simulation without agents")
        self.steps_played += 1
        self.active_index = (self.active_index + 1) % len(self.agents)
        agent = self.agents[self.active_index]
        agent.move()
        if self.on_step is not None:
            self.on_step(self.world)

        if self.is_goal_reached():
            if self.config.final_moves:
                self._final_moves(agent)
            self._finish_episode(reached_goal=True)
            return True
        return False

    def is_goal_reached(self) -> bool:
        return any(agent.goal_reached for agent in self.agents)

    def halt(self) -> None:
        self.halted = True

    def restart(self) -> None:
        """Start a new episode: reshuffle every agent and clear goal flags."""
        self.steps_played = 0
        for agent in self.agents:
            agent.shuffle_position()
            agent.goal_reached = False
        self.halted = False

    def reset(self) -> None:
        """Forget everything learned so far and restart."""
        for agent in self.agents:
            agent.reset_learner()
        self.episodes_played = 0
        self.results = []
        self.chart = []
        self.restart()

    def play_episode(self, delay: float = 0.0) -> Optional[EpisodeResult]:
        """Step until the episode ends, then restart. ``delay`` paces steps in seconds.

        Returns None without restarting when the runner was halted before an
        episode could be recorded.
        """
        if self.config.max_steps is not None and self.config.max_steps <= 0:
            raise ValueError(f"max_steps must be positive, got {self.config.max_steps}")
        recorded = len(self.results)
        while not self.step():
            if self.config.max_steps is not None and self.steps_played >= self.config.max_steps:
                self._finish_episode(reached_goal=False)
                break
            if delay > 0:
                time.sleep(delay)
        if len(self.results) == recorded:
            return None
        result = self.results[-1]
        self.restart()
        return result

    def run(self, n_episodes: int, delay: float = 0.0) -> RunStats:
        """Play ``n_episodes`` back to back, stopping early if halted."""
        if n_episodes < 0:
            raise ValueError(f"n_episodes must be non-negative, got {n_episodes}")
        for _ in range(n_episodes):
            if self.play_episode(delay=delay) is None:
                break
        return self.stats()

    # Statistics ------------------------------------------------------------
    def stats(self) -> RunStats:
        rounds = [result.rounds for result in self.results if result.reached_goal]
        average = float(np.mean(rounds)) if rounds else None
        median = float(np.median(rounds)) if rounds else None
        return RunStats(
            episodes_played=self.episodes_played,
            player_count=len(self.agents),
            average_steps=average,
            median_steps=median,
            chart=list(self.chart),
        )

    def load_history(self, results: List[EpisodeResult], episodes_played: int) -> None:
        self.results = list(results)
        self.episodes_played = episodes_played
        self.chart = []
        rounds: List[int] = []
        for result in self.results:
            if not result.reached_goal:
                continue
            rounds.append(result.rounds)
            self.chart.append((result.episode, float(np.mean(rounds)), float(np.median(rounds))))
        self.steps_played = 0
        self.active_index = -1
        self.halted = False

    # Internal helpers
    def _final_moves(self, last: Agent) -> None:
        for agent in self.agents:
            if agent is last or agent.policy == MovePolicy.EXTERNAL:
                continue
            agent.move()
        if self.on_step is not None:
            self.on_step(self.world)

    def _finish_episode(self, reached_goal: bool) -> None:
        self.episodes_played += 1
        result = EpisodeResult(
            episode=self.episodes_played,
            steps=self.steps_played,
            rounds=math.ceil(self.steps_played / len(self.agents)),
            reached_goal=reached_goal,
        )
        self.results.append(result)
        stats = self.stats()
        if stats.average_steps is not None:
            self.chart.append((self.episodes_played, stats.average_steps, stats.median_steps))
            stats.chart = list(self.chart)
        self.halted = True
        if self.log_path:
            log_payload = asdict(result)
            log_payload["table_sizes"] = [len(agent.learner) for agent in self.agents]
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(log_payload) + "\n")
        if self.on_episode_end is not None:
            self.on_episode_end(stats)
