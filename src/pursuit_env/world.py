from __future__ import annotations

import numbers
from dataclasses import dataclass
from enum import Enum, IntEnum, auto
from typing import TYPE_CHECKING, Iterable, List, Optional, Set, Tuple

import numpy as np

if TYPE_CHECKING:
    from .agents import Agent, AgentKind


class Direction(IntEnum):
    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3

    @property
    def delta(self) -> Tuple[int, int]:
        if self == Direction.UP:
            return (0, -1)
        if self == Direction.RIGHT:
            return (1, 0)
        if self == Direction.DOWN:
            return (0, 1)
        return (-1, 0)

    @classmethod
    def coerce(cls, value: object) -> "Direction":
        """Accept a Direction or an action index in [0, 4)."""
        if isinstance(value, Direction):
            return value
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise TypeError(f"direction must be a Direction or int action index, got {type(value).__name__}")
        if not 0 <= int(value) < len(cls):
            raise ValueError(f"action index {value} out of range [0, {len(cls)})")
        return cls(int(value))


class TieBreak(Enum):
    RANDOM = auto()
    FIRST = auto()


_default_rng = np.random.default_rng()


def _check_coord(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise TypeError(f"Position.{name} must be an integer, got {type(value).__name__}")
    return int(value)


@dataclass(frozen=True)
class Position:
    x: int
    y: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", _check_coord("x", self.x))
        object.__setattr__(self, "y", _check_coord("y", self.y))

    def move(self, direction: Direction) -> "Position":
        dx, dy = Direction.coerce(direction).delta
        return Position(self.x + dx, self.y + dy)

    def distance(self, other: "Position") -> int:
        _require_position(other)
        return abs(other.x - self.x) + abs(other.y - self.y)

    def direction_to(
        self,
        other: "Position",
        max_sight: Optional[int] = None,
        *,
        tie_break: TieBreak = TieBreak.RANDOM,
        rng: Optional[np.random.Generator] = None,
    ) -> Optional[Direction]:
        """Return a direction that closes the distance to ``other``.

        ``None`` when ``other`` is this position or lies beyond ``max_sight``.
        With two candidate axes the pick is uniform unless ``tie_break`` is
        ``TieBreak.FIRST``, which prefers the horizontal one.
        """
        _require_position(other)
        if self == other:
            return None
        if max_sight is not None and self.distance(other) > max_sight:
            return None
        candidates: List[Direction] = []
        if self.x < other.x:
            candidates.append(Direction.RIGHT)
        elif self.x > other.x:
            candidates.append(Direction.LEFT)
        if self.y < other.y:
            candidates.append(Direction.DOWN)
        elif self.y > other.y:
            candidates.append(Direction.UP)
        if tie_break == TieBreak.FIRST or len(candidates) == 1:
            return candidates[0]
        rng = rng if rng is not None else _default_rng
        return candidates[int(rng.integers(len(candidates)))]

    def hash(self) -> str:
        return f"{self.x},{self.y}"

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


def _require_position(value: object) -> None:
    if not isinstance(value, Position):
        raise TypeError(f"expected Position, got {type(value).__name__}")


@dataclass(frozen=True)
class Obstacle:
    position: Position

    def __post_init__(self) -> None:
        _require_position(self.position)


class GridWorld:
    """Bounded grid with fixed obstacles and an ordered agent roster.

    Roster order is the turn order. The world also owns the random generator
    shared by every agent and learner living in it.
    """

    def __init__(self, height: int, width: int, rng: Optional[np.random.Generator] = None):
        for name, value in (("height", height), ("width", width)):
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        self.height = int(height)
        self.width = int(width)
        self.obstacles: List[Obstacle] = []
        self._blocked: Set[Position] = set()
        self.agents: List["Agent"] = []
        self.rng = rng if rng is not None else np.random.default_rng()

    def in_bounds(self, position: Position) -> bool:
        _require_position(position)
        return 0 <= position.x < self.width and 0 <= position.y < self.height

    def is_obstacle(self, position: Position) -> bool:
        return position in self._blocked

    def is_occupied(self, position: Position) -> bool:
        return any(agent.position == position for agent in self.agents)

    def is_free(self, position: Position) -> bool:
        return self.in_bounds(position) and not self.is_obstacle(position) and not self.is_occupied(position)

    def resolve_move(self, current: Position, desired: Position) -> Position:
        """Return ``desired`` when it can be entered, else ``current``."""
        _require_position(current)
        _require_position(desired)
        if self.is_free(desired):
            return desired
        return current

    def add_obstacle(self, position: Position) -> Obstacle:
        _require_position(position)
        if not self.in_bounds(position):
            raise ValueError(f"obstacle {position} lies outside the {self.width}x{self.height} grid")
        if self.is_obstacle(position) or self.is_occupied(position):
            raise ValueError(f"cannot place obstacle on occupied cell {position}")
        obstacle = Obstacle(position)
        self.obstacles.append(obstacle)
        self._blocked.add(position)
        return obstacle

    def add_agent(self, agent: "Agent") -> None:
        if not self.is_free(agent.position):
            raise ValueError(f"cannot place agent on {agent.position}: cell is out of bounds or occupied")
        self.agents.append(agent)

    def random_cell(self) -> Position:
        return Position(int(self.rng.integers(self.width)), int(self.rng.integers(self.height)))

    # Read-only queries -------------------------------------------------
    def agents_of_kind(self, *kinds: "AgentKind") -> List["Agent"]:
        return [agent for agent in self.agents if agent.kind in kinds]

    def victims(self) -> List["Agent"]:
        return [agent for agent in self.agents if agent.kind.is_victim]

    def hunters(self) -> List["Agent"]:
        return [agent for agent in self.agents if agent.kind.is_hunter]

    def nearest_victim(self, position: Position) -> Optional["Agent"]:
        victims = self.victims()
        if not victims:
            return None
        return min(victims, key=lambda victim: position.distance(victim.position))

    def obstacle_positions(self) -> Iterable[Position]:
        return [obstacle.position for obstacle in self.obstacles]
