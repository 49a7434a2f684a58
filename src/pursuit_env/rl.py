from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Mapping, Optional, Sequence

import numpy as np

from .world import Direction, TieBreak

if TYPE_CHECKING:
    from .agents import Agent


@dataclass
class LearnerConfig:
    alpha: float = 0.1  # learning rate, 0 learns nothing
    gamma: float = 0.9  # discount factor
    epsilon: float = 0.1  # exploration rate, fixed for the whole run
    n_actions: int = len(Direction)
    tie_break: TieBreak = TieBreak.RANDOM


@dataclass
class Transition:
    state: str
    action: Direction
    reward: float
    next_state: str
    done: bool


class QLearner:
    """Per-agent action-value table with an epsilon-greedy policy.

    Keys are state hashes produced by the owning agent; rows are created
    lazily as zero vectors the first time a hash is seen.
    """

    def __init__(self, config: Optional[LearnerConfig] = None, rng: Optional[np.random.Generator] = None):
        self.config = config or LearnerConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.table: Dict[str, np.ndarray] = {}

    def __len__(self) -> int:
        return len(self.table)

    def init_state(self, state_hash: str) -> np.ndarray:
        if not isinstance(state_hash, str):
            raise TypeError(f"state hash must be a str, got {type(state_hash).__name__}")
        values = self.table.get(state_hash)
        if values is None:
            values = np.zeros(self.config.n_actions, dtype=np.float64)
            self.table[state_hash] = values
        return values

    def choose_action(self, values: Sequence[float]) -> int:
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (self.config.n_actions,):
            raise ValueError(f"expected {self.config.n_actions} action values, got shape {values.shape}")
        if self.rng.random() < self.config.epsilon:
            return int(self.rng.integers(self.config.n_actions))
        candidates = np.flatnonzero(values == values.max())
        if self.config.tie_break == TieBreak.FIRST:
            return int(candidates[0])
        return int(self.rng.choice(candidates))

    def step(self, agent: "Agent") -> Transition:
        """Run one learning step for ``agent``: act, observe the reward, update."""
        current_hash = agent.hash()
        current_values = self.init_state(current_hash)
        action = Direction(self.choose_action(current_values))

        agent.apply_action(action)
        reward = agent.reward()

        new_hash = agent.hash()
        new_values = self.init_state(new_hash)

        # Bootstraps on an epsilon-greedy sample of the next state, not its max.
        bootstrap = new_values[self.choose_action(new_values)]
        current_values[action] += self.config.alpha * (
            reward + self.config.gamma * bootstrap - current_values[action]
        )
        return Transition(
            state=current_hash,
            action=action,
            reward=reward,
            next_state=new_hash,
            done=agent.goal_reached,
        )

    def export_table(self) -> Dict[str, list]:
        return {key: [float(v) for v in values] for key, values in self.table.items()}

    def load_table(self, table: Mapping[str, Sequence[float]]) -> None:
        loaded: Dict[str, np.ndarray] = {}
        for key, values in table.items():
            row = np.asarray(values, dtype=np.float64)
            if row.shape != (self.config.n_actions,):
                raise ValueError(f"row for {key!r} must hold {self.config.n_actions} values")
            loaded[str(key)] = row
        self.table = loaded

    def clear(self) -> None:
        self.table = {}
