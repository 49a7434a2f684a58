from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .agents import AgentKind
from .env import EpisodeRunner, SimConfig
from .world import Position


@dataclass
class ScenarioSpec:
    name: str
    description: str
    config: SimConfig
    roster: List[Tuple[AgentKind, Position]]
    obstacles: List[Position] = field(default_factory=list)


def _wall(x: int, ys: range) -> List[Position]:
    return [Position(x, y) for y in ys]


def scenario_presets() -> Dict[str, ScenarioSpec]:
    """Return the predefined pursuit setups keyed by name."""
    return {
        "hunter_vs_victim": ScenarioSpec(
            name="hunter_vs_victim",
            description="Position-only hunter chasing a randomly moving victim on an open grid.",
            config=SimConfig(height=10, width=10),
            roster=[
                (AgentKind.HUNTER, Position(0, 0)),
                (AgentKind.VICTIM, Position(9, 9)),
            ],
        ),
        "sensing_hunt": ScenarioSpec(
            name="sensing_hunt",
            description="Hunter that senses the victim's direction within its sight range.",
            config=SimConfig(height=10, width=10),
            roster=[
                (AgentKind.SENSING_HUNTER, Position(0, 0)),
                (AgentKind.VICTIM, Position(9, 9)),
            ],
            obstacles=[Position(4, 4), Position(5, 4), Position(4, 5)],
        ),
        "walled_still_victim": ScenarioSpec(
            name="walled_still_victim",
            description="Distance-aware hunter looking for a motionless victim behind a partial wall.",
            config=SimConfig(height=12, width=12),
            roster=[
                (AgentKind.OPTIMIZED_SENSING_HUNTER, Position(0, 0)),
                (AgentKind.STILL_VICTIM, Position(10, 6)),
            ],
            obstacles=_wall(6, range(2, 10)),
        ),
        "team_hunt": ScenarioSpec(
            name="team_hunt",
            description="Two team hunters sharing their sensed directions while chasing one victim.",
            config=SimConfig(height=12, width=12),
            roster=[
                (AgentKind.TEAM_HUNTER, Position(0, 0)),
                (AgentKind.TEAM_HUNTER, Position(11, 0)),
                (AgentKind.VICTIM, Position(6, 11)),
            ],
        ),
    }


def build_runner(spec: ScenarioSpec, **runner_kwargs) -> EpisodeRunner:
    """Create a runner with the scenario's obstacles and agents in place."""
    runner = EpisodeRunner(config=deepcopy(spec.config), **runner_kwargs)
    for position in spec.obstacles:
        runner.add_obstacle(position)
    for kind, position in spec.roster:
        runner.add_agent(kind, position)
    return runner
