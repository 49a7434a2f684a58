"""Turn-based hunter/victim grid world with tabular learning agents."""

from .agents import AGENT_FACTORIES, Agent, AgentConfig, AgentKind, RewardConfig, build_agent  # noqa: F401
from .env import EpisodeResult, EpisodeRunner, RunStats, SimConfig  # noqa: F401
from .rl import LearnerConfig, QLearner, Transition  # noqa: F401
from .state import StateLoadError, export_state, import_state, load_state, save_state  # noqa: F401
from .tasks import ScenarioSpec, build_runner, scenario_presets  # noqa: F401
from .world import Direction, GridWorld, Obstacle, Position, TieBreak  # noqa: F401
