"""Export and import of a simulation's learned state.

Document layout (``version`` 1)::

    {
      "version": 1,
      "world": {"height": int, "width": int, "obstacles": [{"x": int, "y": int}, ...]},
      "episodesPlayed": int,
      "results": [{"episode": int, "steps": int, "rounds": int, "reachedGoal": bool}, ...],
      "agents": [{"agentKind": str, "stateTable": {hash: [4 floats]}, "position": {"x": int, "y": int}}, ...]
    }

``world`` is optional on import; when present it must match the receiving
world. Every other top-level field is required. Imports are all or nothing.
"""

from __future__ import annotations

import json
import math
import numbers
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from .agents import Agent, build_agent, parse_kind
from .env import EpisodeResult, EpisodeRunner
from .world import Direction, Position

STATE_VERSION = 1
REQUIRED_FIELDS = ("episodesPlayed", "results", "agents")
REQUIRED_AGENT_FIELDS = ("agentKind", "stateTable", "position")


class StateLoadError(ValueError):
    """Raised when a persisted simulation state cannot be restored."""


def export_state(runner: EpisodeRunner) -> Dict[str, Any]:
    world = runner.world
    return {
        "version": STATE_VERSION,
        "world": {
            "height": world.height,
            "width": world.width,
            "obstacles": [position.to_dict() for position in world.obstacle_positions()],
        },
        "episodesPlayed": runner.episodes_played,
        "results": [
            {
                "episode": result.episode,
                "steps": result.steps,
                "rounds": result.rounds,
                "reachedGoal": result.reached_goal,
            }
            for result in runner.results
        ],
        "agents": [
            {
                "agentKind": agent.kind.value,
                "stateTable": agent.learner.export_table(),
                "position": agent.position.to_dict(),
            }
            for agent in runner.agents
        ],
    }


def import_state(runner: EpisodeRunner, document: Mapping[str, Any]) -> None:
    """Replace the runner's agents and history with those in ``document``."""
    if not isinstance(document, Mapping):
        raise StateLoadError("state document must be a JSON object")
    missing = [name for name in REQUIRED_FIELDS if name not in document]
    if missing:
        raise StateLoadError(f"state document is missing required fields: {missing}")
    version = document.get("version", STATE_VERSION)
    if version != STATE_VERSION:
        raise StateLoadError(f"unsupported state version {version!r}")
    if "world" in document:
        _check_world(runner, document["world"])

    episodes_played = _as_int(document["episodesPlayed"], "episodesPlayed")
    results = _parse_results(document["results"])
    agents = _build_agents(runner, document["agents"])

    runner.world.agents = agents
    runner.load_history(results, episodes_played)


def save_state(runner: EpisodeRunner, path: Union[str, Path]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(export_state(runner), f)


def load_state(runner: EpisodeRunner, path: Union[str, Path]) -> None:
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except json.JSONDecodeError as exc:
        raise StateLoadError(f"{path} is not valid JSON: {exc}") from exc
    import_state(runner, document)


# Validation helpers --------------------------------------------------------
def _as_int(value: Any, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise StateLoadError(f"{label} must be an integer, got {value!r}")
    return int(value)


def _as_bool(value: Any, label: str) -> bool:
    if not isinstance(value, bool):
        raise StateLoadError(f"{label} must be a boolean, got {value!r}")
    return value


def _as_position(value: Any, label: str) -> Position:
    if not isinstance(value, Mapping) or "x" not in value or "y" not in value:
        raise StateLoadError(f"{label} must be an object with x and y")
    return Position(_as_int(value["x"], f"{label}.x"), _as_int(value["y"], f"{label}.y"))


def _check_world(runner: EpisodeRunner, world_doc: Any) -> None:
    if not isinstance(world_doc, Mapping):
        raise StateLoadError("world must be an object")
    world = runner.world
    height = _as_int(world_doc.get("height"), "world.height")
    width = _as_int(world_doc.get("width"), "world.width")
    if (height, width) != (world.height, world.width):
        raise StateLoadError(
            f"state was saved for a {width}x{height} grid, this world is {world.width}x{world.height}"
        )
    obstacles = world_doc.get("obstacles", [])
    if not isinstance(obstacles, list):
        raise StateLoadError("world.obstacles must be a list")
    saved = {_as_position(item, "world.obstacles[]") for item in obstacles}
    if saved != set(world.obstacle_positions()):
        raise StateLoadError("saved obstacle layout does not match this world")


def _parse_results(raw: Any) -> List[EpisodeResult]:
    if not isinstance(raw, list):
        raise StateLoadError("results must be a list")
    results: List[EpisodeResult] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, Mapping):
            raise StateLoadError(f"results[{idx}] must be an object")
        for name in ("episode", "steps", "rounds"):
            if name not in item:
                raise StateLoadError(f"results[{idx}] is missing {name!r}")
        results.append(
            EpisodeResult(
                episode=_as_int(item["episode"], f"results[{idx}].episode"),
                steps=_as_int(item["steps"], f"results[{idx}].steps"),
                rounds=_as_int(item["rounds"], f"results[{idx}].rounds"),
                reached_goal=_as_bool(item.get("reachedGoal", True), f"results[{idx}].reachedGoal"),
            )
        )
    return results


def _parse_table(raw: Any, label: str) -> Dict[str, List[float]]:
    if not isinstance(raw, Mapping):
        raise StateLoadError(f"{label} must be an object")
    table: Dict[str, List[float]] = {}
    for key, row in raw.items():
        if not isinstance(row, list) or len(row) != len(Direction):
            raise StateLoadError(f"{label}[{key!r}] must be a list of {len(Direction)} numbers")
        for value in row:
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise StateLoadError(f"{label}[{key!r}] holds a non-numeric value {value!r}")
            if not math.isfinite(value):
                raise StateLoadError(f"{label}[{key!r}] holds a non-finite value {value!r}")
        table[str(key)] = [float(value) for value in row]
    return table


def _build_agents(runner: EpisodeRunner, raw: Any) -> List[Agent]:
    if not isinstance(raw, list):
        raise StateLoadError("agents must be a list")
    world = runner.world
    agents: List[Agent] = []
    taken = set()
    for idx, item in enumerate(raw):
        label = f"agents[{idx}]"
        if not isinstance(item, Mapping):
            raise StateLoadError(f"{label} must be an object")
        missing = [name for name in REQUIRED_AGENT_FIELDS if name not in item]
        if missing:
            raise StateLoadError(f"{label} is missing required fields: {missing}")
        try:
            kind = parse_kind(item["agentKind"])
        except ValueError as exc:
            raise StateLoadError(f"{label}: {exc}") from exc
        position = _as_position(item["position"], f"{label}.position")
        if not world.in_bounds(position) or world.is_obstacle(position) or position in taken:
            raise StateLoadError(f"{label}.position {position} is out of bounds or occupied")
        taken.add(position)
        table = _parse_table(item["stateTable"], f"{label}.stateTable")

        agent = build_agent(kind, world, position, runner.config.agent)
        agent.learner.load_table(table)
        agents.append(agent)
    return agents
