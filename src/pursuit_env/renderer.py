from __future__ import annotations

from typing import Dict, Tuple

import numpy as np

from .agents import AgentKind
from .world import GridWorld

_AGENT_CHARS: Dict[AgentKind, str] = {
    AgentKind.HUNTER: "H",
    AgentKind.SENSING_HUNTER: "S",
    AgentKind.OPTIMIZED_SENSING_HUNTER: "O",
    AgentKind.TEAM_HUNTER: "T",
    AgentKind.VICTIM: "v",
    AgentKind.STILL_VICTIM: "s",
    AgentKind.MANUAL_VICTIM: "m",
}

BACKGROUND = (0, 0, 0)
OBSTACLE = (250, 88, 88)
HUNTER = (255, 255, 255)
VICTIM = (215, 223, 1)


def render_world(world: GridWorld) -> str:
    """Return an ASCII rendering of the grid world."""
    display = [["." for _ in range(world.width)] for _ in range(world.height)]
    for position in world.obstacle_positions():
        display[position.y][position.x] = "#"
    for agent in world.agents:
        display[agent.position.y][agent.position.x] = _AGENT_CHARS[agent.kind]
    return "\n".join("".join(row) for row in display)


def render_world_image(world: GridWorld, cell_size: int = 16) -> np.ndarray:
    """Render the grid world to an RGB image array."""
    h, w = world.height, world.width
    img = np.zeros((h * cell_size, w * cell_size, 3), dtype=np.uint8)
    img[:, :, :] = BACKGROUND

    def fill_cell(x: int, y: int, color: Tuple[int, int, int]):
        img[y * cell_size : (y + 1) * cell_size, x * cell_size : (x + 1) * cell_size, :] = color

    for position in world.obstacle_positions():
        fill_cell(position.x, position.y, OBSTACLE)

    for agent in world.agents:
        fill_cell(agent.position.x, agent.position.y, HUNTER if agent.kind.is_hunter else VICTIM)

    return img
