"""
Train a scenario in batch mode, then replay a few paced episodes while
recording every step, and save the replay as an animated GIF.
"""

import argparse
from copy import deepcopy
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

import imageio.v3 as iio

from pursuit_env import build_runner, scenario_presets
from pursuit_env.renderer import render_world_image


def save_animation(frames, path: Path, delay: float) -> None:
    """Persist frames to disk as a GIF (or other imageio-supported format)."""
    if not frames:
        return
    durations = [delay for _ in frames]
    iio.imwrite(path, frames, duration=durations)
    print(f"Saved animation to {path}")


def main():
    parser = argparse.ArgumentParser(description="Render a short replay of a trained pursuit scenario.")
    parser.add_argument("--task", type=str, default="sensing_hunt", choices=list(scenario_presets().keys()))
    parser.add_argument("--train_episodes", type=int, default=300, help="Unpaced episodes before recording.")
    parser.add_argument("--replay_episodes", type=int, default=3, help="Episodes recorded into the animation.")
    parser.add_argument("--max_steps", type=int, default=400, help="Truncate training and replay episodes after this many steps.")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--step_delay", type=float, default=0.0, help="Pacing delay between replay steps (seconds).")
    parser.add_argument("--animate_delay", type=float, default=0.1, help="Delay between animation frames (seconds).")
    parser.add_argument("--save_animation", type=str, default="local_run.gif", help="Output animation file path.")
    parser.add_argument("--cell_size", type=int, default=16, help="Pixel size per grid cell in the render.")
    args = parser.parse_args()

    spec = deepcopy(scenario_presets()[args.task])
    spec.config.seed = args.seed
    spec.config.max_steps = args.max_steps

    frames = []

    def record(world):
        if recording:
            frames.append(render_world_image(world, cell_size=args.cell_size))

    def report(stats):
        print(f"episode {stats.episodes_played}: avg_rounds={stats.average_steps}, median_rounds={stats.median_steps}")

    recording = False
    runner = build_runner(spec, on_step=record)
    stats = runner.run(args.train_episodes)
    print(f"Trained {stats.episodes_played} episodes on {args.task}: avg_rounds={stats.average_steps}")

    recording = True
    runner.on_episode_end = report
    runner.run(args.replay_episodes, delay=args.step_delay)

    save_animation(frames, Path(args.save_animation).resolve(), delay=args.animate_delay)


if __name__ == "__main__":
    main()
