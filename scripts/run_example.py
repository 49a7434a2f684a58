import argparse
from copy import deepcopy

from pursuit_env import build_runner, load_state, save_state, scenario_presets
from pursuit_env.renderer import render_world


def main():
    parser = argparse.ArgumentParser(description="Train hunters on a pursuit scenario in batch mode.")
    parser.add_argument("--task", type=str, default="hunter_vs_victim", choices=list(scenario_presets().keys()))
    parser.add_argument("--episodes", type=int, default=200)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--final_moves", action="store_true", help="Give every other agent one last move per episode.")
    parser.add_argument("--max_steps", type=int, default=None, help="Truncate episodes after this many steps.")
    parser.add_argument("--log_path", type=str, default=None, help="Optional JSONL log file.")
    parser.add_argument("--load_state", type=str, default=None, help="Resume from a saved state file.")
    parser.add_argument("--save_state", type=str, default=None, help="Save the learned state here at the end.")
    parser.add_argument("--report_every", type=int, default=20)
    parser.add_argument("--render_every", type=int, default=0, help="If >0, print the world every N episodes.")
    args = parser.parse_args()

    spec = deepcopy(scenario_presets()[args.task])
    spec.config.seed = args.seed
    spec.config.final_moves = args.final_moves
    spec.config.max_steps = args.max_steps
    runner = build_runner(spec, log_path=args.log_path)
    if args.load_state:
        load_state(runner, args.load_state)
        print(f"Resumed {args.load_state} at episode {runner.episodes_played}")

    for ep in range(args.episodes):
        result = runner.play_episode()
        if result is None:
            break
        if args.report_every and (ep + 1) % args.report_every == 0:
            stats = runner.stats()
            tables = [len(agent.learner) for agent in runner.agents]
            print(
                f"Episode {result.episode}: rounds={result.rounds}, goal={result.reached_goal}, "
                f"avg_rounds={stats.average_steps}, median_rounds={stats.median_steps}, table_sizes={tables}"
            )
        if args.render_every and (ep + 1) % args.render_every == 0:
            print(render_world(runner.world))

    if args.save_state:
        save_state(runner, args.save_state)
        print(f"Saved state to {args.save_state}")


if __name__ == "__main__":
    main()
