import json
import pathlib
import sys

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

from pursuit_env import (  # noqa: E402
    AgentConfig,
    AgentKind,
    EpisodeRunner,
    LearnerConfig,
    Position,
    SimConfig,
    TieBreak,
)
import pursuit_env.env as env_module  # noqa: E402


def _greedy_config(**kwargs):
    # epsilon 0 with first-match ties makes a fresh hunter always pick UP
    agent_cfg = AgentConfig(learner=LearnerConfig(epsilon=0.0, tie_break=TieBreak.FIRST))
    return SimConfig(agent=agent_cfg, **kwargs)


def _capture_on_first_step(**kwargs):
    """Hunter in the top-left corner with a victim right next to it."""
    runner = EpisodeRunner(_greedy_config(height=20, width=20, seed=5, **kwargs))
    hunter = runner.add_agent(AgentKind.HUNTER, Position(0, 0))
    victim = runner.add_agent(AgentKind.VICTIM, Position(1, 0))
    return runner, hunter, victim


def _small_runner(seed=0, **kwargs):
    runner = EpisodeRunner(SimConfig(height=3, width=3, seed=seed), **kwargs)
    runner.add_agent(AgentKind.HUNTER, Position(0, 0))
    runner.add_agent(AgentKind.VICTIM, Position(2, 2))
    return runner


def test_step_is_round_robin():
    runner = _small_runner()
    order = []
    for _ in range(4):
        if runner.step():
            break
        order.append(runner.active_index)
    assert order == [0, 1, 0, 1][: len(order)]


def test_episode_ends_on_goal_and_halts():
    runner, hunter, _victim = _capture_on_first_step()
    assert runner.step() is True
    assert hunter.goal_reached
    assert runner.halted
    assert runner.episodes_played == 1
    assert runner.results[0].steps == 1 and runner.results[0].rounds == 1

    # halted runner does not advance
    assert runner.step() is True
    assert runner.steps_played == 1
    assert runner.episodes_played == 1


def test_restart_clears_goals_and_reshuffles():
    runner, hunter, victim = _capture_on_first_step()
    runner.step()
    before = [agent.position for agent in runner.agents]

    runner.restart()

    assert not runner.halted
    assert runner.steps_played == 0
    assert all(not agent.goal_reached for agent in runner.agents)
    after = [agent.position for agent in runner.agents]
    # a reshuffle can land on the same cell, but not for both agents in a 20x20 grid
    assert any(a != b for a, b in zip(before, after))
    assert hunter.position != victim.position


def test_no_final_moves_by_default():
    runner, _hunter, victim = _capture_on_first_step()
    calls = []
    original = victim.move
    victim.move = lambda: calls.append(1) or original()
    runner.step()
    assert calls == []


def test_final_moves_give_other_agents_one_more_turn():
    runner, _hunter, victim = _capture_on_first_step(final_moves=True)
    calls = []
    original = victim.move
    victim.move = lambda: calls.append(1) or original()
    assert runner.step() is True
    assert calls == [1]
    assert runner.episodes_played == 1


def test_final_moves_skip_capturing_agent_and_manual_victim():
    runner, hunter, victim = _capture_on_first_step(final_moves=True)
    manual = runner.add_agent(AgentKind.MANUAL_VICTIM, Position(5, 5))
    calls = {"hunter": [], "victim": [], "manual": []}
    for name, agent in (("hunter", hunter), ("victim", victim), ("manual", manual)):
        original = agent.move
        agent.move = lambda name=name, original=original: calls[name].append(1) or original()

    assert runner.step() is True
    # the hunter's capturing turn is its only move
    assert calls == {"hunter": [1], "victim": [1], "manual": []}
    assert manual.position == Position(5, 5)
    assert runner.episodes_played == 1


def test_halt_flag_cancels_stepping():
    runner = _small_runner()
    runner.halt()
    positions = [agent.position for agent in runner.agents]
    assert runner.step() is True
    assert runner.play_episode() is None
    stats = runner.run(3)
    assert stats.episodes_played == 0
    assert [agent.position for agent in runner.agents] == positions


def test_halt_from_step_hook_stops_run():
    runner = _small_runner()
    runner.on_step = lambda world: runner.halt()
    assert runner.play_episode() is None
    assert runner.steps_played == 1


def test_stats_guard_before_any_episode():
    stats = _small_runner().stats()
    assert stats.episodes_played == 0
    assert stats.average_steps is None
    assert stats.median_steps is None
    assert stats.chart == []


def test_truncated_episode_is_not_counted_in_averages():
    runner = EpisodeRunner(SimConfig(height=1, width=5, seed=0, max_steps=6))
    runner.add_obstacle(Position(1, 0))
    runner.add_agent(AgentKind.HUNTER, Position(0, 0))
    runner.add_agent(AgentKind.STILL_VICTIM, Position(4, 0))
    # keep reshuffles from freeing the hunter
    runner.restart = lambda: None

    result = runner.play_episode()

    assert result.reached_goal is False
    assert result.steps == 6
    assert runner.stats().average_steps is None


def test_run_collects_results_and_fires_hooks(tmp_path):
    log_path = tmp_path / "episodes.jsonl"
    steps_seen = []
    episode_stats = []
    runner = _small_runner(
        seed=3,
        on_step=lambda world: steps_seen.append(len(world.agents)),
        on_episode_end=episode_stats.append,
        log_path=str(log_path),
    )

    stats = runner.run(5)

    assert stats.episodes_played == 5
    assert len(runner.results) == 5
    assert [r.episode for r in runner.results] == [1, 2, 3, 4, 5]
    assert stats.player_count == 2
    assert stats.average_steps == pytest.approx(np.mean([r.rounds for r in runner.results]))
    assert stats.median_steps == pytest.approx(np.median([r.rounds for r in runner.results]))
    assert len(stats.chart) == 5
    assert len(steps_seen) == sum(r.steps for r in runner.results)
    assert [s.episodes_played for s in episode_stats] == [1, 2, 3, 4, 5]
    assert not runner.halted

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 5
    payload = json.loads(lines[0])
    assert set(payload) == {"episode", "steps", "rounds", "reached_goal", "table_sizes"}
    assert len(payload["table_sizes"]) == 2


def test_pacing_delay_does_not_change_outcome(monkeypatch):
    sleeps = []
    monkeypatch.setattr(env_module.time, "sleep", sleeps.append)

    batch = _small_runner(seed=9)
    paced = _small_runner(seed=9)
    batch.run(4)
    paced.run(4, delay=0.01)

    assert sleeps and all(s == 0.01 for s in sleeps)
    assert [r.steps for r in batch.results] == [r.steps for r in paced.results]
    for a, b in zip(batch.agents, paced.agents):
        assert a.position == b.position
        assert a.learner.export_table() == b.learner.export_table()


def test_reset_forgets_learning():
    runner = _small_runner(seed=1)
    runner.run(3)
    assert len(runner.agents[0].learner) > 0

    runner.reset()

    assert runner.episodes_played == 0
    assert runner.results == [] and runner.chart == []
    assert all(len(agent.learner) == 0 for agent in runner.agents)
    assert not runner.halted


def test_learner_tables_persist_across_episodes():
    runner = _small_runner(seed=2)
    runner.run(2)
    hunter = runner.agents[0]
    table = hunter.learner.table
    runner.run(2)
    assert hunter.learner.table is table
    assert runner.episodes_played == 4


def test_setup_contract_errors():
    runner = EpisodeRunner(SimConfig(height=3, width=3))
    with pytest.raises(ValueError):
        runner.step()
    runner.add_agent(AgentKind.HUNTER, Position(0, 0))
    with pytest.raises(ValueError):
        runner.add_agent(AgentKind.VICTIM, Position(0, 0))
    with pytest.raises(ValueError):
        runner.add_agent(AgentKind.VICTIM, Position(5, 0))
    with pytest.raises(ValueError):
        runner.run(-1)


@pytest.mark.parametrize("max_steps", [0, -3])
def test_non_positive_max_steps_is_rejected(max_steps):
    runner = _small_runner()
    runner.config.max_steps = max_steps
    with pytest.raises(ValueError):
        runner.play_episode()
    with pytest.raises(ValueError):
        runner.run(1)
    assert runner.steps_played == 0
    assert runner.episodes_played == 0
