"""Tests covering the episode loop, run control and metrics."""

import asyncio
import json

import pytest

from conftest import quiet_environment
from triage_sim.orchestrator import Orchestrator, RunState
from triage_sim.policy import RandomTriagePolicy, RuleBasedTriagePolicy
from triage_sim.schemas import (
    ActionType,
    SimulationConfig,
    SimulationMetrics,
    TriageAssignAction,
    WaitAction,
)


def _config(**overrides) -> SimulationConfig:
    options = {"max_steps_per_episode": 10, "enable_logging": False}
    options.update(overrides)
    return SimulationConfig(**options)


class FlakyPolicy(RuleBasedTriagePolicy):
    """Raises during the first episode only and counts lifecycle hooks."""

    def __init__(self):
        super().__init__(enable_logging=False)
        self.ended = 0

    async def select_action(self, situation, actions):
        if self.episode_count == 1:
            raise RuntimeError("policy exploded")
        return await super().select_action(situation, actions)

    def end_episode(self):
        self.ended += 1
        super().end_episode()


class StalePolicy(RuleBasedTriagePolicy):
    """Returns an action that is not admissible."""

    async def select_action(self, situation, actions):
        return TriageAssignAction(id="triage-nobody-priority-1", patient_id="nobody", priority=1)


@pytest.mark.asyncio
async def test_three_patients_are_triaged_then_policy_waits():
    env = quiet_environment(initial_patient_count=3, patient_arrival_rate=0.0)
    orchestrator = Orchestrator(env, RuleBasedTriagePolicy(enable_logging=False), _config())

    result = await orchestrator.run_episode()

    kinds = [record.action.type for record in result.steps]
    assert kinds == [ActionType.TRIAGE_ASSIGN] * 3 + [ActionType.WAIT] * 7
    assert result.step_count == 10
    assert result.reason == "max_steps_reached"
    assert all(r.reward.value == pytest.approx(-0.5) for r in result.steps[3:])
    assert result.total_reward == pytest.approx(sum(r.reward.value for r in result.steps))
    assert result.average_reward == pytest.approx(result.total_reward / 10)
    assert result.success == (result.total_reward / 10 > 0.8)
    assert result.environment_metrics.patients_processed == 3
    assert orchestrator.state == RunState.COMPLETED


@pytest.mark.asyncio
async def test_step_cap_bounds_episode_length():
    env = quiet_environment(patient_arrival_rate=0.5)
    orchestrator = Orchestrator(env, RandomTriagePolicy(seed=1, enable_logging=False), _config(max_steps_per_episode=4))

    result = await orchestrator.run_episode()

    assert result.step_count <= 4
    if not result.steps[-1].next_state.is_terminal:
        assert result.reason == "max_steps_reached"
    assert env.max_steps_per_episode == 4


@pytest.mark.asyncio
async def test_terminal_situation_ends_episode_early():
    env = quiet_environment(initial_patient_count=1, terminal_step_threshold=0)
    orchestrator = Orchestrator(env, RuleBasedTriagePolicy(enable_logging=False), _config())

    result = await orchestrator.run_episode()

    assert result.step_count == 1
    assert result.reason == "environment_terminal"
    assert result.steps[-1].next_state.is_terminal


@pytest.mark.asyncio
async def test_failed_episode_is_isolated_and_hooks_still_run(capsys):
    policy = FlakyPolicy()
    orchestrator = Orchestrator(quiet_environment(), policy, _config(enable_logging=True))

    results = await orchestrator.run_episodes(2)

    assert [r.reason for r in results] == ["error", "max_steps_reached"]
    assert results[0].success is False
    assert results[0].error == "policy exploded"
    assert results[0].step_count == 0
    assert policy.ended == 2
    assert orchestrator.metrics().total_episodes == 2
    assert "Episode 1 failed: policy exploded" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_invalid_action_from_policy_fails_the_episode():
    orchestrator = Orchestrator(quiet_environment(), StalePolicy(enable_logging=False), _config())
    result = await orchestrator.run_episode()
    assert result.reason == "error"
    assert "not currently admissible" in result.error


@pytest.mark.asyncio
async def test_step_events_carry_cumulative_reward():
    orchestrator = Orchestrator(quiet_environment(), RuleBasedTriagePolicy(enable_logging=False), _config(max_steps_per_episode=5))
    events = []
    orchestrator.step_events.subscribe(events.append)

    result = await orchestrator.run_episode()

    assert [e.step for e in events] == [1, 2, 3, 4, 5]
    assert events[-1].cumulative_reward == pytest.approx(result.total_reward)
    assert all(e.episode == 1 for e in events)


@pytest.mark.asyncio
async def test_stop_ends_current_episode_and_skips_the_rest():
    orchestrator = Orchestrator(quiet_environment(), RuleBasedTriagePolicy(enable_logging=False), _config())

    def stop_after_two(event):
        if event.step == 2:
            orchestrator.stop()

    orchestrator.step_events.subscribe(stop_after_two)
    results = await orchestrator.run_episodes(3)

    assert len(results) == 1
    assert results[0].reason == "stopped"
    assert results[0].step_count == 2
    assert orchestrator.state == RunState.STOPPED


@pytest.mark.asyncio
async def test_pause_holds_the_loop_until_resumed():
    orchestrator = Orchestrator(quiet_environment(), RuleBasedTriagePolicy(enable_logging=False), _config(max_steps_per_episode=5))
    paused = []

    def pause_once(event):
        if event.step == 2 and not paused:
            paused.append(event.step)
            orchestrator.pause()

    orchestrator.step_events.subscribe(pause_once)
    task = asyncio.create_task(orchestrator.run_episode())
    for _ in range(10):
        await asyncio.sleep(0)

    assert orchestrator.state == RunState.PAUSED
    assert not task.done()

    orchestrator.resume()
    result = await task
    assert result.step_count == 5
    assert orchestrator.state == RunState.COMPLETED


def test_orchestrator_can_pause_again_under_a_new_event_loop():
    orchestrator = Orchestrator(quiet_environment(), RuleBasedTriagePolicy(enable_logging=False), _config(max_steps_per_episode=5))

    def pause_then_resume_later(event):
        if event.step == 2:
            orchestrator.pause()
            asyncio.get_running_loop().call_later(0.01, orchestrator.resume)

    orchestrator.step_events.subscribe(pause_then_resume_later)

    first = asyncio.run(orchestrator.run_episode())
    second = asyncio.run(orchestrator.run_episode())

    assert first.reason == "max_steps_reached"
    assert second.reason == "max_steps_reached"
    assert second.error is None
    assert second.step_count == 5


@pytest.mark.asyncio
async def test_stop_releases_a_paused_run():
    orchestrator = Orchestrator(quiet_environment(), RuleBasedTriagePolicy(enable_logging=False), _config())
    orchestrator.step_events.subscribe(lambda e: orchestrator.pause() if e.step == 1 else None)

    task = asyncio.create_task(orchestrator.run_episode())
    for _ in range(10):
        await asyncio.sleep(0)
    orchestrator.stop()
    result = await task

    assert result.reason == "stopped"
    assert result.step_count == 1


@pytest.mark.asyncio
async def test_history_is_capped_and_metrics_use_run_totals():
    orchestrator = Orchestrator(
        quiet_environment(),
        RuleBasedTriagePolicy(enable_logging=False),
        _config(max_steps_per_episode=3, max_episode_history=2),
    )

    results = await orchestrator.run_episodes(3)

    history = orchestrator.episode_history()
    assert [e.episode_number for e in history] == [2, 3]
    metrics = orchestrator.metrics()
    assert metrics.total_episodes == 3
    assert metrics.total_steps == 9
    assert metrics.total_reward == pytest.approx(sum(r.total_reward for r in results))
    assert metrics.average_reward == pytest.approx(metrics.total_reward / 3)
    assert metrics.average_steps_per_episode == 3

    # Returned history is a copy
    history.clear()
    assert len(orchestrator.episode_history()) == 2


@pytest.mark.asyncio
async def test_success_rate_counts_the_latest_episode():
    orchestrator = Orchestrator(
        quiet_environment(initial_patient_count=1, terminal_step_threshold=0),
        RuleBasedTriagePolicy(enable_logging=False),
        _config(success_threshold=-100.0),
    )
    await orchestrator.run_episode()
    assert orchestrator.metrics().success_rate == 1.0


@pytest.mark.asyncio
async def test_performance_summary_uses_rolling_window():
    orchestrator = Orchestrator(
        quiet_environment(),
        RuleBasedTriagePolicy(enable_logging=False),
        _config(max_steps_per_episode=2, performance_window_size=2),
    )
    assert orchestrator.performance_summary().total_episodes == 0

    await orchestrator.run_episodes(3)
    summary = orchestrator.performance_summary()

    assert summary.total_episodes == 3
    assert len(summary.reward_trend) == 2
    assert summary.steps_trend == (2, 2)
    assert summary.average_steps == 2


@pytest.mark.asyncio
async def test_metrics_feed_replays_latest_and_can_be_disabled():
    orchestrator = Orchestrator(quiet_environment(), RuleBasedTriagePolicy(enable_logging=False), _config(max_steps_per_episode=2))
    received = []
    orchestrator.metrics_feed.subscribe(received.append)
    assert len(received) == 1
    assert received[0].total_episodes == 0

    await orchestrator.run_episodes(2)
    assert [m.total_episodes for m in received] == [0, 1, 2]

    late = []
    orchestrator.metrics_feed.subscribe(late.append)
    assert late[0].total_episodes == 2

    quiet = Orchestrator(
        quiet_environment(),
        RuleBasedTriagePolicy(enable_logging=False),
        _config(max_steps_per_episode=2, enable_metrics=False),
    )
    silent = []
    quiet.metrics_feed.subscribe(silent.append)
    episodes = []
    quiet.episode_events.subscribe(episodes.append)
    await quiet.run_episodes(2)
    assert len(silent) == 1
    assert [e.episode for e in episodes] == [1, 2]
    assert isinstance(silent[0], SimulationMetrics)


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_break_the_run(capsys):
    orchestrator = Orchestrator(quiet_environment(), RuleBasedTriagePolicy(enable_logging=False), _config(max_steps_per_episode=2))

    def boom(_event):
        raise ValueError("subscriber bug")

    orchestrator.step_events.subscribe(boom)
    result = await orchestrator.run_episode()

    assert result.reason == "max_steps_reached"
    assert "Subscriber failed: subscriber bug" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_export_bundles_history_and_stats_as_json():
    orchestrator = Orchestrator(quiet_environment(), RuleBasedTriagePolicy(enable_logging=False), _config(max_steps_per_episode=2))
    await orchestrator.run_episodes(2)

    export = orchestrator.export_data()
    payload = json.loads(export.model_dump_json())

    assert len(payload["episode_history"]) == 2
    assert payload["metrics"]["total_episodes"] == 2
    assert payload["agent_stats"]["type"] == "rule_based"
    assert payload["environment_stats"]["total_episodes"] == 2
    assert payload["config"]["max_steps_per_episode"] == 2


@pytest.mark.asyncio
async def test_episode_delay_sleeps_between_episodes(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    orchestrator = Orchestrator(
        quiet_environment(),
        RuleBasedTriagePolicy(enable_logging=False),
        _config(max_steps_per_episode=1, episode_delay_ms=250),
    )
    await orchestrator.run_episodes(3)
    assert delays == [0.25, 0.25]


@pytest.mark.asyncio
async def test_records_capture_confidence_and_policy_stats():
    orchestrator = Orchestrator(quiet_environment(), RuleBasedTriagePolicy(enable_logging=False), _config(max_steps_per_episode=4))
    result = await orchestrator.run_episode()

    for record in result.steps:
        if isinstance(record.action, WaitAction):
            assert record.agent_confidence == 0.5
        else:
            assert 0.3 <= record.agent_confidence <= 0.95
    assert result.agent_stats.episode_count == 1
    assert result.agent_stats.experience_count == 4
