"""Tests for the random baseline policy."""

import math

import pytest

from conftest import situation_with
from triage_sim.errors import NoValidActionError
from triage_sim.policy import BasePolicy, RandomTriagePolicy
from triage_sim.schemas import (
    Experience,
    PolicyType,
    Reward,
    RewardCategory,
    RewardComponent,
    TriageAssignAction,
    TriagePriority,
    WaitAction,
)


def _actions():
    return [
        TriageAssignAction(id=f"triage-p-1-priority-{int(p)}", patient_id="p-1", priority=p)
        for p in TriagePriority
    ] + [WaitAction()]


def _experience(value):
    situation = situation_with()
    reward = Reward.from_components(
        [RewardComponent(name="r", value=value, weight=1.0, category=RewardCategory.EFFICIENCY)]
    )
    return Experience(state=situation, action=WaitAction(), reward=reward, next_state=situation, done=False)


@pytest.mark.asyncio
async def test_same_seed_same_choices():
    situation = situation_with()
    a = RandomTriagePolicy(seed=3, enable_logging=False)
    b = RandomTriagePolicy(seed=3, enable_logging=False)
    picks_a = [(await a.select_action(situation, _actions())).id for _ in range(20)]
    picks_b = [(await b.select_action(situation, _actions())).id for _ in range(20)]
    assert picks_a == picks_b


@pytest.mark.asyncio
async def test_set_seed_restarts_sequence():
    situation = situation_with()
    policy = RandomTriagePolicy(seed=11, enable_logging=False)
    first = [(await policy.select_action(situation, _actions())).id for _ in range(5)]
    policy.set_seed(11)
    again = [(await policy.select_action(situation, _actions())).id for _ in range(5)]
    assert first == again


@pytest.mark.asyncio
async def test_choices_are_admissible_and_distribution_counts_kinds():
    situation = situation_with()
    policy = RandomTriagePolicy(seed=5, enable_logging=False)
    actions = _actions()
    for _ in range(30):
        assert await policy.select_action(situation, actions) in actions

    distribution = policy.action_distribution()
    assert distribution["triage_assign"] + distribution["wait"] == 30
    assert distribution["other"] == 0


@pytest.mark.asyncio
async def test_empty_action_list_raises():
    policy = RandomTriagePolicy(enable_logging=False)
    with pytest.raises(NoValidActionError):
        await policy.select_action(situation_with(), [])


def test_confidence_is_zero():
    policy = RandomTriagePolicy(enable_logging=False)
    assert policy.confidence(situation_with(), WaitAction()) == 0.0


@pytest.mark.asyncio
async def test_performance_summary():
    policy = RandomTriagePolicy(seed=1, enable_logging=False)
    assert policy.performance_summary()["total_actions"] == 0

    situation = situation_with()
    await policy.select_action(situation, [WaitAction()])
    await policy.select_action(situation, _actions()[:1])
    for value in (1.0, 3.0):
        await policy.update(_experience(value))

    summary = policy.performance_summary()
    assert summary["total_actions"] == 2
    assert summary["average_reward"] == pytest.approx(2.0)
    assert summary["reward_variance"] == pytest.approx(1.0)
    # One wait and one assignment: one bit of entropy
    assert summary["action_entropy"] == pytest.approx(math.log2(2))
    assert summary["experience_count"] == 2


@pytest.mark.asyncio
async def test_stats_and_reset():
    policy = RandomTriagePolicy(seed=9, enable_logging=False)
    await policy.select_action(situation_with(), [WaitAction()])
    await policy.update(_experience(1.0))

    stats = policy.stats()
    assert stats.type == PolicyType.RANDOM
    assert stats.metadata["seed"] == 9
    assert stats.metadata["action_distribution"]["wait"] == 1

    policy.reset()
    assert policy.action_distribution() == {"triage_assign": 0, "wait": 0, "other": 0}
    assert policy.stats().experience_count == 0


def test_base_policy_requires_decision_methods():
    with pytest.raises(TypeError):
        BasePolicy("bare", PolicyType.RULE_BASED)

    class ChoosesOnly(BasePolicy):
        async def select_action(self, situation, actions):
            return actions[0]

    with pytest.raises(TypeError):
        ChoosesOnly("half", PolicyType.RULE_BASED)
