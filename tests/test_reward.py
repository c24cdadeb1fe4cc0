"""Tests for the triage reward model."""

import pytest

from conftest import make_patient
from triage_sim.environment.reward import (
    is_accurate,
    optimal_priority,
    satisfaction,
    triage_cost,
    triage_reward,
    wait_reward,
)
from triage_sim.schemas import AcuityLevel, RewardCategory, SeverityLevel, TriagePriority


def _weighted_sum(reward):
    return sum(c.value * c.weight for c in reward.components)


def test_optimal_priority_ladder():
    assert optimal_priority(make_patient(acuity=AcuityLevel.CRITICAL)) == TriagePriority.IMMEDIATE
    assert optimal_priority(make_patient(severity=SeverityLevel.SEVERE)) == TriagePriority.URGENT
    assert optimal_priority(make_patient(heart_rate=130)) == TriagePriority.URGENT
    assert optimal_priority(make_patient(systolic=190)) == TriagePriority.URGENT
    assert optimal_priority(make_patient(severity=SeverityLevel.MODERATE)) == TriagePriority.LESS_URGENT
    assert optimal_priority(make_patient(pain=9)) == TriagePriority.LESS_URGENT
    assert optimal_priority(make_patient(pain=7)) == TriagePriority.NON_URGENT


def test_optimal_priority_ignores_missing_vitals():
    patient = make_patient(heart_rate=None, systolic=None, pain=None)
    assert optimal_priority(patient) == TriagePriority.NON_URGENT


def test_triage_reward_components_and_weighted_sum():
    patient = make_patient(severity=SeverityLevel.SEVERE)
    reward = triage_reward(patient, TriagePriority.URGENT, wait_time=20.0)

    by_name = {c.name: c for c in reward.components}
    assert by_name["triage_accuracy"].value == 10.0
    assert by_name["triage_accuracy"].weight == 0.4
    assert by_name["triage_accuracy"].category == RewardCategory.PATIENT_OUTCOMES
    assert by_name["efficiency"].value == pytest.approx(8.0)
    assert by_name["safety"].value == 5.0
    assert reward.value == pytest.approx(_weighted_sum(reward), abs=1e-9)
    assert reward.value == pytest.approx(0.4 * 10 + 0.3 * 8 + 0.3 * 5)


def test_under_triage_of_critical_patient_is_penalised():
    patient = make_patient(acuity=AcuityLevel.CRITICAL, severity=SeverityLevel.CRITICAL)
    reward = triage_reward(patient, TriagePriority.LESS_URGENT, wait_time=0.0)

    safety = next(c for c in reward.components if c.name == "safety")
    assert safety.value == -20.0
    assert reward.metadata["under_triage"] is True
    assert reward.value == pytest.approx(_weighted_sum(reward), abs=1e-9)


def test_urgent_is_not_under_triage_for_critical_patient():
    patient = make_patient(acuity=AcuityLevel.CRITICAL)
    reward = triage_reward(patient, TriagePriority.URGENT, wait_time=0.0)
    safety = next(c for c in reward.components if c.name == "safety")
    assert safety.value == 5.0


def test_accuracy_and_efficiency_floor_at_zero():
    patient = make_patient(acuity=AcuityLevel.CRITICAL)
    reward = triage_reward(patient, TriagePriority.NON_URGENT, wait_time=500.0)
    by_name = {c.name: c.value for c in reward.components}
    assert by_name["triage_accuracy"] == 2.0
    assert by_name["efficiency"] == 0.0


def test_wait_reward_is_small_penalty():
    reward = wait_reward(5)
    assert reward.value == pytest.approx(-0.5)
    assert [c.name for c in reward.components] == ["efficiency_penalty"]
    assert reward.components[0].weight == 1.0


def test_cost_accuracy_and_satisfaction_helpers():
    assert triage_cost(TriagePriority.IMMEDIATE) == 250.0
    assert triage_cost(TriagePriority.NON_URGENT) == 100.0

    patient = make_patient(severity=SeverityLevel.MODERATE)
    assert is_accurate(patient, TriagePriority.SEMI_URGENT)
    assert not is_accurate(patient, TriagePriority.IMMEDIATE)

    assert satisfaction(0) == 1.0
    assert satisfaction(120) == pytest.approx(0.5)
    assert satisfaction(480) == 0.0
