"""Multi-objective reward model for triage decisions.

Every reward leaves this module through :meth:`Reward.from_components`, so
``reward.value`` always equals the weighted sum of its components.
"""

from __future__ import annotations

from typing import Dict

from triage_sim.schemas import (
    AcuityLevel,
    PatientProfile,
    Reward,
    RewardCategory,
    RewardComponent,
    SeverityLevel,
    TriagePriority,
)

ACCURACY_WEIGHT = 0.4
EFFICIENCY_WEIGHT = 0.3
SAFETY_WEIGHT = 0.3

SAFE_TRIAGE_SCORE = 5.0
UNDER_TRIAGE_PENALTY = -20.0

WAIT_PENALTY_PER_MINUTE = -0.1

# Minutes after which satisfaction bottoms out at zero
SATISFACTION_HORIZON_MINUTES = 240.0

BASE_TRIAGE_COST = 50.0
PRIORITY_COST: Dict[TriagePriority, float] = {
    TriagePriority.IMMEDIATE: 200.0,
    TriagePriority.URGENT: 150.0,
    TriagePriority.LESS_URGENT: 100.0,
    TriagePriority.SEMI_URGENT: 75.0,
    TriagePriority.NON_URGENT: 50.0,
}


def optimal_priority(patient: PatientProfile) -> TriagePriority:
    """Reference priority a patient should receive, used for scoring."""
    condition = patient.current_condition
    vitals = patient.vital_signs

    if condition.acuity == AcuityLevel.CRITICAL:
        return TriagePriority.IMMEDIATE

    high_heart_rate = vitals.heart_rate is not None and vitals.heart_rate > 120
    high_systolic = (
        vitals.blood_pressure is not None and vitals.blood_pressure.systolic > 180
    )
    if condition.severity == SeverityLevel.SEVERE or high_heart_rate or high_systolic:
        return TriagePriority.URGENT

    if condition.severity == SeverityLevel.MODERATE:
        return TriagePriority.LESS_URGENT

    if condition.pain_level is not None and condition.pain_level > 7:
        return TriagePriority.LESS_URGENT

    return TriagePriority.NON_URGENT


def is_under_triage(patient: PatientProfile, priority: TriagePriority) -> bool:
    """True when a critical-acuity patient is ranked below URGENT."""
    return (
        patient.current_condition.acuity == AcuityLevel.CRITICAL
        and priority > TriagePriority.URGENT
    )


def is_accurate(patient: PatientProfile, priority: TriagePriority) -> bool:
    return abs(int(priority) - int(optimal_priority(patient))) <= 1


def satisfaction(wait_time: float) -> float:
    return max(0.0, 1.0 - wait_time / SATISFACTION_HORIZON_MINUTES)


def triage_cost(priority: TriagePriority) -> float:
    return BASE_TRIAGE_COST + PRIORITY_COST[priority]


def triage_reward(
    patient: PatientProfile, priority: TriagePriority, wait_time: float
) -> Reward:
    """Score one assignment on accuracy, efficiency and safety."""
    optimal = optimal_priority(patient)
    accuracy = max(0.0, 10.0 - abs(int(priority) - int(optimal)) * 2)
    efficiency = max(0.0, 10.0 - wait_time / 10.0)
    under_triaged = is_under_triage(patient, priority)
    safety = UNDER_TRIAGE_PENALTY if under_triaged else SAFE_TRIAGE_SCORE

    components = [
        RewardComponent(
            name="triage_accuracy",
            value=accuracy,
            weight=ACCURACY_WEIGHT,
            category=RewardCategory.PATIENT_OUTCOMES,
        ),
        RewardComponent(
            name="efficiency",
            value=efficiency,
            weight=EFFICIENCY_WEIGHT,
            category=RewardCategory.EFFICIENCY,
        ),
        RewardComponent(
            name="safety",
            value=safety,
            weight=SAFETY_WEIGHT,
            category=RewardCategory.SAFETY,
        ),
    ]
    return Reward.from_components(
        components,
        reasoning=(
            f"Assigned priority {int(priority)} (optimal {int(optimal)}), "
            f"estimated wait {wait_time:.1f} min"
        ),
        metadata={
            "patient_id": patient.id,
            "assigned_priority": int(priority),
            "optimal_priority": int(optimal),
            "wait_time": wait_time,
            "under_triage": under_triaged,
        },
    )


def wait_reward(duration: float) -> Reward:
    """Small penalty for letting time pass without triaging anyone."""
    return Reward.from_components(
        [
            RewardComponent(
                name="efficiency_penalty",
                value=WAIT_PENALTY_PER_MINUTE * duration,
                weight=1.0,
                category=RewardCategory.EFFICIENCY,
            )
        ],
        reasoning=f"Waited {duration:g} minutes",
        metadata={"duration": duration},
    )
