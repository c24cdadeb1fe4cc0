"""Shared builders for triage simulation tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import pytest

from triage_sim.environment import TriageEnvironment, TriageEnvironmentConfig
from triage_sim.schemas import (
    AcuityLevel,
    BloodPressure,
    CurrentCondition,
    Demographics,
    Gender,
    InitialSituation,
    PatientProfile,
    SeverityLevel,
    VitalSigns,
)


def make_patient(
    patient_id: str = "patient-1",
    *,
    acuity: AcuityLevel = AcuityLevel.LOW,
    severity: SeverityLevel = SeverityLevel.MILD,
    complaint: str = "Headache",
    pain: Optional[int] = 2,
    age: int = 40,
    heart_rate: Optional[float] = 80,
    systolic: Optional[float] = 120,
    oxygen_saturation: Optional[float] = 98,
    respiratory_rate: Optional[float] = 16,
) -> PatientProfile:
    """Build a patient with unremarkable vitals unless overridden."""
    return PatientProfile(
        id=patient_id,
        demographics=Demographics(age=age, gender=Gender.FEMALE),
        current_condition=CurrentCondition(
            chief_complaint=complaint,
            onset=datetime.now(timezone.utc),
            severity=severity,
            acuity=acuity,
            pain_level=pain,
        ),
        vital_signs=VitalSigns(
            heart_rate=heart_rate,
            blood_pressure=BloodPressure(systolic=systolic, diastolic=80) if systolic is not None else None,
            oxygen_saturation=oxygen_saturation,
            respiratory_rate=respiratory_rate,
        ),
    )


def situation_with(*patients: PatientProfile) -> InitialSituation:
    return InitialSituation(
        id="situation-test",
        queue_length=len(patients),
        available_resources=8,
        queue=tuple(patients),
    )


def quiet_environment(**overrides) -> TriageEnvironment:
    """Seeded environment with logging off and no arrivals unless overridden."""
    options = {
        "enable_logging": False,
        "random_seed": 7,
        "patient_arrival_rate": 0.0,
        "initial_patient_count": 3,
    }
    options.update(overrides)
    return TriageEnvironment(TriageEnvironmentConfig(**options))


@pytest.fixture
def patient_factory():
    return make_patient


@pytest.fixture
def environment() -> TriageEnvironment:
    return quiet_environment()
