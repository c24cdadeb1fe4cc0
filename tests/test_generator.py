"""Tests for synthetic patient generation."""

import random
import uuid

import pytest

from triage_sim.environment.generator import (
    BASIC_PRESENTATIONS,
    CHIEF_COMPLAINTS,
    PatientGenerator,
    age_group_for,
    weighted_choice,
)
from triage_sim.schemas import AcuityLevel, SeverityLevel


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError, match="Unknown patient generator mode"):
        PatientGenerator(random.Random(0), mode="fancy")


def test_basic_patients_use_fixed_presentations_and_ranges():
    generator = PatientGenerator(random.Random(1))
    presentations = {(c, s, a) for c, s, a in BASIC_PRESENTATIONS}

    for patient in generator.generate_batch(50):
        condition = patient.current_condition
        assert (condition.chief_complaint, condition.severity, condition.acuity) in presentations
        assert 10 <= patient.demographics.age <= 89
        assert 1 <= condition.pain_level <= 10
        vitals = patient.vital_signs
        assert 60 <= vitals.heart_rate <= 100
        assert 95 <= vitals.oxygen_saturation <= 100
        assert 120 <= vitals.blood_pressure.systolic <= 160
        assert uuid.UUID(patient.id).version == 4

    assert generator.generated_count == 50


def test_seeded_generators_agree():
    a = PatientGenerator(random.Random(99), mode="clinical").generate_batch(5)
    b = PatientGenerator(random.Random(99), mode="clinical").generate_batch(5)
    assert [p.model_dump(exclude={"current_condition", "vital_signs", "medical_history"}) for p in a] == [
        p.model_dump(exclude={"current_condition", "vital_signs", "medical_history"}) for p in b
    ]
    assert [p.current_condition.chief_complaint for p in a] == [p.current_condition.chief_complaint for p in b]


def test_clinical_patients_are_internally_consistent():
    generator = PatientGenerator(random.Random(4), mode="clinical")
    complaints = {c.complaint for c in CHIEF_COMPLAINTS}
    severity_for = {
        AcuityLevel.CRITICAL: SeverityLevel.CRITICAL,
        AcuityLevel.HIGH: SeverityLevel.SEVERE,
        AcuityLevel.MEDIUM: SeverityLevel.MODERATE,
        AcuityLevel.LOW: SeverityLevel.MILD,
    }

    for patient in generator.generate_batch(100):
        condition = patient.current_condition
        assert condition.chief_complaint in complaints
        assert condition.severity == severity_for[condition.acuity]
        assert 0 <= condition.pain_level <= 10
        assert 0 <= patient.demographics.age <= 95
        if patient.demographics.age < 18:
            assert patient.social_determinants.employment.value == "student"
        for medication in patient.medications:
            assert medication.name in ("Lisinopril", "Metformin")


def test_age_groups():
    assert age_group_for(5) == "pediatric"
    assert age_group_for(18) == "young_adult"
    assert age_group_for(54) == "middle_aged"
    assert age_group_for(74) == "older_adult"
    assert age_group_for(75) == "elderly"


def test_weighted_choice_never_picks_zero_weight():
    rng = random.Random(0)
    picks = {weighted_choice(rng, {"a": 1.0, "b": 0.0}) for _ in range(50)}
    assert picks == {"a"}
