"""Synthetic patient generation.

Two modes are available:

- ``basic``: five fixed presentations with uniformly drawn vitals. Cheap and
  easy to reason about in tests.
- ``clinical``: demographics, chief complaints, acuity, vitals and social
  context drawn from published emergency-department visit distributions.

Both modes draw every random value from the ``random.Random`` passed in, so a
seeded generator reproduces the same patients.
"""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Sequence, Tuple, TypeVar

from triage_sim.schemas import (
    AcuityLevel,
    Allergy,
    BloodPressure,
    CurrentCondition,
    Demographics,
    DiagnosedCondition,
    EmploymentStatus,
    EducationLevel,
    FoodSecurityLevel,
    Gender,
    HousingStatus,
    InsuranceType,
    Location,
    MedicalHistory,
    Medication,
    PatientProfile,
    RiskFactor,
    SeverityLevel,
    SocialDeterminants,
    SocialSupportLevel,
    Symptom,
    TransportationAccess,
    VitalSigns,
)

T = TypeVar("T")

# ============================================================================
# Basic mode
# ============================================================================

BASIC_PRESENTATIONS: List[Tuple[str, SeverityLevel, AcuityLevel]] = [
    ("Chest pain", SeverityLevel.SEVERE, AcuityLevel.HIGH),
    ("Shortness of breath", SeverityLevel.MODERATE, AcuityLevel.MEDIUM),
    ("Abdominal pain", SeverityLevel.MILD, AcuityLevel.LOW),
    ("Headache", SeverityLevel.MILD, AcuityLevel.LOW),
    ("Trauma from accident", SeverityLevel.CRITICAL, AcuityLevel.CRITICAL),
]

# ============================================================================
# Clinical mode distributions
# ============================================================================


@dataclass(frozen=True)
class AgeGroup:
    name: str
    min_age: int
    max_age: int
    weight: float


AGE_GROUPS: List[AgeGroup] = [
    AgeGroup("pediatric", 0, 17, 0.22),
    AgeGroup("young_adult", 18, 34, 0.28),
    AgeGroup("middle_aged", 35, 54, 0.25),
    AgeGroup("older_adult", 55, 74, 0.18),
    AgeGroup("elderly", 75, 95, 0.07),
]


@dataclass(frozen=True)
class ChiefComplaint:
    complaint: str
    frequency: float
    # critical, high, medium, low
    acuity_distribution: Tuple[float, float, float, float]
    age_factors: Mapping[str, float]


def _age_factors(ped: float, young: float, middle: float, older: float, elderly: float) -> Dict[str, float]:
    return {
        "pediatric": ped,
        "young_adult": young,
        "middle_aged": middle,
        "older_adult": older,
        "elderly": elderly,
    }


CHIEF_COMPLAINTS: List[ChiefComplaint] = [
    ChiefComplaint("Chest pain", 0.08, (0.15, 0.35, 0.30, 0.20), _age_factors(0.1, 0.8, 1.5, 2.0, 2.5)),
    ChiefComplaint("Shortness of breath", 0.07, (0.20, 0.40, 0.25, 0.15), _age_factors(0.8, 0.7, 1.2, 1.8, 2.2)),
    ChiefComplaint("Abdominal pain", 0.12, (0.05, 0.20, 0.45, 0.30), _age_factors(1.2, 1.3, 1.0, 0.8, 0.7)),
    ChiefComplaint("Headache", 0.06, (0.02, 0.08, 0.30, 0.60), _age_factors(0.6, 1.5, 1.2, 0.8, 0.5)),
    ChiefComplaint("Motor vehicle accident", 0.04, (0.30, 0.40, 0.20, 0.10), _age_factors(0.5, 2.0, 1.5, 1.0, 0.8)),
    ChiefComplaint("Fever", 0.09, (0.05, 0.15, 0.40, 0.40), _age_factors(3.0, 1.0, 0.8, 1.2, 1.5)),
    ChiefComplaint("Back pain", 0.05, (0.01, 0.04, 0.25, 0.70), _age_factors(0.2, 1.2, 1.8, 1.5, 1.3)),
    ChiefComplaint("Laceration", 0.08, (0.05, 0.25, 0.50, 0.20), _age_factors(1.5, 1.8, 1.2, 0.8, 0.6)),
    ChiefComplaint("Psychiatric emergency", 0.06, (0.15, 0.30, 0.35, 0.20), _age_factors(0.3, 2.0, 1.5, 1.0, 0.8)),
    ChiefComplaint("Syncope", 0.03, (0.10, 0.30, 0.40, 0.20), _age_factors(0.5, 0.8, 1.0, 1.8, 2.5)),
]

ACUITY_ORDER: Tuple[AcuityLevel, ...] = (
    AcuityLevel.CRITICAL,
    AcuityLevel.HIGH,
    AcuityLevel.MEDIUM,
    AcuityLevel.LOW,
)

ACUITY_TO_SEVERITY: Dict[AcuityLevel, SeverityLevel] = {
    AcuityLevel.CRITICAL: SeverityLevel.CRITICAL,
    AcuityLevel.HIGH: SeverityLevel.SEVERE,
    AcuityLevel.MEDIUM: SeverityLevel.MODERATE,
    AcuityLevel.LOW: SeverityLevel.MILD,
}

ACUITY_BASE_PAIN: Dict[AcuityLevel, int] = {
    AcuityLevel.CRITICAL: 8,
    AcuityLevel.HIGH: 6,
    AcuityLevel.MEDIUM: 4,
    AcuityLevel.LOW: 2,
}


@dataclass(frozen=True)
class VitalRange:
    low: float
    high: float
    critical_low: float
    critical_high: float


# heart_rate, systolic, respiratory_rate, temperature, oxygen_saturation
VITAL_RANGES: Dict[str, Dict[str, VitalRange]] = {
    "pediatric": {
        "heart_rate": VitalRange(80, 140, 60, 160),
        "systolic": VitalRange(90, 110, 70, 130),
        "respiratory_rate": VitalRange(18, 30, 12, 40),
        "temperature": VitalRange(36.1, 37.2, 35.0, 39.0),
        "oxygen_saturation": VitalRange(95, 100, 90, 100),
    },
    "young_adult": {
        "heart_rate": VitalRange(60, 100, 50, 120),
        "systolic": VitalRange(110, 140, 90, 180),
        "respiratory_rate": VitalRange(12, 20, 8, 30),
        "temperature": VitalRange(36.1, 37.2, 35.0, 39.5),
        "oxygen_saturation": VitalRange(95, 100, 90, 100),
    },
    "middle_aged": {
        "heart_rate": VitalRange(60, 100, 50, 120),
        "systolic": VitalRange(120, 150, 90, 190),
        "respiratory_rate": VitalRange(12, 20, 8, 30),
        "temperature": VitalRange(36.1, 37.2, 35.0, 39.5),
        "oxygen_saturation": VitalRange(95, 100, 90, 100),
    },
    "older_adult": {
        "heart_rate": VitalRange(55, 95, 45, 115),
        "systolic": VitalRange(130, 160, 100, 200),
        "respiratory_rate": VitalRange(12, 22, 8, 32),
        "temperature": VitalRange(36.0, 37.1, 35.0, 39.0),
        "oxygen_saturation": VitalRange(94, 100, 88, 100),
    },
    "elderly": {
        "heart_rate": VitalRange(50, 90, 40, 110),
        "systolic": VitalRange(130, 170, 100, 210),
        "respiratory_rate": VitalRange(12, 24, 8, 35),
        "temperature": VitalRange(36.0, 37.0, 35.0, 38.5),
        "oxygen_saturation": VitalRange(92, 100, 85, 100),
    },
}

GENDER_DISTRIBUTION: Dict[Gender, float] = {
    Gender.FEMALE: 0.52,
    Gender.MALE: 0.47,
    Gender.NON_BINARY: 0.005,
    Gender.PREFER_NOT_TO_SAY: 0.005,
}

INSURANCE_DISTRIBUTION: Dict[InsuranceType, float] = {
    InsuranceType.PRIVATE: 0.49,
    InsuranceType.MEDICARE: 0.21,
    InsuranceType.MEDICAID: 0.20,
    InsuranceType.GOVERNMENT: 0.02,
    InsuranceType.UNINSURED: 0.08,
}

HOUSING_DISTRIBUTION: Dict[HousingStatus, float] = {
    HousingStatus.OWNED: 0.65,
    HousingStatus.RENTED: 0.30,
    HousingStatus.TEMPORARY: 0.04,
    HousingStatus.HOMELESS: 0.01,
}

EMPLOYMENT_DISTRIBUTION: Dict[EmploymentStatus, float] = {
    EmploymentStatus.EMPLOYED: 0.60,
    EmploymentStatus.UNEMPLOYED: 0.08,
    EmploymentStatus.RETIRED: 0.16,
    EmploymentStatus.DISABLED: 0.12,
    EmploymentStatus.STUDENT: 0.04,
}

EDUCATION_DISTRIBUTION: Dict[EducationLevel, float] = {
    EducationLevel.LESS_THAN_HIGH_SCHOOL: 0.12,
    EducationLevel.HIGH_SCHOOL: 0.28,
    EducationLevel.SOME_COLLEGE: 0.30,
    EducationLevel.COLLEGE_DEGREE: 0.20,
    EducationLevel.GRADUATE_DEGREE: 0.10,
}

TRANSPORTATION_DISTRIBUTION: Dict[TransportationAccess, float] = {
    TransportationAccess.RELIABLE: 0.70,
    TransportationAccess.LIMITED: 0.25,
    TransportationAccess.NONE: 0.05,
}

SOCIAL_SUPPORT_DISTRIBUTION: Dict[SocialSupportLevel, float] = {
    SocialSupportLevel.STRONG: 0.45,
    SocialSupportLevel.MODERATE: 0.35,
    SocialSupportLevel.WEAK: 0.15,
    SocialSupportLevel.NONE: 0.05,
}

FOOD_SECURITY_DISTRIBUTION: Dict[FoodSecurityLevel, float] = {
    FoodSecurityLevel.SECURE: 0.85,
    FoodSecurityLevel.MODERATELY_INSECURE: 0.10,
    FoodSecurityLevel.SEVERELY_INSECURE: 0.05,
}

ETHNICITY_DISTRIBUTION: Dict[str, float] = {
    "White": 0.60,
    "Black": 0.18,
    "Hispanic": 0.16,
    "Asian": 0.04,
    "Other": 0.02,
}

CITIES: Tuple[str, ...] = ("Boston", "New York", "Chicago", "Los Angeles", "Houston")


@dataclass(frozen=True)
class ComorbidityPattern:
    name: str
    icd10_code: str
    prevalence: float
    age_multipliers: Mapping[str, float]


COMORBIDITY_PATTERNS: List[ComorbidityPattern] = [
    ComorbidityPattern("Diabetes + Hypertension", "E11.9", 0.08, _age_factors(0.1, 0.5, 1.5, 2.0, 2.5)),
    ComorbidityPattern("COPD + Heart Disease", "J44.9", 0.04, _age_factors(0.01, 0.1, 0.8, 2.0, 3.0)),
    ComorbidityPattern("Hypertension + Hyperlipidemia", "I10", 0.12, _age_factors(0.05, 0.3, 1.2, 1.8, 2.2)),
    ComorbidityPattern("Depression + Anxiety", "F32.9", 0.06, _age_factors(0.3, 1.5, 1.3, 1.0, 0.8)),
    ComorbidityPattern("Asthma + Allergies", "J45.9", 0.05, _age_factors(2.0, 1.5, 1.0, 0.8, 0.6)),
]

SYMPTOMS_BY_COMPLAINT: Dict[str, List[str]] = {
    "Chest pain": ["Shortness of breath", "Nausea", "Sweating"],
    "Shortness of breath": ["Cough", "Fatigue", "Wheezing"],
    "Abdominal pain": ["Nausea", "Vomiting", "Loss of appetite"],
    "Headache": ["Sensitivity to light", "Nausea", "Dizziness"],
    "Fever": ["Chills", "Fatigue", "Body aches"],
}


def age_group_for(age: int) -> str:
    if age < 18:
        return "pediatric"
    if age < 35:
        return "young_adult"
    if age < 55:
        return "middle_aged"
    if age < 75:
        return "older_adult"
    return "elderly"


def weighted_choice(rng: random.Random, distribution: Mapping[T, float]) -> T:
    """Pick one key of ``distribution`` with probability proportional to its weight."""
    options: Sequence[T] = list(distribution.keys())
    weights = list(distribution.values())
    return rng.choices(options, weights=weights, k=1)[0]


class PatientGenerator:
    """Creates patient profiles for the environment's queue."""

    def __init__(self, rng: random.Random, mode: str = "basic") -> None:
        if mode not in ("basic", "clinical"):
            raise ValueError(f"Unknown patient generator mode '{mode}'. Use 'basic' or 'clinical'.")
        self._rng = rng
        self.mode = mode
        self.generated_count = 0

    def generate(self) -> PatientProfile:
        self.generated_count += 1
        if self.mode == "clinical":
            return self._clinical_patient()
        return self._basic_patient()

    def generate_batch(self, count: int) -> List[PatientProfile]:
        return [self.generate() for _ in range(count)]

    def _new_id(self) -> str:
        # Version-4 UUID drawn from the seeded rng so seeded runs are reproducible
        return str(uuid.UUID(int=self._rng.getrandbits(128), version=4))

    # ------------------------------------------------------------------
    # Basic mode
    # ------------------------------------------------------------------

    def _basic_patient(self) -> PatientProfile:
        rng = self._rng
        complaint, severity, acuity = rng.choice(BASIC_PRESENTATIONS)
        now = datetime.now(timezone.utc)

        return PatientProfile(
            id=self._new_id(),
            demographics=Demographics(
                age=rng.randint(10, 89),
                gender=Gender.MALE if rng.random() > 0.5 else Gender.FEMALE,
            ),
            current_condition=CurrentCondition(
                chief_complaint=complaint,
                onset=now - timedelta(hours=rng.random() * 24),
                severity=severity,
                acuity=acuity,
                pain_level=rng.randint(1, 10),
            ),
            vital_signs=VitalSigns(
                temperature=36.5 + rng.random() * 2,
                blood_pressure=BloodPressure(
                    systolic=120 + rng.random() * 40,
                    diastolic=80 + rng.random() * 20,
                ),
                heart_rate=60 + rng.random() * 40,
                respiratory_rate=12 + rng.random() * 8,
                oxygen_saturation=95 + rng.random() * 5,
                timestamp=now,
            ),
        )

    # ------------------------------------------------------------------
    # Clinical mode
    # ------------------------------------------------------------------

    def _clinical_patient(self) -> PatientProfile:
        rng = self._rng
        now = datetime.now(timezone.utc)

        group = rng.choices(AGE_GROUPS, weights=[g.weight for g in AGE_GROUPS], k=1)[0]
        age = rng.randint(group.min_age, group.max_age)
        complaint = self._select_complaint(group.name)
        acuity = rng.choices(ACUITY_ORDER, weights=complaint.acuity_distribution, k=1)[0]
        conditions = self._comorbidities(age, group.name, now)

        return PatientProfile(
            id=self._new_id(),
            demographics=self._demographics(age),
            medical_history=MedicalHistory(conditions=tuple(conditions)),
            current_condition=CurrentCondition(
                chief_complaint=complaint.complaint,
                symptoms=tuple(self._symptoms(complaint.complaint)),
                onset=self._onset(complaint.complaint, now),
                severity=ACUITY_TO_SEVERITY[acuity],
                acuity=acuity,
                pain_level=min(10, max(0, ACUITY_BASE_PAIN[acuity] + rng.randint(-1, 1))),
            ),
            vital_signs=self._vitals(group.name, acuity, now),
            social_determinants=self._social_determinants(group.name),
            risk_factors=tuple(self._risk_factors(age, conditions)),
            allergies=tuple(self._allergies()),
            medications=tuple(self._medications(conditions)),
        )

    def _select_complaint(self, group: str) -> ChiefComplaint:
        weights = [c.frequency * c.age_factors.get(group, 1.0) for c in CHIEF_COMPLAINTS]
        return self._rng.choices(CHIEF_COMPLAINTS, weights=weights, k=1)[0]

    def _demographics(self, age: int) -> Demographics:
        rng = self._rng
        if age >= 65:
            insurance = InsuranceType.MEDICARE if rng.random() < 0.8 else InsuranceType.PRIVATE
        else:
            insurance = weighted_choice(rng, INSURANCE_DISTRIBUTION)

        return Demographics(
            age=age,
            gender=weighted_choice(rng, GENDER_DISTRIBUTION),
            ethnicity=weighted_choice(rng, ETHNICITY_DISTRIBUTION),
            language="English" if rng.random() < 0.85 else "Spanish",
            insurance_type=insurance,
            location=Location(
                address=f"{rng.randint(1, 9999)} Main St",
                city=rng.choice(CITIES),
                state="MA",
                zip_code=str(rng.randint(10000, 99999)),
            ),
        )

    def _vitals(self, group: str, acuity: AcuityLevel, now: datetime) -> VitalSigns:
        rng = self._rng
        ranges = VITAL_RANGES[group]
        unstable = acuity in (AcuityLevel.CRITICAL, AcuityLevel.HIGH)

        def normal(name: str) -> float:
            r = ranges[name]
            return r.low + rng.random() * (r.high - r.low)

        if unstable:
            hr = ranges["heart_rate"]
            heart_rate = (
                hr.critical_low + rng.random() * 10
                if rng.random() > 0.5
                else hr.critical_high - rng.random() * 20
            )
            sbp = ranges["systolic"]
            systolic = (
                sbp.critical_low + rng.random() * 15
                if rng.random() > 0.5
                else sbp.critical_high - rng.random() * 30
            )
            respiratory_rate = ranges["respiratory_rate"].critical_high - rng.random() * 8
            oxygen = ranges["oxygen_saturation"].critical_low + rng.random() * 5
        else:
            heart_rate = normal("heart_rate")
            systolic = normal("systolic")
            respiratory_rate = normal("respiratory_rate")
            oxygen = normal("oxygen_saturation")

        if unstable and rng.random() > 0.7:
            temperature = ranges["temperature"].critical_high - rng.random()
        else:
            temperature = normal("temperature")

        diastolic = systolic * (0.6 + rng.random() * 0.2)

        return VitalSigns(
            temperature=round(temperature, 1),
            blood_pressure=BloodPressure(systolic=round(systolic), diastolic=round(diastolic)),
            heart_rate=round(heart_rate),
            respiratory_rate=round(respiratory_rate),
            oxygen_saturation=round(oxygen),
            timestamp=now,
        )

    def _symptoms(self, complaint: str) -> List[Symptom]:
        rng = self._rng
        names = SYMPTOMS_BY_COMPLAINT.get(complaint, ["General discomfort"])
        count = rng.randint(1, 3)
        return [
            Symptom(name=name, severity=rng.randint(1, 10), duration="2 hours", location="General")
            for name in names[:count]
        ]

    def _onset(self, complaint: str, now: datetime) -> datetime:
        lowered = complaint.lower()
        if "accident" in lowered or "trauma" in lowered:
            return now - timedelta(hours=self._rng.random() * 2)
        return now - timedelta(hours=self._rng.random() * 48)

    def _comorbidities(self, age: int, group: str, now: datetime) -> List[DiagnosedCondition]:
        rng = self._rng
        conditions: List[DiagnosedCondition] = []
        for pattern in COMORBIDITY_PATTERNS:
            if rng.random() >= pattern.prevalence * pattern.age_multipliers.get(group, 1.0):
                continue
            if "COPD" in pattern.name or "Heart Disease" in pattern.name:
                severity = SeverityLevel.SEVERE if rng.random() < 0.3 else SeverityLevel.MODERATE
            else:
                severity = SeverityLevel.MILD if rng.random() < 0.6 else SeverityLevel.MODERATE
            years_ago = rng.random() * max(0, min(age - 18, 30))
            conditions.append(
                DiagnosedCondition(
                    icd10_code=pattern.icd10_code,
                    name=pattern.name,
                    diagnosed_date=now - timedelta(days=years_ago * 365),
                    severity=severity,
                )
            )
        return conditions

    def _social_determinants(self, group: str) -> SocialDeterminants:
        rng = self._rng
        employment = weighted_choice(rng, EMPLOYMENT_DISTRIBUTION)
        if group == "elderly" and employment == EmploymentStatus.EMPLOYED:
            employment = EmploymentStatus.RETIRED if rng.random() < 0.7 else EmploymentStatus.EMPLOYED
        if group == "pediatric":
            employment = EmploymentStatus.STUDENT

        return SocialDeterminants(
            housing=weighted_choice(rng, HOUSING_DISTRIBUTION),
            employment=employment,
            education=weighted_choice(rng, EDUCATION_DISTRIBUTION),
            transportation=weighted_choice(rng, TRANSPORTATION_DISTRIBUTION),
            social_support=weighted_choice(rng, SOCIAL_SUPPORT_DISTRIBUTION),
            food_security=weighted_choice(rng, FOOD_SECURITY_DISTRIBUTION),
        )

    def _risk_factors(self, age: int, conditions: List[DiagnosedCondition]) -> List[RiskFactor]:
        factors: List[RiskFactor] = []
        if age > 65:
            factors.append(RiskFactor(type="Advanced age", level="medium", modifiable=False))
        if any("Diabetes" in c.name for c in conditions):
            factors.append(RiskFactor(type="Diabetes complications", level="high", modifiable=True))
        if self._rng.random() < 0.15:
            factors.append(RiskFactor(type="Smoking", level="high", modifiable=True))
        return factors

    def _allergies(self) -> List[Allergy]:
        allergies: List[Allergy] = []
        if self._rng.random() < 0.08:
            allergies.append(Allergy(allergen="Penicillin", reaction="Rash", severity=SeverityLevel.MILD))
        if self._rng.random() < 0.05:
            allergies.append(
                Allergy(allergen="Shellfish", reaction="Anaphylaxis", severity=SeverityLevel.SEVERE)
            )
        return allergies

    def _medications(self, conditions: List[DiagnosedCondition]) -> List[Medication]:
        medications: List[Medication] = []
        for condition in conditions:
            if "Hypertension" in condition.name:
                medications.append(Medication(name="Lisinopril", dosage="10mg", frequency="Daily"))
            if "Diabetes" in condition.name:
                medications.append(Medication(name="Metformin", dosage="500mg", frequency="Twice daily"))
        return medications
