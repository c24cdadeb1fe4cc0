"""Declarative triage rules.

Each rule pairs a priority level with a condition descriptor. Conditions are a
tagged union of plain data (``kind`` is the tag) so rule tables can be
inspected, serialized and compared; :func:`condition_matches` is the single
place that interprets them.

Resolution (:func:`evaluate_rules`):
- Every rule is evaluated against the patient
- The most urgent matching priority wins (lowest number)
- Among rules at that level the highest weight is reported as the winner
- No match resolves to NON_URGENT
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Callable, Dict, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from triage_sim.schemas import (
    AcuityLevel,
    PatientProfile,
    SeverityLevel,
    TriagePriority,
)


class _Condition(BaseModel):
    model_config = ConfigDict(frozen=True)


class AcuityIs(_Condition):
    kind: Literal["acuity_is"] = "acuity_is"
    levels: Tuple[AcuityLevel, ...]


class SeverityIs(_Condition):
    kind: Literal["severity_is"] = "severity_is"
    levels: Tuple[SeverityLevel, ...]


class ComplaintContains(_Condition):
    """Case-insensitive substring match on the chief complaint."""

    kind: Literal["complaint_contains"] = "complaint_contains"
    terms: Tuple[str, ...]


class PainRange(_Condition):
    """``minimum <= pain < maximum``; an unreported pain level never matches."""

    kind: Literal["pain_range"] = "pain_range"
    minimum: Optional[int] = None
    maximum: Optional[int] = None


class AgeAtLeast(_Condition):
    kind: Literal["age_at_least"] = "age_at_least"
    age: int


VitalName = Literal[
    "heart_rate",
    "systolic",
    "diastolic",
    "respiratory_rate",
    "oxygen_saturation",
    "temperature",
    "blood_glucose",
]


class VitalOutOfRange(_Condition):
    """Matches when the vital is recorded and falls strictly outside the bounds."""

    kind: Literal["vital_out_of_range"] = "vital_out_of_range"
    vital: VitalName
    below: Optional[float] = None
    above: Optional[float] = None


class AllOf(_Condition):
    kind: Literal["all_of"] = "all_of"
    conditions: Tuple["Condition", ...]


class AnyOf(_Condition):
    kind: Literal["any_of"] = "any_of"
    conditions: Tuple["Condition", ...]


Condition = Annotated[
    Union[
        AcuityIs,
        SeverityIs,
        ComplaintContains,
        PainRange,
        AgeAtLeast,
        VitalOutOfRange,
        AllOf,
        AnyOf,
    ],
    Field(discriminator="kind"),
]

AllOf.model_rebuild()
AnyOf.model_rebuild()


class TriageRule(BaseModel):
    """One clinical guideline: if ``condition`` holds, suggest ``priority``."""

    model_config = ConfigDict(frozen=True)

    id: str
    priority: TriagePriority
    condition: Condition
    weight: float = Field(..., ge=0.0, le=1.0)
    reasoning: str


# ============================================================================
# Matching
# ============================================================================


def _vital_value(patient: PatientProfile, vital: str) -> Optional[float]:
    vitals = patient.vital_signs
    if vital in ("systolic", "diastolic"):
        if vitals.blood_pressure is None:
            return None
        return getattr(vitals.blood_pressure, vital)
    return getattr(vitals, vital)


def _match_vital(condition: VitalOutOfRange, patient: PatientProfile) -> bool:
    value = _vital_value(patient, condition.vital)
    if value is None:
        return False
    if condition.below is not None and value < condition.below:
        return True
    return condition.above is not None and value > condition.above


def _match_pain(condition: PainRange, patient: PatientProfile) -> bool:
    pain = patient.current_condition.pain_level
    if pain is None:
        return False
    if condition.minimum is not None and pain < condition.minimum:
        return False
    return condition.maximum is None or pain < condition.maximum


_MATCHERS: Dict[str, Callable[..., bool]] = {
    "acuity_is": lambda c, p: p.current_condition.acuity in c.levels,
    "severity_is": lambda c, p: p.current_condition.severity in c.levels,
    "complaint_contains": lambda c, p: any(
        term.lower() in p.current_condition.chief_complaint.lower() for term in c.terms
    ),
    "pain_range": _match_pain,
    "age_at_least": lambda c, p: p.demographics.age >= c.age,
    "vital_out_of_range": _match_vital,
    "all_of": lambda c, p: all(condition_matches(sub, p) for sub in c.conditions),
    "any_of": lambda c, p: any(condition_matches(sub, p) for sub in c.conditions),
}


def condition_matches(condition: Condition, patient: PatientProfile) -> bool:
    """Return True when ``patient`` satisfies ``condition``."""
    return _MATCHERS[condition.kind](condition, patient)


@dataclass(frozen=True)
class RuleEvaluation:
    """Outcome of running a rule table against one patient."""

    priority: TriagePriority
    # Rules that matched at any level, in table order
    matched: Tuple[TriageRule, ...]
    # Highest-weight rule at the resolved level; None when nothing matched
    winner: Optional[TriageRule]

    @property
    def supporting(self) -> Tuple[TriageRule, ...]:
        """Matching rules at the resolved priority level."""
        return tuple(rule for rule in self.matched if rule.priority == self.priority)

    @property
    def confidence(self) -> float:
        supporting = self.supporting
        if not supporting:
            return 0.3
        max_weight = max(rule.weight for rule in supporting)
        return min(0.95, max_weight * 0.8 + len(supporting) * 0.1)

    @property
    def reasoning(self) -> str:
        supporting = self.supporting
        if not supporting:
            return f"Default priority assignment: {int(self.priority)}"
        return "; ".join(rule.reasoning for rule in supporting)


def evaluate_rules(rules: Sequence[TriageRule], patient: PatientProfile) -> RuleEvaluation:
    """Resolve ``patient`` against ``rules``: most urgent match wins, ties by weight."""
    matched: List[TriageRule] = []
    winner: Optional[TriageRule] = None

    for rule in rules:
        if not condition_matches(rule.condition, patient):
            continue
        matched.append(rule)
        if (
            winner is None
            or rule.priority < winner.priority
            or (rule.priority == winner.priority and rule.weight > winner.weight)
        ):
            winner = rule

    priority = winner.priority if winner is not None else TriagePriority.NON_URGENT
    return RuleEvaluation(priority=priority, matched=tuple(matched), winner=winner)


# ============================================================================
# Default rule table
# ============================================================================

DEFAULT_TRIAGE_RULES: Tuple[TriageRule, ...] = (
    # Immediate
    TriageRule(
        id="critical-vitals",
        priority=TriagePriority.IMMEDIATE,
        condition=AnyOf(
            conditions=(
                VitalOutOfRange(vital="heart_rate", below=50, above=150),
                VitalOutOfRange(vital="systolic", below=80),
                VitalOutOfRange(vital="oxygen_saturation", below=90),
                VitalOutOfRange(vital="respiratory_rate", below=10, above=30),
            )
        ),
        weight=1.0,
        reasoning="Critical vital signs requiring immediate intervention",
    ),
    TriageRule(
        id="critical-acuity",
        priority=TriagePriority.IMMEDIATE,
        condition=AcuityIs(levels=(AcuityLevel.CRITICAL,)),
        weight=1.0,
        reasoning="Critical acuity level requires immediate care",
    ),
    TriageRule(
        id="critical-trauma",
        priority=TriagePriority.IMMEDIATE,
        condition=AllOf(
            conditions=(
                ComplaintContains(terms=("trauma",)),
                SeverityIs(levels=(SeverityLevel.CRITICAL,)),
            )
        ),
        weight=1.0,
        reasoning="Critical trauma requires immediate attention",
    ),
    # Urgent
    TriageRule(
        id="severe-symptoms",
        priority=TriagePriority.URGENT,
        condition=AnyOf(
            conditions=(
                SeverityIs(levels=(SeverityLevel.SEVERE,)),
                AcuityIs(levels=(AcuityLevel.HIGH,)),
            )
        ),
        weight=0.9,
        reasoning="Severe symptoms require urgent care",
    ),
    TriageRule(
        id="chest-pain",
        priority=TriagePriority.URGENT,
        condition=ComplaintContains(terms=("chest pain", "cardiac")),
        weight=0.9,
        reasoning="Chest pain may indicate cardiac emergency",
    ),
    TriageRule(
        id="high-pain-level",
        priority=TriagePriority.URGENT,
        condition=PainRange(minimum=8),
        weight=0.8,
        reasoning="High pain level (8+/10) requires urgent assessment",
    ),
    # Less urgent
    TriageRule(
        id="moderate-symptoms",
        priority=TriagePriority.LESS_URGENT,
        condition=AnyOf(
            conditions=(
                SeverityIs(levels=(SeverityLevel.MODERATE,)),
                AcuityIs(levels=(AcuityLevel.MEDIUM,)),
            )
        ),
        weight=0.7,
        reasoning="Moderate symptoms require timely assessment",
    ),
    TriageRule(
        id="moderate-pain",
        priority=TriagePriority.LESS_URGENT,
        condition=PainRange(minimum=5, maximum=8),
        weight=0.6,
        reasoning="Moderate pain level (5-7/10)",
    ),
    # Semi-urgent
    TriageRule(
        id="mild-symptoms-elderly",
        priority=TriagePriority.SEMI_URGENT,
        condition=AllOf(
            conditions=(
                SeverityIs(levels=(SeverityLevel.MILD,)),
                AgeAtLeast(age=65),
            )
        ),
        weight=0.6,
        reasoning="Elderly patients with mild symptoms may deteriorate",
    ),
    TriageRule(
        id="low-pain",
        priority=TriagePriority.SEMI_URGENT,
        condition=PainRange(minimum=3, maximum=5),
        weight=0.5,
        reasoning="Low-moderate pain level (3-4/10)",
    ),
    # Non-urgent
    TriageRule(
        id="mild-symptoms",
        priority=TriagePriority.NON_URGENT,
        condition=AllOf(
            conditions=(
                SeverityIs(levels=(SeverityLevel.MILD,)),
                AcuityIs(levels=(AcuityLevel.LOW,)),
            )
        ),
        weight=0.4,
        reasoning="Mild symptoms with low acuity",
    ),
    TriageRule(
        id="minimal-pain",
        priority=TriagePriority.NON_URGENT,
        condition=PainRange(maximum=3),
        weight=0.4,
        reasoning="Minimal pain level (<3/10)",
    ),
)
