"""Decision policies: the contract, the guideline table policy and a random baseline."""

from .base import BasePolicy, Policy
from .random_policy import RandomTriagePolicy
from .rule_based import DecisionRecord, RuleBasedTriagePolicy
from .rules import (
    DEFAULT_TRIAGE_RULES,
    AcuityIs,
    AgeAtLeast,
    AllOf,
    AnyOf,
    ComplaintContains,
    Condition,
    PainRange,
    RuleEvaluation,
    SeverityIs,
    TriageRule,
    VitalOutOfRange,
    condition_matches,
    evaluate_rules,
)

__all__ = [
    "Policy",
    "BasePolicy",
    "RuleBasedTriagePolicy",
    "RandomTriagePolicy",
    "DecisionRecord",
    "TriageRule",
    "Condition",
    "AcuityIs",
    "SeverityIs",
    "ComplaintContains",
    "PainRange",
    "AgeAtLeast",
    "VitalOutOfRange",
    "AllOf",
    "AnyOf",
    "RuleEvaluation",
    "DEFAULT_TRIAGE_RULES",
    "condition_matches",
    "evaluate_rules",
]
