"""
triage_sim - episodic emergency-department triage simulation.

A policy observes the waiting room, assigns triage priorities and is scored by
a multi-objective reward while patients arrive and resources free up.

Environments and policies are injected into the orchestrator; nothing here
touches files, databases or the network.
"""

__version__ = "0.1.0"

# Main simulation components
from .orchestrator import Orchestrator, RunState
from .monitor import PerformanceMonitor, PerformanceReport, PolicyComparison
from .events import EventFeed, LiveValueFeed, Subscription
from .config import Config

# Environment tier
from .environment import (
    BaseEnvironment,
    TriageEnvironment,
    TriageEnvironmentConfig,
    EnvironmentConfig,
    PatientGenerator,
    ResourcePool,
    ResourceType,
    optimal_priority,
)

# Policies
from .policy import (
    Policy,
    BasePolicy,
    RuleBasedTriagePolicy,
    RandomTriagePolicy,
    TriageRule,
    DEFAULT_TRIAGE_RULES,
    evaluate_rules,
)

# Errors
from .errors import (
    TriageSimulationError,
    EnvironmentNotResetError,
    InvalidActionError,
    EntityNotFoundError,
    NoValidActionError,
    UnsupportedActionKindError,
)

# Core schemas
from .schemas import (
    Action,
    ActionBase,
    ActionType,
    AcuityLevel,
    AssessmentSituation,
    EnvironmentMetrics,
    EpisodeEvent,
    EpisodeResult,
    Experience,
    InitialSituation,
    PatientProfile,
    PerformanceSummary,
    PolicyStats,
    PolicyType,
    Reward,
    RewardComponent,
    SeverityLevel,
    SimulationConfig,
    SimulationExport,
    SimulationMetrics,
    Situation,
    StepEvent,
    StepRecord,
    StepResult,
    TriageAssignAction,
    TriageDecision,
    TriagePriority,
    WaitAction,
    WaitingSituation,
)

__all__ = [
    "__version__",
    "Orchestrator",
    "RunState",
    "PerformanceMonitor",
    "PerformanceReport",
    "PolicyComparison",
    "EventFeed",
    "LiveValueFeed",
    "Subscription",
    "Config",
    "BaseEnvironment",
    "TriageEnvironment",
    "TriageEnvironmentConfig",
    "EnvironmentConfig",
    "PatientGenerator",
    "ResourcePool",
    "ResourceType",
    "optimal_priority",
    "Policy",
    "BasePolicy",
    "RuleBasedTriagePolicy",
    "RandomTriagePolicy",
    "TriageRule",
    "DEFAULT_TRIAGE_RULES",
    "evaluate_rules",
    "TriageSimulationError",
    "EnvironmentNotResetError",
    "InvalidActionError",
    "EntityNotFoundError",
    "NoValidActionError",
    "UnsupportedActionKindError",
    "Action",
    "ActionBase",
    "ActionType",
    "AcuityLevel",
    "AssessmentSituation",
    "EnvironmentMetrics",
    "EpisodeEvent",
    "EpisodeResult",
    "Experience",
    "InitialSituation",
    "PatientProfile",
    "PerformanceSummary",
    "PolicyStats",
    "PolicyType",
    "Reward",
    "RewardComponent",
    "SeverityLevel",
    "SimulationConfig",
    "SimulationExport",
    "SimulationMetrics",
    "Situation",
    "StepEvent",
    "StepRecord",
    "StepResult",
    "TriageAssignAction",
    "TriageDecision",
    "TriagePriority",
    "WaitAction",
    "WaitingSituation",
]
