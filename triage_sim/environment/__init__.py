"""Environment tier: queue, resources, reward model and patient generation."""

from .base import BaseEnvironment
from .generator import PatientGenerator, age_group_for
from .resources import ResourcePool
from .reward import (
    is_accurate,
    is_under_triage,
    optimal_priority,
    satisfaction,
    triage_cost,
    triage_reward,
    wait_reward,
)
from .schemas import (
    EnvironmentConfig,
    ResourceType,
    TriageEnvironmentConfig,
    TriageMetrics,
    TriageResource,
)
from .triage import TriageEnvironment, triage_action_id

__all__ = [
    "BaseEnvironment",
    "TriageEnvironment",
    "triage_action_id",
    "PatientGenerator",
    "age_group_for",
    "ResourcePool",
    "optimal_priority",
    "is_accurate",
    "is_under_triage",
    "satisfaction",
    "triage_cost",
    "triage_reward",
    "wait_reward",
    "EnvironmentConfig",
    "TriageEnvironmentConfig",
    "ResourceType",
    "TriageResource",
    "TriageMetrics",
]
