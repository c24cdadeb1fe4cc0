"""Schemas owned by the environment tier.

Configuration is validated with pydantic. Resources and metric counters are
mutable dataclasses because the environment updates them in place every step;
callers only ever see derived :class:`~triage_sim.schemas.EnvironmentMetrics`
snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from triage_sim.config import Config
from triage_sim.schemas import EnvironmentType, TriagePriority


class ResourceType(str, Enum):
    TRAUMA_BAY = "trauma_bay"
    URGENT_CARE = "urgent_care"
    GENERAL_BED = "general_bed"


class EnvironmentConfig(BaseModel):
    """Options shared by every environment."""

    id: str = "environment"
    name: str = "Environment"
    type: EnvironmentType
    max_steps_per_episode: int = Field(
        default_factory=lambda: Config.MAX_STEPS_PER_EPISODE, ge=1
    )
    enable_logging: bool = True
    random_seed: Optional[int] = Field(
        default_factory=lambda: Config.RANDOM_SEED,
        description="Seed for all stochastic processes; None draws fresh randomness",
    )


class TriageEnvironmentConfig(EnvironmentConfig):
    """Emergency-department specific options."""

    id: str = "triage-ed"
    name: str = "Emergency Department Triage"
    type: EnvironmentType = EnvironmentType.EMERGENCY_DEPARTMENT
    initial_patient_count: int = Field(default_factory=lambda: Config.INITIAL_PATIENTS, ge=0)
    patient_arrival_rate: float = Field(
        default_factory=lambda: Config.ARRIVAL_RATE,
        ge=0.0,
        le=1.0,
        description="Per-step probability that one new patient arrives",
    )
    max_queue_length: int = Field(20, ge=0, description="Arrivals stop once the queue is this long")
    resource_recovery_probability: float = Field(0.05, ge=0.0, le=1.0)
    resource_occupancy_probability: float = Field(
        0.0,
        ge=0.0,
        le=1.0,
        description="Per-step probability that an available resource becomes occupied",
    )
    resource_counts: Dict[ResourceType, int] = Field(
        default_factory=lambda: {
            ResourceType.TRAUMA_BAY: 2,
            ResourceType.URGENT_CARE: 3,
            ResourceType.GENERAL_BED: 3,
        },
        description="Number of resources of each type",
    )
    wait_duration: float = Field(5, ge=0, description="Minutes a wait action lasts")
    terminal_step_threshold: int = Field(
        50, ge=0, description="An empty queue ends the episode only after this many steps"
    )
    patient_generator_mode: Literal["basic", "clinical"] = "basic"


@dataclass
class TriageResource:
    """A bay, room or bed that can serve a set of priority levels."""

    id: str
    type: ResourceType
    capacity: int
    priority_levels: List[TriagePriority]
    # Patients per hour
    throughput: float
    available: bool = True

    def serves(self, priority: TriagePriority) -> bool:
        return priority in self.priority_levels


@dataclass
class TriageMetrics:
    """Running counters for one episode."""

    patients_processed: int = 0
    wait_times: List[float] = field(default_factory=list)
    accurate_triages: int = 0
    satisfaction_scores: List[float] = field(default_factory=list)
    total_cost: float = 0.0
    safety_incidents: int = 0

    def record(
        self,
        *,
        wait_time: float,
        accurate: bool,
        satisfaction: float,
        cost: float,
        safety_incident: bool,
    ) -> None:
        self.patients_processed += 1
        self.wait_times.append(wait_time)
        if accurate:
            self.accurate_triages += 1
        self.satisfaction_scores.append(satisfaction)
        self.total_cost += cost
        if safety_incident:
            self.safety_incidents += 1

    @property
    def average_wait_time(self) -> float:
        if not self.wait_times:
            return 0.0
        return sum(self.wait_times) / len(self.wait_times)

    @property
    def average_satisfaction(self) -> float:
        if not self.satisfaction_scores:
            return 0.0
        return sum(self.satisfaction_scores) / len(self.satisfaction_scores)

    @property
    def cost_per_patient(self) -> float:
        if self.patients_processed == 0:
            return 0.0
        return self.total_cost / self.patients_processed

    @property
    def priority_accuracy(self) -> float:
        if self.patients_processed == 0:
            return 0.0
        return self.accurate_triages / self.patients_processed
