"""Shared emergency-department resources and wait-time estimation.

Assignments never claim a resource. Availability changes only through the
per-step recovery and occupancy processes driven by the environment.
"""

from __future__ import annotations

import random
from typing import Dict, List

from triage_sim.schemas import TriagePriority

from .schemas import ResourceType, TriageResource

# Priority levels and hourly throughput served by each resource type
RESOURCE_PROFILES: Dict[ResourceType, tuple[List[TriagePriority], float]] = {
    ResourceType.TRAUMA_BAY: ([TriagePriority.IMMEDIATE], 500.0),
    ResourceType.URGENT_CARE: ([TriagePriority.URGENT, TriagePriority.LESS_URGENT], 200.0),
    ResourceType.GENERAL_BED: ([TriagePriority.SEMI_URGENT, TriagePriority.NON_URGENT], 100.0),
}

# Minutes added when no eligible resource is free
BASE_WAIT_MINUTES: Dict[TriagePriority, float] = {
    TriagePriority.IMMEDIATE: 0.0,
    TriagePriority.URGENT: 15.0,
    TriagePriority.LESS_URGENT: 60.0,
    TriagePriority.SEMI_URGENT: 120.0,
    TriagePriority.NON_URGENT: 240.0,
}

QUEUE_WAIT_MINUTES_PER_PATIENT = 10.0
AVAILABLE_WAIT_MAX_MINUTES = 30.0


class ResourcePool:
    """Fixed set of bays, rooms and beds with independently evolving availability."""

    def __init__(self, counts: Dict[ResourceType, int], rng: random.Random) -> None:
        self._counts = dict(counts)
        self._rng = rng
        self.resources: List[TriageResource] = []
        self.reset()

    def reset(self) -> None:
        """Rebuild the pool with every resource available."""
        self.resources = []
        for resource_type, (levels, throughput) in RESOURCE_PROFILES.items():
            for index in range(self._counts.get(resource_type, 0)):
                self.resources.append(
                    TriageResource(
                        id=f"{resource_type.value}-{index + 1}",
                        type=resource_type,
                        capacity=1,
                        priority_levels=list(levels),
                        throughput=throughput,
                    )
                )

    @property
    def available_count(self) -> int:
        return sum(1 for resource in self.resources if resource.available)

    def has_available(self, priority: TriagePriority) -> bool:
        return any(r.available and r.serves(priority) for r in self.resources)

    def estimate_wait(self, priority: TriagePriority, queue_length: int) -> float:
        """Estimated wait in minutes for a patient given ``priority``.

        ``queue_length`` is the queue size before the patient leaves it.
        """
        if self.has_available(priority):
            return self._rng.random() * AVAILABLE_WAIT_MAX_MINUTES
        return BASE_WAIT_MINUTES[priority] + queue_length * QUEUE_WAIT_MINUTES_PER_PATIENT

    def recover(self, probability: float) -> int:
        """Give each unavailable resource a chance to free up. Returns how many did."""
        recovered = 0
        for resource in self.resources:
            if not resource.available and self._rng.random() < probability:
                resource.available = True
                recovered += 1
        return recovered

    def occupy(self, probability: float) -> int:
        """Give each available resource a chance to become occupied."""
        if probability <= 0:
            return 0
        occupied = 0
        for resource in self.resources:
            if resource.available and self._rng.random() < probability:
                resource.available = False
                occupied += 1
        return occupied

    def utilization(self) -> Dict[str, float]:
        """Fraction of each resource type that is currently unavailable."""
        totals: Dict[str, int] = {}
        busy: Dict[str, int] = {}
        for resource in self.resources:
            key = resource.type.value
            totals[key] = totals.get(key, 0) + 1
            if not resource.available:
                busy[key] = busy.get(key, 0) + 1
        return {key: busy.get(key, 0) / total for key, total in totals.items()}
