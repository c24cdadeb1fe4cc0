"""Emergency-department triage environment.

Each step the policy either assigns a triage priority to one waiting patient or
waits. After the action is applied the department evolves on its own: a new
patient may arrive and occupied resources may free up. The next situation is
built from that post-update world, so the queue snapshot a policy sees always
includes the latest arrivals.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, Tuple

from triage_sim.errors import (
    EntityNotFoundError,
    InvalidActionError,
    UnsupportedActionKindError,
)
from triage_sim.logging_utils import log_event
from triage_sim.schemas import (
    Action,
    AssessmentSituation,
    EnvironmentMetrics,
    InitialSituation,
    PatientProfile,
    Reward,
    Situation,
    StepResult,
    TriageAssignAction,
    TriageDecision,
    TriagePriority,
    WaitAction,
    WaitingSituation,
)

from .base import BaseEnvironment
from .generator import PatientGenerator
from .resources import ResourcePool
from .reward import (
    is_accurate,
    is_under_triage,
    satisfaction,
    triage_cost,
    triage_reward,
    wait_reward,
)
from .schemas import TriageEnvironmentConfig, TriageMetrics

# Minutes an assessment takes at each priority level
TRIAGE_DURATION_MINUTES: Dict[TriagePriority, float] = {
    TriagePriority.IMMEDIATE: 2,
    TriagePriority.URGENT: 5,
    TriagePriority.LESS_URGENT: 8,
    TriagePriority.SEMI_URGENT: 10,
    TriagePriority.NON_URGENT: 12,
}


def triage_action_id(patient_id: str, priority: TriagePriority) -> str:
    return f"triage-{patient_id}-priority-{int(priority)}"


class TriageEnvironment(BaseEnvironment):
    """Queue of waiting patients, a fixed resource pool and a reward model."""

    def __init__(self, config: Optional[TriageEnvironmentConfig] = None) -> None:
        config = config or TriageEnvironmentConfig()
        super().__init__(config)
        self.config: TriageEnvironmentConfig = config

        self.generator = PatientGenerator(self.rng, mode=config.patient_generator_mode)
        self.resources = ResourcePool(config.resource_counts, self.rng)
        self._queue: List[PatientProfile] = []
        self._decisions: List[TriageDecision] = []
        self._counters = TriageMetrics()

    # ------------------------------------------------------------------
    # Episode lifecycle
    # ------------------------------------------------------------------

    async def reset(self) -> Situation:
        self._start_episode()
        self._queue = self.generator.generate_batch(self.config.initial_patient_count)
        self._decisions = []
        self._counters = TriageMetrics()
        self.resources.reset()

        situation = InitialSituation(
            id=self._situation_id(),
            queue_length=len(self._queue),
            available_resources=self.resources.available_count,
            queue=tuple(self._queue),
        )
        self._current_state = situation
        self._log(
            "info",
            "Environment reset",
            {"episode": self.total_episodes, "queue_length": len(self._queue)},
        )
        return situation

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def available_actions(self, situation: Optional[Situation] = None) -> List[Action]:
        actions: List[Action] = []
        for patient in self._queue:
            for priority in TriagePriority:
                actions.append(
                    TriageAssignAction(
                        id=triage_action_id(patient.id, priority),
                        patient_id=patient.id,
                        priority=priority,
                        estimated_duration=TRIAGE_DURATION_MINUTES[priority],
                        reasoning=f"Assign priority {int(priority)} to patient {patient.id}",
                    )
                )
        actions.append(
            WaitAction(
                duration=self.config.wait_duration,
                estimated_duration=self.config.wait_duration,
            )
        )
        return actions

    async def step(self, action: Action) -> StepResult:
        self._require_reset()

        admissible = [candidate.id for candidate in self.available_actions()]
        if action.id not in admissible:
            raise InvalidActionError(action_id=action.id, admissible=admissible)

        decision: Optional[TriageDecision] = None
        if isinstance(action, TriageAssignAction):
            reward, decision = self._apply_assignment(action)
        elif isinstance(action, WaitAction):
            reward = wait_reward(action.duration)
        else:
            raise UnsupportedActionKindError(
                action_type=action.type.value,
                environment=self.name,
            )

        arrivals = self._simulate_arrivals()
        recovered = self.resources.recover(self.config.resource_recovery_probability)
        occupied = self.resources.occupy(self.config.resource_occupancy_probability)

        situation = self._next_situation(decision, getattr(action, "duration", 0.0))
        self._advance(situation)
        done = situation.is_terminal or self.is_done()

        metrics = self.metrics()
        info: Dict[str, Any] = {
            "queue_length": len(self._queue),
            "arrivals": arrivals,
            "available_resources": self.resources.available_count,
            "recovered_resources": recovered,
            "occupied_resources": occupied,
            "metrics": metrics.model_dump(),
        }
        return StepResult(state=situation, reward=reward, done=done, info=info)

    def _apply_assignment(self, action: TriageAssignAction) -> Tuple[Reward, TriageDecision]:
        index = self._find_patient(action.patient_id)
        patient = self._queue[index]
        priority = TriagePriority(action.priority)

        # Estimated against the queue as it stood before this patient leaves it
        wait_time = self.resources.estimate_wait(priority, len(self._queue))

        decision = TriageDecision(
            patient_id=patient.id,
            priority=priority,
            estimated_wait_time=wait_time,
            care_path_id=f"path-{int(priority)}",
            reasoning=action.reasoning,
        )
        self._decisions.append(decision)

        reward = triage_reward(patient, priority, wait_time)
        under_triaged = is_under_triage(patient, priority)
        self._counters.record(
            wait_time=wait_time,
            accurate=is_accurate(patient, priority),
            satisfaction=satisfaction(wait_time),
            cost=triage_cost(priority),
            safety_incident=under_triaged,
        )
        del self._queue[index]

        if under_triaged:
            self._log(
                "warning",
                "Critical patient under-triaged",
                {"patient_id": patient.id, "priority": int(priority)},
            )
        self._log(
            "debug",
            "Patient triaged",
            {"patient_id": patient.id, "priority": int(priority), "reward": reward.value},
        )
        return reward, decision

    def _find_patient(self, patient_id: str) -> int:
        for index, patient in enumerate(self._queue):
            if patient.id == patient_id:
                return index
        raise EntityNotFoundError(patient_id=patient_id)

    # ------------------------------------------------------------------
    # World evolution
    # ------------------------------------------------------------------

    def _simulate_arrivals(self) -> int:
        if self.rng.random() < self.config.patient_arrival_rate and len(self._queue) < self.config.max_queue_length:
            self._queue.append(self.generator.generate())
            self._log("info", "New patient arrived", {"queue_length": len(self._queue)})
            return 1
        return 0

    def _next_situation(
        self, decision: Optional[TriageDecision], wait_duration: float
    ) -> Situation:
        common = {
            "id": self._situation_id(),
            "queue_length": len(self._queue),
            "available_resources": self.resources.available_count,
            "queue": tuple(self._queue),
        }
        if decision is not None:
            # Steps elapsed including the one being applied
            steps_elapsed = self.episode_steps + 1
            terminal = not self._queue and steps_elapsed > self.config.terminal_step_threshold
            return AssessmentSituation(
                **common,
                is_terminal=terminal,
                recent_triage=decision,
                metrics=self.metrics(),
            )
        return WaitingSituation(**common, wait_duration=wait_duration)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def metrics(self) -> EnvironmentMetrics:
        counters = self._counters
        return EnvironmentMetrics(
            throughput=self.throughput(),
            average_wait_time=counters.average_wait_time,
            patient_satisfaction=counters.average_satisfaction,
            resource_utilization=self.resources.utilization(),
            cost_per_patient=counters.cost_per_patient,
            safety_incidents=counters.safety_incidents,
            priority_accuracy=counters.priority_accuracy,
            patients_processed=counters.patients_processed,
        )

    def queue_snapshot(self) -> Tuple[PatientProfile, ...]:
        return tuple(self._queue)

    def decision_history(self) -> Tuple[TriageDecision, ...]:
        return tuple(self._decisions)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _situation_id(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128), version=4))

    def _log(self, level: str, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        if self.config.enable_logging:
            log_event(level, f"Environment:{self.name}", message, data)
