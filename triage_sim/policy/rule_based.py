"""Rule-based triage policy.

Applies a fixed table of clinical guidelines (see :mod:`triage_sim.policy.rules`)
to the first waiting patient and picks the matching assignment action. The
policy never learns: ``update`` only records experiences and outcome counts.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from triage_sim.errors import NoValidActionError
from triage_sim.schemas import (
    Action,
    Experience,
    PatientProfile,
    PolicyType,
    Situation,
    TriageAssignAction,
    TriagePriority,
    WaitAction,
)

from .base import BasePolicy
from .rules import DEFAULT_TRIAGE_RULES, TriageRule, evaluate_rules

DECISION_HISTORY_LIMIT = 1000
DECISION_HISTORY_KEEP = 500

# Rewards beyond these bounds are logged as notable outcomes
STRONG_POSITIVE_REWARD = 5.0
STRONG_NEGATIVE_REWARD = -5.0


@dataclass(frozen=True)
class DecisionRecord:
    patient_id: str
    priority: TriagePriority
    confidence: float
    reasoning: str
    action_id: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RuleBasedTriagePolicy(BasePolicy):
    """Triage by clinical guideline table; the first queued patient is handled first."""

    def __init__(
        self,
        name: str = "Rule-Based Triage Policy",
        *,
        rules: Optional[Sequence[TriageRule]] = None,
        policy_id: Optional[str] = None,
        max_experiences: int = 10_000,
        enable_logging: bool = True,
    ) -> None:
        super().__init__(
            name,
            PolicyType.RULE_BASED,
            policy_id=policy_id,
            max_experiences=max_experiences,
            enable_logging=enable_logging,
        )
        self.rules: Tuple[TriageRule, ...] = tuple(rules if rules is not None else DEFAULT_TRIAGE_RULES)
        self._decisions: List[DecisionRecord] = []
        self._outcomes = {"positive": 0, "negative": 0, "zero": 0}

    async def select_action(self, situation: Situation, actions: Sequence[Action]) -> Action:
        assignments = [a for a in actions if isinstance(a, TriageAssignAction)]
        if not assignments:
            return self._wait_or_raise(actions)

        by_patient = self._group_by_patient(assignments)
        patient_id, patient_actions = next(iter(by_patient.items()))

        patient = self._lookup_patient(situation, patient_id)
        if patient is None:
            self.log(
                "warning",
                "Patient profile missing from situation, using default priority",
                {"patient_id": patient_id},
            )
            priority = TriagePriority.NON_URGENT
            confidence = 0.3
            reasoning = f"Default priority assignment: {int(priority)}"
            matched_ids: List[str] = []
        else:
            evaluation = evaluate_rules(self.rules, patient)
            priority = evaluation.priority
            confidence = evaluation.confidence
            reasoning = evaluation.reasoning
            matched_ids = [rule.id for rule in evaluation.matched]

        chosen = next((a for a in patient_actions if a.priority == priority), None)
        if chosen is None:
            self.log(
                "warning",
                "Could not find action for recommended priority, using fallback",
                {
                    "patient_id": patient_id,
                    "recommended_priority": int(priority),
                    "available_priorities": [int(a.priority) for a in patient_actions],
                },
            )
            return patient_actions[0]

        self._record_decision(
            DecisionRecord(
                patient_id=patient_id,
                priority=priority,
                confidence=confidence,
                reasoning=reasoning,
                action_id=chosen.id,
            )
        )
        self.log(
            "info",
            "Selected triage action",
            {
                "patient_id": patient_id,
                "priority": int(priority),
                "matching_rules": matched_ids,
                "reasoning": reasoning,
            },
        )
        return chosen

    async def update(self, experience: Experience) -> None:
        self.add_experience(experience)

        value = experience.reward.value
        if value > 0:
            self._outcomes["positive"] += 1
        elif value < 0:
            self._outcomes["negative"] += 1
        else:
            self._outcomes["zero"] += 1

        if value > STRONG_POSITIVE_REWARD:
            self.log("info", "Positive outcome from rule-based decision", {"reward": value})
        elif value < STRONG_NEGATIVE_REWARD:
            self.log("warning", "Negative outcome from rule-based decision", {"reward": value})

    def confidence(self, situation: Situation, action: Action) -> float:
        if not isinstance(action, TriageAssignAction):
            return 0.5
        for record in reversed(self._decisions):
            if record.patient_id == action.patient_id and record.priority == action.priority:
                return record.confidence
        return 0.5

    def reset(self) -> None:
        super().reset()
        self._decisions = []
        self._outcomes = {"positive": 0, "negative": 0, "zero": 0}

    def decision_history(self) -> List[DecisionRecord]:
        return list(self._decisions)

    def stats_metadata(self) -> Dict[str, Any]:
        return {
            "rule_count": len(self.rules),
            "decisions_recorded": len(self._decisions),
            "outcomes": dict(self._outcomes),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _wait_or_raise(self, actions: Sequence[Action]) -> Action:
        wait = next((a for a in actions if isinstance(a, WaitAction)), None)
        if wait is None:
            raise NoValidActionError(policy=self.name)
        return wait

    @staticmethod
    def _group_by_patient(
        assignments: Sequence[TriageAssignAction],
    ) -> "OrderedDict[str, List[TriageAssignAction]]":
        grouped: "OrderedDict[str, List[TriageAssignAction]]" = OrderedDict()
        for action in assignments:
            grouped.setdefault(action.patient_id, []).append(action)
        return grouped

    @staticmethod
    def _lookup_patient(situation: Situation, patient_id: str) -> Optional[PatientProfile]:
        return next((p for p in situation.queue if p.id == patient_id), None)

    def _record_decision(self, record: DecisionRecord) -> None:
        self._decisions.append(record)
        if len(self._decisions) > DECISION_HISTORY_LIMIT:
            self._decisions = self._decisions[-DECISION_HISTORY_KEEP:]
