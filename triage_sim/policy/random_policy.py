"""Uniform random baseline policy."""

from __future__ import annotations

import math
import random
from typing import Any, Dict, Optional, Sequence

from triage_sim.errors import NoValidActionError
from triage_sim.schemas import (
    Action,
    ActionType,
    Experience,
    PolicyType,
    Situation,
)

from .base import BasePolicy


class RandomTriagePolicy(BasePolicy):
    """Chooses uniformly among admissible actions.

    Serves as the performance floor other policies are compared against.
    Seeding makes runs reproducible.
    """

    def __init__(
        self,
        name: str = "Random Baseline Policy",
        *,
        seed: Optional[int] = None,
        policy_id: Optional[str] = None,
        enable_logging: bool = True,
    ) -> None:
        super().__init__(name, PolicyType.RANDOM, policy_id=policy_id, enable_logging=enable_logging)
        self.seed = seed
        self._rng = random.Random(seed)
        self._distribution = {"triage_assign": 0, "wait": 0, "other": 0}

    async def select_action(self, situation: Situation, actions: Sequence[Action]) -> Action:
        if not actions:
            raise NoValidActionError(policy=self.name, reason="No actions available")

        action = self._rng.choice(list(actions))
        if action.type == ActionType.TRIAGE_ASSIGN:
            self._distribution["triage_assign"] += 1
        elif action.type == ActionType.WAIT:
            self._distribution["wait"] += 1
        else:
            self._distribution["other"] += 1

        self.log(
            "debug",
            "Random policy selected action",
            {"action_id": action.id, "selected_from": len(actions)},
        )
        return action

    async def update(self, experience: Experience) -> None:
        self.add_experience(experience)

    def confidence(self, situation: Situation, action: Action) -> float:
        return 0.0

    def set_seed(self, seed: int) -> None:
        self.seed = seed
        self._rng.seed(seed)
        self.log("info", "Random seed updated", {"seed": seed})

    def reset(self) -> None:
        super().reset()
        self._distribution = {"triage_assign": 0, "wait": 0, "other": 0}

    def action_distribution(self) -> Dict[str, int]:
        return dict(self._distribution)

    def performance_summary(self) -> Dict[str, float]:
        """Mean and variance of rewards plus the entropy (bits) of action kinds chosen."""
        rewards = [e.reward.value for e in self.experiences()]
        if not rewards:
            return {
                "total_actions": 0,
                "average_reward": 0.0,
                "reward_variance": 0.0,
                "action_entropy": 0.0,
                "experience_count": 0,
            }

        mean = sum(rewards) / len(rewards)
        variance = sum((r - mean) ** 2 for r in rewards) / len(rewards)

        total = sum(self._distribution.values())
        entropy = 0.0
        if total:
            for count in self._distribution.values():
                if count:
                    p = count / total
                    entropy -= p * math.log2(p)

        return {
            "total_actions": total,
            "average_reward": mean,
            "reward_variance": variance,
            "action_entropy": entropy,
            "experience_count": len(rewards),
        }

    def stats_metadata(self) -> Dict[str, Any]:
        return {"seed": self.seed, "action_distribution": self.action_distribution()}
