"""Policy contract and shared bookkeeping.

A policy chooses one action per step from the admissible set the environment
offers and receives the resulting experience afterwards. ``BasePolicy`` keeps
the counters and the bounded experience log every policy needs so concrete
policies only implement decision logic.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Protocol, Sequence

from triage_sim.logging_utils import log_event
from triage_sim.schemas import (
    Action,
    Experience,
    PolicyStats,
    PolicyType,
    Situation,
)

DEFAULT_MAX_EXPERIENCES = 10_000


class Policy(Protocol):
    """Protocol for decision policies driven by the orchestrator."""

    id: str
    name: str
    policy_type: PolicyType

    async def select_action(self, situation: Situation, actions: Sequence[Action]) -> Action:
        """Choose one of ``actions`` for ``situation``.

        ``actions`` is the environment's admissible set for this step; the
        returned action must be one of them.
        """

        ...

    async def update(self, experience: Experience) -> None:
        """Receive the outcome of the action chosen last step."""
        ...

    def confidence(self, situation: Situation, action: Action) -> float:
        """Return confidence in ``action`` on a 0-1 scale."""
        ...

    def reset(self) -> None:
        ...

    def start_episode(self) -> None:
        ...

    def end_episode(self) -> None:
        ...

    def stats(self) -> PolicyStats:
        ...


class BasePolicy(ABC):
    """Counters, experience log and lifecycle hooks shared by concrete policies.

    Subclasses implement ``select_action`` and ``confidence``; ``update`` stores
    the experience by default.
    """

    def __init__(
        self,
        name: str,
        policy_type: PolicyType,
        *,
        policy_id: Optional[str] = None,
        max_experiences: int = DEFAULT_MAX_EXPERIENCES,
        enable_logging: bool = True,
    ) -> None:
        self.id = policy_id or str(uuid.uuid4())
        self.name = name
        self.policy_type = policy_type
        self.enable_logging = enable_logging
        self.is_training = True
        self.episode_count = 0
        self.total_steps = 0
        self._experiences: Deque[Experience] = deque(maxlen=max_experiences)

    @abstractmethod
    async def select_action(self, situation: Situation, actions: Sequence[Action]) -> Action:
        """Choose one of the admissible ``actions``."""

    @abstractmethod
    def confidence(self, situation: Situation, action: Action) -> float:
        """Return confidence in ``action`` on a 0-1 scale."""

    async def update(self, experience: Experience) -> None:
        self.add_experience(experience)

    def add_experience(self, experience: Experience) -> None:
        # Oldest entries fall off once the log is full
        self._experiences.append(experience)
        self.total_steps += 1

    def experiences(self) -> List[Experience]:
        return list(self._experiences)

    def recent_experiences(self, count: int) -> List[Experience]:
        if count <= 0:
            return []
        return list(self._experiences)[-count:]

    def set_training(self, is_training: bool) -> None:
        self.is_training = is_training
        self.log("info", f"Training mode {'enabled' if is_training else 'disabled'}")

    def reset(self) -> None:
        """Forget experiences and counters."""
        self._experiences.clear()
        self.episode_count = 0
        self.total_steps = 0
        self.log("info", "Policy reset")

    def start_episode(self) -> None:
        self.episode_count += 1
        self.log("debug", "Episode started", {"episode": self.episode_count})

    def end_episode(self) -> None:
        self.log("debug", "Episode ended", {"episode": self.episode_count})

    def stats(self) -> PolicyStats:
        return PolicyStats(
            id=self.id,
            name=self.name,
            type=self.policy_type,
            episode_count=self.episode_count,
            total_steps=self.total_steps,
            experience_count=len(self._experiences),
            is_training=self.is_training,
            metadata=self.stats_metadata(),
        )

    def stats_metadata(self) -> Dict[str, Any]:
        """Policy-specific counters merged into :meth:`stats`."""
        return {}

    def log(self, level: str, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        if self.enable_logging:
            log_event(level, f"Policy:{self.name}", message, data)
