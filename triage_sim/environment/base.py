"""
Environment interface for episodic triage simulations.

Subclasses own the world: the queue of waiting patients, shared resources and
the metric counters. The orchestrator only talks to them through the methods
declared here.

Key responsibilities:
- reset() - Start a new episode and return the initial situation
- available_actions() - Enumerate admissible actions for the current situation
- step() - Validate and apply one action, evolve the world, score the outcome
- metrics() / stats() - Expose derived read-only snapshots

Lifecycle bookkeeping (episode counters, step cap, throughput) lives in the
base class so every environment reports it the same way.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from triage_sim.errors import EnvironmentNotResetError
from triage_sim.schemas import (
    Action,
    EnvironmentMetrics,
    EnvironmentStats,
    Situation,
    StepResult,
)

from .schemas import EnvironmentConfig


class BaseEnvironment(ABC):
    """Abstract base class for healthcare environments."""

    def __init__(self, config: EnvironmentConfig) -> None:
        self.config = config
        self.id = config.id
        self.name = config.name
        self.type = config.type
        self.max_steps_per_episode = config.max_steps_per_episode
        self.rng = random.Random(config.random_seed)

        self._current_state: Optional[Situation] = None
        self.episode_steps = 0
        self.total_episodes = 0
        self.completed_episodes = 0
        self._episode_completed = False
        self.start_time: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    @abstractmethod
    async def reset(self) -> Situation:
        """Start a new episode and return its initial situation."""

    @abstractmethod
    def available_actions(self, situation: Optional[Situation] = None) -> List[Action]:
        """Return admissible actions without mutating anything."""

    @abstractmethod
    async def step(self, action: Action) -> StepResult:
        """Apply ``action`` and advance the world by one step."""

    @abstractmethod
    def metrics(self) -> EnvironmentMetrics:
        """Return a derived snapshot of the environment's service metrics."""

    # ------------------------------------------------------------------
    # Shared lifecycle
    # ------------------------------------------------------------------

    @property
    def current_state(self) -> Situation:
        if self._current_state is None:
            raise EnvironmentNotResetError(environment=self.name)
        return self._current_state

    @property
    def is_initialized(self) -> bool:
        return self._current_state is not None

    def is_done(self) -> bool:
        if self._current_state is None:
            return False
        return (
            self._current_state.is_terminal
            or self.episode_steps >= self.max_steps_per_episode
            or self.is_custom_terminal_condition()
        )

    def is_custom_terminal_condition(self) -> bool:
        """Override to end episodes on domain-specific conditions."""
        return False

    def set_max_steps_per_episode(self, max_steps: int) -> None:
        if max_steps < 1:
            raise ValueError("max_steps_per_episode must be at least 1")
        self.max_steps_per_episode = max_steps

    def throughput(self) -> float:
        """Completed episodes per wall-clock hour since the first reset."""
        if self.start_time is None or self.completed_episodes == 0:
            return 0.0
        hours = (datetime.now(timezone.utc) - self.start_time).total_seconds() / 3600
        if hours <= 0:
            return 0.0
        return self.completed_episodes / hours

    def stats(self) -> EnvironmentStats:
        return EnvironmentStats(
            id=self.id,
            name=self.name,
            type=self.type,
            total_episodes=self.total_episodes,
            current_episode_steps=self.episode_steps,
            max_steps_per_episode=self.max_steps_per_episode,
            is_done=self.is_done(),
            start_time=self.start_time,
            config=self._config_snapshot(),
        )

    def _config_snapshot(self) -> Dict[str, object]:
        snapshot = self.config.model_dump(mode="json")
        snapshot["max_steps_per_episode"] = self.max_steps_per_episode
        return snapshot

    def _start_episode(self) -> None:
        self.episode_steps = 0
        self.total_episodes += 1
        self._episode_completed = False
        if self.start_time is None:
            self.start_time = datetime.now(timezone.utc)

    def _advance(self, situation: Situation) -> None:
        """Record the post-step situation and count the step."""
        self._current_state = situation
        self.episode_steps += 1
        if self.is_done() and not self._episode_completed:
            self._episode_completed = True
            self.completed_episodes += 1

    def _require_reset(self) -> None:
        if self._current_state is None:
            raise EnvironmentNotResetError(environment=self.name)
