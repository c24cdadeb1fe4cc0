"""
Cross-policy performance tracking.

``PerformanceMonitor`` listens to one or more orchestrators through their step
and episode feeds and keeps per-policy counters: step count, decision time,
reward and how often a step scored below the error threshold. From those it
ranks policies by efficiency (reward per second of decision time) and builds
a report with recommendations and alerts.

The monitor only observes. It never pauses, stops or otherwise drives a run.
"""

from __future__ import annotations

import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Deque, Dict, Iterable, List, Literal, Optional, Tuple

from pydantic import Field

from .environment.base import BaseEnvironment
from .events import Subscription
from .logging_utils import log_event
from .orchestrator import Orchestrator
from .policy.base import Policy
from .schemas import (
    EnvironmentType,
    EpisodeResult,
    FrozenModel,
    PolicyType,
    StepRecord,
    utcnow,
)

# A step whose reward falls below this counts as an error
ERROR_REWARD_THRESHOLD = -10.0

# Measurements averaged by real_time_metrics()
MEASUREMENT_WINDOW = 100
MAX_MEASUREMENTS = 10_000
THROUGHPUT_WINDOW = timedelta(minutes=1)

SLOW_STEP_MS = 1000.0
STEP_TIME_ALERT_MS = 2000.0
LOW_THROUGHPUT_STEPS_PER_MINUTE = 10


# ============================================================================
# Records
# ============================================================================


class Measurement(FrozenModel):
    kind: Literal["step", "episode"]
    policy_id: str
    episode: int = 0
    duration_ms: float = Field(0.0, ge=0)
    reward: float = 0.0
    step_count: int = 1
    timestamp: datetime = Field(default_factory=utcnow)


class PolicyComparisonEntry(FrozenModel):
    policy_id: str
    policy_name: str
    policy_type: PolicyType
    average_step_time_ms: float
    average_reward: float
    total_steps: int
    error_rate: float
    # Reward per second of decision time
    efficiency: float


class PolicyComparison(FrozenModel):
    timestamp: datetime = Field(default_factory=utcnow)
    policy_count: int = 0
    # Highest efficiency first
    comparisons: Tuple[PolicyComparisonEntry, ...] = ()
    winner: Optional[PolicyComparisonEntry] = None
    insights: Tuple[str, ...] = ()


class EnvironmentPerformanceEntry(FrozenModel):
    environment_id: str
    environment_type: EnvironmentType
    episode_count: int
    total_steps: int
    average_episode_length: float


class RealTimeMetrics(FrozenModel):
    timestamp: datetime = Field(default_factory=utcnow)
    session_uptime_ms: float = 0.0
    average_step_time_ms: float = 0.0
    total_measurements: int = 0
    active_policies: int = 0
    # Steps recorded during the last minute
    recent_throughput: int = 0


class PerformanceAlert(FrozenModel):
    type: Literal["performance", "throughput"]
    severity: Literal["low", "medium", "high"]
    message: str
    timestamp: datetime = Field(default_factory=utcnow)


class PerformanceReport(FrozenModel):
    session_id: str
    generated_at: datetime = Field(default_factory=utcnow)
    session_duration_ms: float
    overall_metrics: RealTimeMetrics
    policy_comparison: PolicyComparison
    recommendations: Tuple[str, ...] = ()
    alerts: Tuple[PerformanceAlert, ...] = ()


class PerformanceExport(FrozenModel):
    session_id: str
    exported_at: datetime = Field(default_factory=utcnow)
    measurements: Tuple[Measurement, ...] = ()
    policy_metrics: Dict[str, PolicyComparisonEntry] = Field(default_factory=dict)
    environment_metrics: Dict[str, EnvironmentPerformanceEntry] = Field(default_factory=dict)
    summary: RealTimeMetrics


# ============================================================================
# Running counters
# ============================================================================


@dataclass
class PolicyPerformance:
    """Running counters for one policy across every run the monitor saw."""

    policy_id: str
    policy_name: str
    policy_type: PolicyType
    step_count: int = 0
    total_step_time_ms: float = 0.0
    total_reward: float = 0.0
    error_count: int = 0
    episode_count: int = 0
    last_update: Optional[datetime] = None

    def record_step(self, duration_ms: float, reward: float, is_error: bool) -> None:
        self.step_count += 1
        self.total_step_time_ms += duration_ms
        self.total_reward += reward
        if is_error:
            self.error_count += 1
        self.last_update = utcnow()

    @property
    def average_step_time_ms(self) -> float:
        if self.step_count == 0:
            return 0.0
        return self.total_step_time_ms / self.step_count

    @property
    def average_reward(self) -> float:
        if self.step_count == 0:
            return 0.0
        return self.total_reward / self.step_count

    @property
    def error_rate(self) -> float:
        if self.step_count == 0:
            return 0.0
        return self.error_count / self.step_count

    @property
    def efficiency(self) -> float:
        if self.total_step_time_ms <= 0:
            return 0.0
        return self.total_reward / (self.total_step_time_ms / 1000)

    def to_entry(self) -> PolicyComparisonEntry:
        return PolicyComparisonEntry(
            policy_id=self.policy_id,
            policy_name=self.policy_name,
            policy_type=self.policy_type,
            average_step_time_ms=self.average_step_time_ms,
            average_reward=self.average_reward,
            total_steps=self.step_count,
            error_rate=self.error_rate,
            efficiency=self.efficiency,
        )


@dataclass
class EnvironmentPerformance:
    environment_id: str
    environment_type: EnvironmentType
    episode_count: int = 0
    total_steps: int = 0

    def to_entry(self) -> EnvironmentPerformanceEntry:
        return EnvironmentPerformanceEntry(
            environment_id=self.environment_id,
            environment_type=self.environment_type,
            episode_count=self.episode_count,
            total_steps=self.total_steps,
            average_episode_length=self.total_steps / max(1, self.episode_count),
        )


# ============================================================================
# Monitor
# ============================================================================


class PerformanceMonitor:
    """
    Compares policies by observing the runs that exercise them.

    Attach the monitor to every orchestrator whose policy should be ranked,
    run them, then call :meth:`compare_policies` or :meth:`report`.
    """

    def __init__(
        self,
        *,
        enable_logging: bool = True,
        error_reward_threshold: float = ERROR_REWARD_THRESHOLD,
        measurement_window: int = MEASUREMENT_WINDOW,
        max_measurements: int = MAX_MEASUREMENTS,
    ) -> None:
        if measurement_window < 1:
            raise ValueError("measurement_window must be at least 1")
        self.enable_logging = enable_logging
        self.error_reward_threshold = error_reward_threshold
        self.measurement_window = measurement_window

        self.session_id = self._new_session_id()
        self.start_time = utcnow()
        self._measurements: Deque[Measurement] = deque(maxlen=max_measurements)
        self._policies: Dict[str, PolicyPerformance] = {}
        self._environments: Dict[str, EnvironmentPerformance] = {}
        self._subscriptions: List[Subscription] = []

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def attach(self, orchestrator: Orchestrator) -> None:
        """Subscribe to ``orchestrator``'s step and episode feeds."""
        policy = orchestrator.policy
        environment = orchestrator.environment
        self._subscriptions.append(
            orchestrator.step_events.subscribe(
                lambda event: self.record_step(policy, event.step_record, episode=event.episode)
            )
        )
        self._subscriptions.append(
            orchestrator.episode_events.subscribe(
                lambda event: self.record_episode(policy, event.result, environment=environment)
            )
        )
        self._log("info", "Attached to orchestrator", {"policy": policy.name, "environment": environment.name})

    def detach(self) -> None:
        """Stop observing every orchestrator attached so far."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_step(self, policy: Policy, record: StepRecord, *, episode: int = 0) -> None:
        performance = self._performance_for(policy)
        reward = record.reward.value
        performance.record_step(record.duration_ms, reward, reward < self.error_reward_threshold)
        self._measurements.append(
            Measurement(
                kind="step",
                policy_id=policy.id,
                episode=episode,
                duration_ms=record.duration_ms,
                reward=reward,
            )
        )

    def record_episode(
        self,
        policy: Policy,
        result: EpisodeResult,
        *,
        environment: Optional[BaseEnvironment] = None,
    ) -> None:
        self._performance_for(policy).episode_count += 1
        if environment is not None:
            tracked = self._environments.get(environment.id)
            if tracked is None:
                tracked = EnvironmentPerformance(environment.id, environment.type)
                self._environments[environment.id] = tracked
            tracked.episode_count += 1
            tracked.total_steps += result.step_count

        self._measurements.append(
            Measurement(
                kind="episode",
                policy_id=policy.id,
                episode=result.episode_number,
                duration_ms=result.duration_ms,
                reward=result.total_reward,
                step_count=result.step_count,
            )
        )
        self._log(
            "info",
            "Episode completed",
            {
                "policy": policy.name,
                "episode": result.episode_number,
                "duration_ms": round(result.duration_ms, 2),
                "reward": round(result.total_reward, 2),
                "steps": result.step_count,
            },
        )

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def compare_policies(self, policy_ids: Optional[Iterable[str]] = None) -> PolicyComparison:
        """Rank policies by efficiency, highest first.

        Args:
            policy_ids: Policies to include. Defaults to every policy seen so
                far; unknown ids are skipped.
        """
        ids = list(policy_ids) if policy_ids is not None else list(self._policies)
        entries = [self._policies[pid].to_entry() for pid in ids if pid in self._policies]
        entries.sort(key=lambda entry: entry.efficiency, reverse=True)
        return PolicyComparison(
            policy_count=len(entries),
            comparisons=tuple(entries),
            winner=entries[0] if entries else None,
            insights=tuple(self._insights(entries)),
        )

    def real_time_metrics(self) -> RealTimeMetrics:
        recent = list(self._measurements)[-self.measurement_window:]
        step_times = [m.duration_ms for m in recent if m.kind == "step"]
        now = utcnow()
        cutoff = now - THROUGHPUT_WINDOW
        return RealTimeMetrics(
            timestamp=now,
            session_uptime_ms=(now - self.start_time).total_seconds() * 1000,
            average_step_time_ms=sum(step_times) / max(1, len(step_times)),
            total_measurements=len(self._measurements),
            active_policies=len(self._policies),
            recent_throughput=sum(1 for m in self._measurements if m.kind == "step" and m.timestamp > cutoff),
        )

    def report(self) -> PerformanceReport:
        metrics = self.real_time_metrics()
        comparison = self.compare_policies()
        return PerformanceReport(
            session_id=self.session_id,
            session_duration_ms=metrics.session_uptime_ms,
            overall_metrics=metrics,
            policy_comparison=comparison,
            recommendations=tuple(self._recommendations(metrics, comparison)),
            alerts=tuple(self._alerts(metrics)),
        )

    def export_data(self) -> PerformanceExport:
        return PerformanceExport(
            session_id=self.session_id,
            measurements=tuple(self._measurements),
            policy_metrics={pid: perf.to_entry() for pid, perf in self._policies.items()},
            environment_metrics={eid: env.to_entry() for eid, env in self._environments.items()},
            summary=self.real_time_metrics(),
        )

    def reset(self) -> None:
        """Start a fresh session; attached feeds keep delivering."""
        self.session_id = self._new_session_id()
        self.start_time = utcnow()
        self._measurements.clear()
        self._policies.clear()
        self._environments.clear()
        self._log("info", "Monitor reset", {"session_id": self.session_id})

    def stats(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "uptime_ms": (utcnow() - self.start_time).total_seconds() * 1000,
            "measurement_count": len(self._measurements),
            "policy_count": len(self._policies),
            "environment_count": len(self._environments),
            "attached_feeds": len(self._subscriptions),
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _performance_for(self, policy: Policy) -> PolicyPerformance:
        performance = self._policies.get(policy.id)
        if performance is None:
            performance = PolicyPerformance(policy.id, policy.name, policy.policy_type)
            self._policies[policy.id] = performance
        return performance

    def _insights(self, entries: List[PolicyComparisonEntry]) -> List[str]:
        if not entries:
            return []

        best = entries[0]
        worst = entries[-1]
        insights = [f"Best performing policy: {best.policy_name} with efficiency score of {best.efficiency:.2f}"]

        if len(entries) > 1 and worst.efficiency != 0:
            gap = (best.efficiency - worst.efficiency) / abs(worst.efficiency) * 100
            insights.append(f"Performance gap: {gap:.1f}% difference between best and worst policies")

        # min() keeps the first of equal entries, i.e. the more efficient one
        fastest = min(entries, key=lambda entry: entry.average_step_time_ms)
        insights.append(
            f"Fastest decision making: {fastest.policy_name} ({fastest.average_step_time_ms:.2f}ms per step)"
        )
        most_accurate = min(entries, key=lambda entry: entry.error_rate)
        insights.append(
            f"Most accurate: {most_accurate.policy_name} ({most_accurate.error_rate * 100:.1f}% error rate)"
        )
        return insights

    def _recommendations(self, metrics: RealTimeMetrics, comparison: PolicyComparison) -> List[str]:
        recommendations = []
        if metrics.average_step_time_ms > SLOW_STEP_MS:
            recommendations.append("Step time is high (>1s) - consider optimizing policy decision logic")
        if comparison.policy_count > 1 and comparison.winner is not None:
            recommendations.append(
                f"Consider using {comparison.winner.policy_name} for production - highest efficiency"
            )
        return recommendations

    def _alerts(self, metrics: RealTimeMetrics) -> List[PerformanceAlert]:
        alerts = []
        if metrics.average_step_time_ms > STEP_TIME_ALERT_MS:
            alerts.append(
                PerformanceAlert(
                    type="performance",
                    severity="medium",
                    message="Average step time exceeds 2 seconds",
                )
            )
        if metrics.recent_throughput < LOW_THROUGHPUT_STEPS_PER_MINUTE:
            alerts.append(
                PerformanceAlert(
                    type="throughput",
                    severity="low",
                    message=f"Low throughput detected (<{LOW_THROUGHPUT_STEPS_PER_MINUTE} steps/minute)",
                )
            )
        return alerts

    @staticmethod
    def _new_session_id() -> str:
        return f"session-{uuid.uuid4().hex[:12]}"

    def _log(self, level: str, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        if self.enable_logging:
            log_event(level, "Monitor", message, data)
