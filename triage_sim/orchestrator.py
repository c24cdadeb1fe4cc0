"""
Episode orchestrator.

Fully decoupled from any particular environment or policy; both are injected.

Coordinates the episode loop:
1. Reset the environment and notify the policy
2. Offer the admissible actions to the policy and apply its choice
3. Hand the resulting experience back to the policy
4. Record the step and publish it on the step feed
5. Fold finished episodes into history and running metrics

Pause and stop are cooperative: the loop checks them once per step.
"""

import asyncio
import time
from collections import deque
from enum import Enum
from typing import Deque, List, Optional

from .environment.base import BaseEnvironment
from .events import EventFeed, LiveValueFeed
from .logging_utils import (
    LOG_TAG_ERROR,
    LOG_TAG_INFO,
    LOG_TAG_SUCCESS,
    LOG_TAG_WARNING,
    log_error,
    log_info,
    log_success,
    log_warning,
)
from .policy.base import Policy
from .schemas import (
    EpisodeEvent,
    EpisodeReason,
    EpisodeResult,
    Experience,
    PerformanceSummary,
    SimulationConfig,
    SimulationExport,
    SimulationMetrics,
    Situation,
    StepEvent,
    StepRecord,
    utcnow,
)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    COMPLETED = "completed"


class Orchestrator:
    """
    Runs episodes of a policy acting in an environment.

    Owns the run state, episode history and running metrics. Observers
    subscribe to ``step_events``, ``episode_events`` and ``metrics_feed``
    instead of reaching into orchestrator state.
    """

    def __init__(
        self,
        environment: BaseEnvironment,
        policy: Policy,
        config: Optional[SimulationConfig] = None,
    ):
        """Initialize orchestrator with its environment and policy injected.

        Args:
            environment: Environment to run episodes in. Its per-episode step
                cap is aligned with ``config.max_steps_per_episode``.
            policy: Policy that selects actions and receives experiences
            config: Optional SimulationConfig (defaults come from Config)
        """
        self.environment = environment
        self.policy = policy
        self.config = config or SimulationConfig()
        self.environment.set_max_steps_per_episode(self.config.max_steps_per_episode)

        self.step_events: EventFeed[StepEvent] = EventFeed("StepFeed")
        self.episode_events: EventFeed[EpisodeEvent] = EventFeed("EpisodeFeed")
        self.metrics_feed: LiveValueFeed[SimulationMetrics] = LiveValueFeed(
            "MetricsFeed", initial=SimulationMetrics()
        )

        self.state = RunState.IDLE
        # Set while running; cleared by pause(). Recreated at the start of each run
        self._resume_event = asyncio.Event()
        self._resume_event.set()
        self._stop_requested = False
        self._batch_active = False

        self._history: Deque[EpisodeResult] = deque(maxlen=self.config.max_episode_history)
        self._episode_counter = 0
        self._total_steps = 0
        self._total_reward = 0.0
        self._total_duration_ms = 0.0
        self._start_time = utcnow()
        self._metrics = SimulationMetrics(start_time=self._start_time, last_update_time=self._start_time)

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    async def run_episodes(self, count: int) -> List[EpisodeResult]:
        """Run up to ``count`` episodes sequentially.

        A failing episode is recorded with reason ``error`` and the run moves on.
        A stop request ends the run at the next episode boundary.
        """
        self._begin_run()
        self._batch_active = True
        results: List[EpisodeResult] = []
        try:
            for index in range(count):
                if self._stop_requested:
                    break
                results.append(await self.run_episode())
                if index < count - 1 and self.config.episode_delay_ms > 0 and not self._stop_requested:
                    await asyncio.sleep(self.config.episode_delay_ms / 1000)
        finally:
            self._batch_active = False
            self._finish_run()
        return results

    async def run_episode(self) -> EpisodeResult:
        """Run a single episode to termination, the step cap, or a stop request."""
        standalone = not self._batch_active
        if standalone:
            self._begin_run()

        self._episode_counter += 1
        episode_number = self._episode_counter
        start_time = utcnow()
        started = time.perf_counter()

        steps: List[StepRecord] = []
        total_reward = 0.0
        reason: EpisodeReason = "incomplete"
        error: Optional[str] = None
        max_steps = self.config.max_steps_per_episode

        self.policy.start_episode()
        try:
            situation: Situation = await self.environment.reset()
            done = False

            while not done and len(steps) < max_steps:
                # 1. Cooperative stop and pause checkpoint
                if self._stop_requested:
                    reason = "stopped"
                    break
                await self._resume_event.wait()
                if self._stop_requested:
                    reason = "stopped"
                    break

                # 2. Policy chooses among the admissible actions
                actions = self.environment.available_actions(situation)
                if not actions:
                    reason = "no_actions"
                    break
                step_started = time.perf_counter()
                action = await self.policy.select_action(situation, actions)

                # 3. Environment applies the action and evolves
                result = await self.environment.step(action)

                # 4. Feed the outcome back to the policy
                experience = Experience(
                    state=situation,
                    action=action,
                    reward=result.reward,
                    next_state=result.state,
                    done=result.done,
                )
                await self.policy.update(experience)
                step_duration_ms = (time.perf_counter() - step_started) * 1000

                # 5. Record and publish the step
                record = StepRecord(
                    step_number=len(steps) + 1,
                    state=situation,
                    action=action,
                    reward=result.reward,
                    next_state=result.state,
                    done=result.done,
                    info=result.info,
                    agent_confidence=self.policy.confidence(situation, action),
                    duration_ms=step_duration_ms,
                )
                steps.append(record)
                total_reward += result.reward.value
                self.step_events.emit(
                    StepEvent(
                        episode=episode_number,
                        step=record.step_number,
                        step_record=record,
                        cumulative_reward=total_reward,
                    )
                )

                situation = result.state
                done = result.done

            if reason == "incomplete":
                reason = self._termination_reason(situation, done, len(steps))
        except Exception as exc:
            reason = "error"
            error = str(exc)
            if self.config.enable_logging:
                log_error(f"  {LOG_TAG_ERROR} Episode {episode_number} failed: {exc}")
        finally:
            self.policy.end_episode()

        duration_ms = (time.perf_counter() - started) * 1000
        step_count = len(steps)
        average_reward = total_reward / max(1, step_count)
        episode = EpisodeResult(
            episode_number=episode_number,
            steps=tuple(steps),
            total_reward=total_reward,
            start_time=start_time,
            end_time=utcnow(),
            success=reason != "error" and average_reward > self.config.success_threshold,
            reason=reason,
            duration_ms=duration_ms,
            average_reward=average_reward,
            environment_metrics=self.environment.metrics(),
            agent_stats=self.policy.stats(),
            error=error,
        )
        self._record_episode(episode)

        if standalone:
            self._finish_run()
        return episode

    def pause(self) -> None:
        """Hold the loop at the next step checkpoint."""
        if self.state == RunState.RUNNING:
            self.state = RunState.PAUSED
            self._resume_event.clear()
            self._log_info("Simulation paused")

    def resume(self) -> None:
        if self.state == RunState.PAUSED:
            self.state = RunState.RUNNING
            self._resume_event.set()
            self._log_info("Simulation resumed")

    def stop(self) -> None:
        """End the current episode at its next step and skip remaining episodes."""
        self._stop_requested = True
        self.state = RunState.STOPPED
        # Release a paused loop so it can observe the stop
        self._resume_event.set()
        self._log_info("Simulation stop requested")

    @property
    def is_running(self) -> bool:
        return self.state in (RunState.RUNNING, RunState.PAUSED)

    # ------------------------------------------------------------------
    # Pull accessors
    # ------------------------------------------------------------------

    def metrics(self) -> SimulationMetrics:
        return self._metrics

    def episode_history(self) -> List[EpisodeResult]:
        return list(self._history)

    def performance_summary(self) -> PerformanceSummary:
        if not self._history:
            return PerformanceSummary()

        recent = self._recent_window()
        count = len(recent)
        return PerformanceSummary(
            total_episodes=len(self._history),
            success_rate=sum(1 for e in recent if e.success) / count,
            average_reward=sum(e.total_reward for e in recent) / count,
            average_steps=sum(e.step_count for e in recent) / count,
            average_duration_ms=sum(e.duration_ms for e in recent) / count,
            reward_trend=tuple(e.total_reward for e in recent),
            steps_trend=tuple(e.step_count for e in recent),
        )

    def export_data(self) -> SimulationExport:
        return SimulationExport(
            config=self.config,
            metrics=self._metrics,
            episode_history=tuple(self._history),
            agent_stats=self.policy.stats(),
            environment_stats=self.environment.stats(),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _termination_reason(self, situation: Situation, done: bool, step_count: int) -> EpisodeReason:
        if situation.is_terminal:
            return "environment_terminal"
        if step_count >= self.config.max_steps_per_episode:
            return "max_steps_reached"
        if done and self.environment.is_custom_terminal_condition():
            return "custom_termination"
        if done:
            return "environment_terminal"
        return "incomplete"

    def _begin_run(self) -> None:
        self._stop_requested = False
        # asyncio.Event binds to the first loop that waits on it; each run may
        # be driven by a different asyncio.run()
        self._resume_event = asyncio.Event()
        self._resume_event.set()
        self.state = RunState.RUNNING

    def _finish_run(self) -> None:
        if self.state != RunState.STOPPED:
            self.state = RunState.COMPLETED

    def _recent_window(self) -> List[EpisodeResult]:
        return list(self._history)[-self.config.performance_window_size:]

    def _record_episode(self, episode: EpisodeResult) -> None:
        self._history.append(episode)
        self._total_steps += episode.step_count
        self._total_reward += episode.total_reward
        self._total_duration_ms += episode.duration_ms

        # Snapshot recomputed from run totals and the (already updated) history
        total_episodes = self._episode_counter
        recent = self._recent_window()
        self._metrics = SimulationMetrics(
            total_episodes=total_episodes,
            total_steps=self._total_steps,
            total_reward=self._total_reward,
            average_reward=self._total_reward / total_episodes,
            success_rate=sum(1 for e in recent if e.success) / max(1, len(recent)),
            average_steps_per_episode=self._total_steps / total_episodes,
            average_episode_duration_ms=self._total_duration_ms / total_episodes,
            start_time=self._start_time,
            last_update_time=utcnow(),
        )

        self._print_episode_summary(episode)
        self.episode_events.emit(
            EpisodeEvent(episode=episode.episode_number, result=episode, total_episodes=total_episodes)
        )
        if self.config.enable_metrics:
            self.metrics_feed.emit(self._metrics)

    def _print_episode_summary(self, episode: EpisodeResult) -> None:
        # Failed episodes were already reported when the exception was caught
        if not self.config.enable_logging or episode.reason == "error":
            return
        line = (
            f"Episode {episode.episode_number}: {episode.step_count} steps, "
            f"reward {episode.total_reward:.2f} (avg {episode.average_reward:.2f}), "
            f"reason={episode.reason}"
        )
        if episode.success:
            log_success(f"  {LOG_TAG_SUCCESS} {line}")
        elif episode.reason == "stopped":
            log_warning(f"  {LOG_TAG_WARNING} {line}")
        else:
            log_info(f"  {LOG_TAG_INFO} {line}")

    def _log_info(self, message: str) -> None:
        if self.config.enable_logging:
            log_info(f"  {LOG_TAG_INFO} [Orchestrator] {message}")
