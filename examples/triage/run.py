"""Compare the rule-based triage policy against the random baseline.

Runs the same seeded emergency department for each policy and prints the
orchestrator's metrics side by side:

    python examples/triage/run.py --episodes 20 --steps 40 --seed 42

Use ``--clinical`` to draw patients from the ED visit distributions instead of
the five basic presentations, and ``--verbose`` to see per-step environment
and policy logging. A performance monitor observes both runs and closes with
its efficiency ranking, recommendations and alerts.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Dict

from triage_sim import (
    Orchestrator,
    PerformanceMonitor,
    RandomTriagePolicy,
    RuleBasedTriagePolicy,
    SimulationConfig,
    TriageEnvironment,
    TriageEnvironmentConfig,
)
from triage_sim.config import Config
from triage_sim.logging_utils import (
    LOG_TAG_INFO,
    LOG_TAG_SUCCESS,
    LOG_TAG_WARNING,
    log_info,
    log_success,
    log_warning,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Emergency department triage comparison")
    parser.add_argument("--episodes", type=int, default=10, help="Episodes per policy")
    parser.add_argument("--steps", type=int, default=30, help="Maximum steps per episode")
    parser.add_argument("--seed", type=int, default=42, help="Seed shared by environment and random policy")
    parser.add_argument(
        "--arrival-rate",
        type=float,
        default=0.3,
        help="Probability that a new patient arrives each step (0-1)",
    )
    parser.add_argument("--clinical", action="store_true", help="Use clinical patient generation")
    parser.add_argument("--verbose", action="store_true", help="Print per-step logging")
    parser.add_argument("--export", type=Path, help="Write the rule-based run export as JSON")
    return parser.parse_args()


def build_environment(args: argparse.Namespace) -> TriageEnvironment:
    return TriageEnvironment(
        TriageEnvironmentConfig(
            random_seed=args.seed,
            patient_arrival_rate=args.arrival_rate,
            patient_generator_mode="clinical" if args.clinical else "basic",
            enable_logging=args.verbose,
        )
    )


async def run_policy(args: argparse.Namespace, policy, monitor: PerformanceMonitor) -> Orchestrator:
    orchestrator = Orchestrator(
        build_environment(args),
        policy,
        SimulationConfig(max_steps_per_episode=args.steps, enable_logging=args.verbose),
    )

    def on_episode(event) -> None:
        metrics = event.result.environment_metrics
        log_info(
            f"  {LOG_TAG_INFO} [{policy.name}] episode {event.episode}: "
            f"reward {event.result.total_reward:.1f}, "
            f"processed {metrics.patients_processed}, "
            f"accuracy {metrics.priority_accuracy:.0%}, "
            f"safety incidents {metrics.safety_incidents}"
        )

    orchestrator.episode_events.subscribe(on_episode)
    monitor.attach(orchestrator)
    await orchestrator.run_episodes(args.episodes)
    return orchestrator


def summarize(name: str, orchestrator: Orchestrator) -> Dict[str, float]:
    metrics = orchestrator.metrics()
    summary = orchestrator.performance_summary()
    return {
        "policy": name,
        "episodes": metrics.total_episodes,
        "average_reward": metrics.average_reward,
        "average_steps": metrics.average_steps_per_episode,
        "success_rate": summary.success_rate,
    }


async def run_comparison(args: argparse.Namespace) -> None:
    Config.validate()
    print(Config.display())
    print()

    monitor = PerformanceMonitor(enable_logging=args.verbose)
    rule_based = await run_policy(args, RuleBasedTriagePolicy(enable_logging=args.verbose), monitor)
    baseline = await run_policy(args, RandomTriagePolicy(seed=args.seed, enable_logging=args.verbose), monitor)
    monitor.detach()

    print()
    print(f"Completed {args.episodes} episodes of up to {args.steps} steps per policy.")
    for row in (summarize("rule-based", rule_based), summarize("random", baseline)):
        print(
            f"  {row['policy']:<10} avg reward {row['average_reward']:8.2f}  "
            f"avg steps {row['average_steps']:5.1f}  success {row['success_rate']:.0%}"
        )

    report = monitor.report()
    print()
    for insight in report.policy_comparison.insights:
        log_info(f"  {LOG_TAG_INFO} {insight}")
    for recommendation in report.recommendations:
        log_success(f"  {LOG_TAG_SUCCESS} {recommendation}")
    for alert in report.alerts:
        log_warning(f"  {LOG_TAG_WARNING} [{alert.severity}] {alert.message}")

    if args.export:
        payload = rule_based.export_data().model_dump(mode="json")
        args.export.write_text(json.dumps(payload, indent=2))
        log_success(f"  {LOG_TAG_SUCCESS} Export written to {args.export}")


def main() -> None:
    args = parse_args()
    asyncio.run(run_comparison(args))


if __name__ == "__main__":
    main()
