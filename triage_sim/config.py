"""
Triage Simulation Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from typing import Optional

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


class Config:
    """Application configuration loaded from environment variables."""

    # Episode orchestration defaults
    MAX_STEPS_PER_EPISODE: int = int(os.getenv("TRIAGE_MAX_STEPS_PER_EPISODE", "1000"))
    MAX_EPISODE_HISTORY: int = int(os.getenv("TRIAGE_MAX_EPISODE_HISTORY", "1000"))
    EPISODE_DELAY_MS: int = int(os.getenv("TRIAGE_EPISODE_DELAY_MS", "0"))
    PERFORMANCE_WINDOW: int = int(os.getenv("TRIAGE_PERFORMANCE_WINDOW", "100"))
    SUCCESS_THRESHOLD: float = float(os.getenv("TRIAGE_SUCCESS_THRESHOLD", "0.8"))

    # Emergency department defaults
    INITIAL_PATIENTS: int = int(os.getenv("TRIAGE_INITIAL_PATIENTS", "3"))
    ARRIVAL_RATE: float = float(os.getenv("TRIAGE_ARRIVAL_RATE", "0.1"))
    # Unset means every run draws fresh randomness
    RANDOM_SEED: Optional[int] = _optional_int("TRIAGE_RANDOM_SEED")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if values are out of range."""
        if cls.MAX_STEPS_PER_EPISODE < 1:
            raise ValueError("TRIAGE_MAX_STEPS_PER_EPISODE must be at least 1")

        if cls.MAX_EPISODE_HISTORY < 1:
            raise ValueError("TRIAGE_MAX_EPISODE_HISTORY must be at least 1")

        if cls.EPISODE_DELAY_MS < 0:
            raise ValueError("TRIAGE_EPISODE_DELAY_MS cannot be negative")

        if cls.PERFORMANCE_WINDOW < 1:
            raise ValueError("TRIAGE_PERFORMANCE_WINDOW must be at least 1")

        if cls.INITIAL_PATIENTS < 0:
            raise ValueError("TRIAGE_INITIAL_PATIENTS cannot be negative")

        if not 0.0 <= cls.ARRIVAL_RATE <= 1.0:
            raise ValueError(
                "TRIAGE_ARRIVAL_RATE is a per-step probability and must be between 0 and 1"
            )

        if cls.LOG_LEVEL.upper() not in ("DEBUG", "INFO", "WARNING", "WARN", "ERROR"):
            raise ValueError(
                f"LOG_LEVEL '{cls.LOG_LEVEL}' is not recognised. "
                "Use one of DEBUG, INFO, WARNING, ERROR."
            )

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Triage Simulation Configuration:",
            f"  Max Steps/Episode: {cls.MAX_STEPS_PER_EPISODE}",
            f"  Episode History: {cls.MAX_EPISODE_HISTORY}",
            f"  Episode Delay: {cls.EPISODE_DELAY_MS}ms",
            f"  Performance Window: {cls.PERFORMANCE_WINDOW}",
            f"  Success Threshold: {cls.SUCCESS_THRESHOLD}",
            f"  Initial Patients: {cls.INITIAL_PATIENTS}",
            f"  Arrival Rate: {cls.ARRIVAL_RATE}",
            f"  Random Seed: {cls.RANDOM_SEED if cls.RANDOM_SEED is not None else 'unseeded'}",
            f"  Log Level: {cls.LOG_LEVEL}",
        ]
        return "\n".join(lines)
