"""Logging utilities for triage simulations.

Provides color-coded console output so environment, policy and orchestrator
activity can be told apart at a glance.
"""

import os
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .config import Config


class Color(Enum):
    """ANSI color codes for terminal output."""

    # Colors for operation types
    BLUE = "\033[94m"      # Debug detail
    YELLOW = "\033[93m"    # Warnings (fallbacks, degraded decisions)
    RED = "\033[91m"       # Errors and failed episodes
    GREEN = "\033[92m"     # Success/completion
    CYAN = "\033[96m"      # Info/metadata

    # Formatting
    BOLD = "\033[1m"
    RESET = "\033[0m"


LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "WARN": 30, "ERROR": 40}

_LEVEL_COLORS = {
    "DEBUG": Color.BLUE,
    "INFO": Color.CYAN,
    "WARNING": Color.YELLOW,
    "WARN": Color.YELLOW,
    "ERROR": Color.RED,
}


def colored(text: str, color: Color, bold: bool = False) -> str:
    """Wrap text in ANSI color codes if colors are enabled.

    Args:
        text: Text to colorize
        color: Color to apply
        bold: Whether to make text bold

    Returns:
        Colorized text if TRIAGE_NO_COLOR is not set, otherwise plain text
    """
    if os.getenv("TRIAGE_NO_COLOR"):
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


def is_enabled(level: str) -> bool:
    """Return True when ``level`` passes the configured LOG_LEVEL threshold."""
    threshold = LEVELS.get(Config.LOG_LEVEL.upper(), LEVELS["INFO"])
    return LEVELS.get(level.upper(), LEVELS["INFO"]) >= threshold


def log_event(
    level: str,
    source: str,
    message: str,
    data: Optional[dict[str, Any]] = None,
) -> None:
    """Print a timestamped component line, e.g. ``[ts] WARNING [Policy]: msg {...}``."""
    if not is_enabled(level):
        return

    timestamp = datetime.now(timezone.utc).isoformat()
    level_name = level.upper()
    line = f"[{timestamp}] {level_name} [{source}]: {message}"
    if data:
        line = f"{line} {data}"
    print(colored(line, _LEVEL_COLORS.get(level_name, Color.CYAN)))


def log_warning(message: str) -> None:
    """Log a warning (yellow)."""
    print(colored(message, Color.YELLOW))


def log_error(message: str) -> None:
    """Log an error (red)."""
    print(colored(message, Color.RED))


def log_success(message: str) -> None:
    """Log a success (green)."""
    print(colored(message, Color.GREEN))


def log_info(message: str) -> None:
    """Log metadata/info (cyan)."""
    print(colored(message, Color.CYAN))


# Markers for operation types (color-blind accessible)
LOG_TAG_WARNING = "[?]"        # Fallback or degraded decision
LOG_TAG_ERROR = "[!]"          # Error
LOG_TAG_SUCCESS = "[✓]"        # Success
LOG_TAG_INFO = "[i]"           # Information
