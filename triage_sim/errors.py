"""
Step-level failures raised by environments and policies.

None of these are fatal to a simulation run. The orchestrator catches them,
marks the in-progress episode as failed (reason ``error``), fires the
end-of-episode hooks and moves on to the next requested episode.
"""

from typing import Optional, Sequence


class TriageSimulationError(Exception):
    """Base class for all simulation errors."""


class EnvironmentNotResetError(TriageSimulationError):
    """Raised when an environment is stepped or queried before ``reset()``."""

    def __init__(self, *, environment: str) -> None:
        self.environment = environment
        message = (
            f"Environment '{environment}' is not initialized.\n\n"
            "Remediation tips:\n"
            "  - Await environment.reset() before calling step()\n"
            "  - The orchestrator resets automatically at the start of each episode"
        )
        super().__init__(message)


class InvalidActionError(TriageSimulationError):
    """Raised when an action id is not among the currently admissible actions."""

    def __init__(
        self,
        *,
        action_id: str,
        admissible: Optional[Sequence[str]] = None,
    ) -> None:
        self.action_id = action_id
        self.admissible = list(admissible or [])
        message_lines = [f"Invalid action: {action_id} is not currently admissible."]
        if self.admissible:
            preview = ", ".join(self.admissible[:5])
            more = f" (+{len(self.admissible) - 5} more)" if len(self.admissible) > 5 else ""
            message_lines.append(f"Admissible actions: {preview}{more}")
        message_lines.extend(
            [
                "\nRemediation tips:",
                "  - Choose from environment.available_actions() for the current situation",
                "  - Actions go stale once the patient they reference has been triaged",
            ]
        )
        super().__init__("\n".join(message_lines))


class EntityNotFoundError(TriageSimulationError):
    """Raised when an assignment references a patient no longer in the queue."""

    def __init__(self, *, patient_id: str) -> None:
        self.patient_id = patient_id
        super().__init__(f"Patient {patient_id} not found in queue")


class NoValidActionError(TriageSimulationError):
    """Raised when a policy has neither an assignment nor a wait action to choose."""

    def __init__(self, *, policy: str, reason: str = "No valid actions available") -> None:
        self.policy = policy
        self.reason = reason
        super().__init__(f"{policy}: {reason}")


class UnsupportedActionKindError(TriageSimulationError):
    """Raised when an environment receives an action kind it does not implement."""

    def __init__(self, *, action_type: str, environment: str) -> None:
        self.action_type = action_type
        self.environment = environment
        super().__init__(
            f"Unsupported action type '{action_type}' for environment '{environment}'"
        )
