"""Workspace domain enums."""

from enum import StrEnum


class ActualState(StrEnum):
    """State last reported by the agent."""

    CREATION_REQUESTED = "CreationRequested"
    STARTING = "Starting"
    RUNNING = "Running"
    STOPPING = "Stopping"
    STOPPED = "Stopped"
    TERMINATING = "Terminating"
    TERMINATED = "Terminated"
    FAILED = "Failed"
    ERROR = "Error"
    UNKNOWN = "Unknown"


class DesiredState(StrEnum):
    """User-requested target state."""

    RUNNING = "Running"
    STOPPED = "Stopped"
    TERMINATED = "Terminated"
    RESTART_REQUESTED = "RestartRequested"


class VariableType(StrEnum):
    """How a workspace variable is injected."""

    ENVIRONMENT = "Environment"
    FILE = "File"


class UpdateType(StrEnum):
    """Agent poll kind."""

    PARTIAL = "partial"
    FULL = "full"


VALID_DESIRED_STATES = frozenset(s.value for s in DesiredState)
VALID_ACTUAL_STATES = frozenset(s.value for s in ActualState)

# Absorbing: no desired_state change once reached
TERMINAL_DESIRED_STATE = DesiredState.TERMINATED
