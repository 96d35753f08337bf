"""Services module."""

from remotedev.services import (
    agent_config_service,
    quota_service,
    variable_service,
    workspace_service,
)

__all__ = [
    "agent_config_service",
    "quota_service",
    "variable_service",
    "workspace_service",
]
