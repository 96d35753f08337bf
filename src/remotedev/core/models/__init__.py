"""Database models for remotedev.

Models are defined using SQLModel (SQLAlchemy + Pydantic).
"""

from remotedev.core.models.agent_config import AgentConfig
from remotedev.core.models.base import UTCDateTime, generate_ulid, utc_now
from remotedev.core.models.variable import WorkspaceVariable
from remotedev.core.models.workspace import Workspace

__all__ = [
    "AgentConfig",
    "Workspace",
    "WorkspaceVariable",
    "UTCDateTime",
    "generate_ulid",
    "utc_now",
]
