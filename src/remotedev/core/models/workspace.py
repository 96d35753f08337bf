"""Workspace model."""

from datetime import datetime

from sqlalchemy import Column, Index, String
from sqlmodel import Field, SQLModel

from remotedev.app.config import get_settings
from remotedev.core.domain.workspace import ActualState, DesiredState
from remotedev.core.models.base import UTCDateTime, generate_ulid


class Workspace(SQLModel, table=True):
    """Declarative workspace record.

    desired_state is written by the owning user, actual_state only by the
    bound agent's reports. Rows are never deleted; Terminated is final.
    """

    __tablename__ = "workspaces"

    id: str = Field(default_factory=generate_ulid, primary_key=True)
    user_id: str = Field(index=True)
    project_id: str = Field(index=True)
    agent_id: str = Field(index=True)

    name: str = Field(max_length=255, unique=True)
    namespace: str = Field(max_length=255)

    desired_state: DesiredState = Field(default=DesiredState.RUNNING, sa_type=String)
    actual_state: ActualState = Field(
        default=ActualState.CREATION_REQUESTED, sa_type=String
    )
    desired_state_updated_at: datetime = Field(
        sa_column=Column(UTCDateTime(), nullable=False)
    )
    responded_to_agent_at: datetime | None = Field(
        default=None, sa_column=Column(UTCDateTime())
    )
    force_include_all_resources: bool = Field(default=False)
    deployment_resource_version: str | None = Field(default=None, max_length=64)

    dns_zone: str = Field(max_length=256)
    editor: str = Field(max_length=64)
    max_hours_before_termination: int

    created_at: datetime = Field(sa_column=Column(UTCDateTime(), nullable=False))
    updated_at: datetime = Field(sa_column=Column(UTCDateTime(), nullable=False))

    __table_args__ = (
        # Quota counting (non-terminated per agent / per user+agent)
        Index("idx_workspaces_agent_desired", "agent_id", "desired_state"),
        Index("idx_workspaces_agent_user", "agent_id", "user_id"),
    )

    @property
    def url(self) -> str:
        port = get_settings().workspace.editor_port
        return f"https://{port}-{self.name}.{self.dns_zone}"
