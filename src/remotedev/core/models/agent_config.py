"""Agent capacity config model (one optional row per agent)."""

from datetime import datetime

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from remotedev.core.domain.quota import Quota, decode_quota
from remotedev.core.models.base import UTCDateTime


class AgentConfig(SQLModel, table=True):
    """Remote development settings for a single agent.

    Quota columns keep the -1 (unlimited) / 0 (disabled) sentinels; use the
    *_limit properties for comparisons.
    """

    __tablename__ = "agent_configs"

    agent_id: str = Field(primary_key=True)
    enabled: bool = Field(default=False)
    dns_zone: str = Field(max_length=256)

    workspaces_quota: int = Field(default=-1)
    workspaces_per_user_quota: int = Field(default=-1)

    network_policy_enabled: bool = Field(default=True)
    network_policy_egress: list = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    default_resources_per_workspace_container: dict = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    max_resources_per_workspace: dict = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    workspaces_proxy_namespace: str = Field(default="gitlab-workspaces", max_length=63)

    created_at: datetime = Field(sa_column=Column(UTCDateTime(), nullable=False))
    updated_at: datetime = Field(sa_column=Column(UTCDateTime(), nullable=False))

    @property
    def workspaces_quota_limit(self) -> Quota:
        return decode_quota(self.workspaces_quota)

    @property
    def workspaces_per_user_quota_limit(self) -> Quota:
        return decode_quota(self.workspaces_per_user_quota)
