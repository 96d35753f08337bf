"""Workspace variable model."""

from datetime import datetime

from sqlalchemy import Column, String, Text, UniqueConstraint
from sqlmodel import Field, SQLModel

from remotedev.core.domain.sealed import SealedValue
from remotedev.core.domain.workspace import VariableType
from remotedev.core.models.base import UTCDateTime, generate_ulid


class WorkspaceVariable(SQLModel, table=True):
    """Environment or file variable injected into a workspace.

    Only the sealed token is stored. Rows are insert-only.
    """

    __tablename__ = "workspace_variables"

    id: str = Field(default_factory=generate_ulid, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    variable_type: VariableType = Field(sa_type=String)
    key: str = Field(max_length=255)
    encrypted_value: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(sa_column=Column(UTCDateTime(), nullable=False))

    __table_args__ = (
        UniqueConstraint(
            "workspace_id", "variable_type", "key", name="uq_workspace_variables_key"
        ),
    )

    @property
    def value(self) -> SealedValue:
        return SealedValue(self.encrypted_value)
