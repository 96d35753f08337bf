"""Workspace variable store.

Plaintext is sealed on the way in and never stored or returned. Variables are
insert-only: a (workspace, type, key) triple can be written once.
"""

import logging
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from remotedev.adapters.clock.system import SystemClock
from remotedev.adapters.sealer.fernet import get_sealer
from remotedev.app.config import get_settings
from remotedev.core.domain.sealed import SealedValue
from remotedev.core.domain.workspace import VariableType
from remotedev.core.errors import FieldError, ValidationFailedError, WorkspaceNotFoundError
from remotedev.core.interfaces.clock import Clock
from remotedev.core.interfaces.sealer import Sealer
from remotedev.core.logging_schema import Component, LogEvent
from remotedev.core.models import Workspace, WorkspaceVariable

logger = logging.getLogger(__name__)
_settings = get_settings()


class VariableInput(BaseModel):
    """Variable supplied with a create request."""

    key: str
    value: str
    variable_type: VariableType = VariableType.ENVIRONMENT


def validate_variable_key(key: str, field: str = "key") -> list[FieldError]:
    max_length = _settings.workspace.max_variable_key_length
    if not key:
        return [FieldError(field=field, message="can't be blank")]
    if len(key) > max_length:
        return [
            FieldError(
                field=field,
                message=f"is too long (maximum is {max_length} characters)",
            )
        ]
    return []


def _invalid_type_error(variable_type: str) -> FieldError:
    return FieldError(
        field="variable_type",
        message=f"'{variable_type}' is not a valid variable type",
    )


def _coerce_variable_type(variable_type: VariableType | str) -> VariableType:
    try:
        return VariableType(variable_type)
    except ValueError:
        raise ValidationFailedError(
            [_invalid_type_error(variable_type)], "Workspace variable validation failed"
        ) from None


def seal_value(plaintext: str, sealer: Sealer) -> SealedValue:
    """Seal plaintext; a blank value becomes an explicitly empty SealedValue."""
    if plaintext == "":
        return SealedValue.empty()
    return sealer.seal(plaintext)


def build_variable(
    workspace_id: str,
    variable_type: VariableType,
    key: str,
    plaintext_value: str,
    sealer: Sealer,
    now: datetime,
) -> WorkspaceVariable:
    """Build (not persist) a sealed variable row."""
    return WorkspaceVariable(
        workspace_id=workspace_id,
        variable_type=variable_type,
        key=key,
        encrypted_value=seal_value(plaintext_value, sealer).token,
        created_at=now,
    )


async def put_variable(
    db: AsyncSession,
    workspace_id: str,
    variable_type: VariableType | str,
    key: str,
    plaintext_value: str,
    sealer: Sealer | None = None,
    clock: Clock | None = None,
) -> WorkspaceVariable:
    """Seal and store one variable.

    Raises:
        WorkspaceNotFoundError: If workspace does not exist
        ValidationFailedError: Bad type/key or key already set for the type
    """
    sealer = sealer or get_sealer()
    clock = clock or SystemClock()

    if await db.get(Workspace, workspace_id) is None:
        raise WorkspaceNotFoundError()

    errors: list[FieldError] = []
    try:
        variable_type = VariableType(variable_type)
    except ValueError:
        errors.append(_invalid_type_error(variable_type))
    errors.extend(validate_variable_key(key))

    if not errors:
        existing = await db.execute(
            select(WorkspaceVariable.id).where(
                WorkspaceVariable.workspace_id == workspace_id,
                WorkspaceVariable.variable_type == variable_type.value,
                WorkspaceVariable.key == key,
            )
        )
        if existing.first() is not None:
            errors.append(FieldError(field="key", message="has already been taken"))

    if errors:
        raise ValidationFailedError(errors, "Workspace variable validation failed")

    variable = build_variable(
        workspace_id, variable_type, key, plaintext_value, sealer, clock.now()
    )
    db.add(variable)
    await db.commit()
    await db.refresh(variable)

    logger.info(
        "Workspace variable stored",
        extra={
            "event": LogEvent.VARIABLE_STORED,
            "component": Component.VARIABLES,
            "ws_id": workspace_id,
            "variable_type": variable_type,
            "key": key,
        },
    )
    return variable


async def list_variables(
    db: AsyncSession,
    workspace_id: str,
    variable_type: VariableType | str | None = None,
) -> list[tuple[str, SealedValue]]:
    """List (key, sealed value) pairs ordered by type, then key.

    Raises:
        ValidationFailedError: Unknown variable_type
    """
    stmt = select(WorkspaceVariable).where(WorkspaceVariable.workspace_id == workspace_id)
    if variable_type is not None:
        variable_type = _coerce_variable_type(variable_type)
        stmt = stmt.where(WorkspaceVariable.variable_type == variable_type.value)
    stmt = stmt.order_by(WorkspaceVariable.variable_type, WorkspaceVariable.key)
    result = await db.execute(stmt)
    return [(v.key, v.value) for v in result.scalars().all()]
