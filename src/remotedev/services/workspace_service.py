"""Workspace service for creation and state changes."""

import logging
import secrets
import string
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from remotedev.adapters.clock.system import SystemClock
from remotedev.adapters.sealer.fernet import get_sealer
from remotedev.app.config import get_settings
from remotedev.app.logging import log_context
from remotedev.control.selector import by_agent, non_terminated
from remotedev.control.validator import (
    LifecycleInput,
    desired_state_changed,
    validate_actual_state,
    validate_workspace,
)
from remotedev.core.domain.workspace import ActualState, DesiredState
from remotedev.core.errors import (
    FieldError,
    ForbiddenError,
    ValidationFailedError,
    ViolationKind,
    WorkspaceNotFoundError,
    WorkspaceTerminatedError,
)
from remotedev.core.interfaces.clock import Clock
from remotedev.core.interfaces.sealer import Sealer
from remotedev.core.logging_schema import Component, LogEvent
from remotedev.core.models import Workspace
from remotedev.services.agent_config_service import agent_config_for
from remotedev.services.quota_service import enforce_quotas
from remotedev.services.variable_service import (
    VariableInput,
    build_variable,
    validate_variable_key,
)

logger = logging.getLogger(__name__)

# Load settings once at module level
_settings = get_settings()

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def _random_suffix() -> str:
    length = _settings.workspace.name_suffix_length
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def _raise_for_errors(errors: list[FieldError], ws_id: str | None = None) -> None:
    if not errors:
        return
    logger.info(
        "Workspace validation failed",
        extra={
            "event": LogEvent.VALIDATION_FAILED,
            "component": Component.API,
            "ws_id": ws_id,
            "fields": sorted({e.field for e in errors}),
        },
    )
    if any(e.kind == ViolationKind.TERMINAL for e in errors):
        raise WorkspaceTerminatedError(errors)
    raise ValidationFailedError(errors)


def _validate_variables(variables: list[VariableInput]) -> list[FieldError]:
    """Key checks plus (type, key) uniqueness within one create request."""
    errors: list[FieldError] = []
    seen: set[tuple[str, str]] = set()
    for index, variable in enumerate(variables):
        field = f"variables[{index}].key"
        key_errors = validate_variable_key(variable.key, field=field)
        errors.extend(key_errors)
        identity = (variable.variable_type, variable.key)
        if not key_errors and identity in seen:
            errors.append(FieldError(field=field, message="has already been taken"))
        seen.add(identity)
    return errors


async def create_workspace(
    db: AsyncSession,
    user_id: str,
    project_id: str,
    agent_id: str,
    desired_state: DesiredState | str,
    editor: str,
    max_hours_before_termination: int,
    dns_zone: str | None = None,
    variables: list[VariableInput] | None = None,
    clock: Clock | None = None,
    sealer: Sealer | None = None,
) -> Workspace:
    """Create a new workspace bound to an agent.

    The agent config row is locked for the duration of the transaction so
    concurrent creations for the same agent see each other's inserts before
    counting against quotas.

    Args:
        db: Database session
        user_id: Owner user ID
        project_id: Project providing the workspace
        agent_id: Agent that will run the workspace
        desired_state: Initial desired state
        editor: Editor to inject
        max_hours_before_termination: Lifetime cap in hours
        dns_zone: Workspace DNS zone; defaults to the agent config zone
        variables: Variables to seal and attach
        clock: Time source
        sealer: Sealer for variable values

    Returns:
        Created workspace

    Raises:
        ValidationFailedError: Binding or field violations (all collected)
        QuotaExceededError: Per-user or per-agent quota reached
    """
    with log_context(agent_id=agent_id):
        clock = clock or SystemClock()
        sealer = sealer or get_sealer()
        variables = variables or []

        config = await agent_config_for(db, agent_id, lock=True)
        if dns_zone is None:
            dns_zone = config.dns_zone if config is not None else ""

        candidate = LifecycleInput(
            desired_state=desired_state,
            actual_state=ActualState.CREATION_REQUESTED,
            dns_zone=dns_zone,
            editor=editor,
            max_hours_before_termination=max_hours_before_termination,
        )
        errors = validate_workspace(candidate, config)
        errors.extend(_validate_variables(variables))
        _raise_for_errors(errors)

        await enforce_quotas(db, config, user_id)

        now = clock.now()
        suffix = _random_suffix()
        workspace = Workspace(
            user_id=user_id,
            project_id=project_id,
            agent_id=agent_id,
            name=f"{_settings.workspace.name_prefix}-{agent_id}-{user_id}-{suffix}",
            namespace=f"{_settings.workspace.namespace_prefix}-{agent_id}-{user_id}-{suffix}",
            desired_state=candidate.desired_state,
            actual_state=ActualState.CREATION_REQUESTED,
            desired_state_updated_at=now,
            dns_zone=dns_zone,
            editor=editor,
            max_hours_before_termination=max_hours_before_termination,
            created_at=now,
            updated_at=now,
        )
        db.add(workspace)
        for variable in variables:
            db.add(
                build_variable(
                    workspace.id,
                    variable.variable_type,
                    variable.key,
                    variable.value,
                    sealer,
                    now,
                )
            )

        await db.commit()
        await db.refresh(workspace)

        logger.info(
            "Workspace created",
            extra={
                "event": LogEvent.WORKSPACE_CREATED,
                "component": Component.API,
                "ws_id": workspace.id,
                "user_id": user_id,
                "agent_id": agent_id,
                "desired_state": workspace.desired_state,
            },
        )
        return workspace


async def get_workspace(
    db: AsyncSession,
    workspace_id: str,
    user_id: str | None = None,
) -> Workspace:
    """Get workspace by ID.

    Args:
        db: Database session
        workspace_id: Workspace ID
        user_id: If provided, verify ownership

    Raises:
        WorkspaceNotFoundError: If workspace not found
        ForbiddenError: If user doesn't own the workspace
    """
    result = await db.execute(select(Workspace).where(Workspace.id == workspace_id))
    workspace = result.scalar_one_or_none()

    if workspace is None:
        raise WorkspaceNotFoundError()

    if user_id is not None and workspace.user_id != user_id:
        raise ForbiddenError()

    return workspace


async def get_workspace_by_name(db: AsyncSession, name: str) -> Workspace | None:
    result = await db.execute(select(Workspace).where(Workspace.name == name))
    return result.scalar_one_or_none()


async def list_workspaces(
    db: AsyncSession,
    user_id: str | None = None,
    agent_id: str | None = None,
    include_terminated: bool = True,
    limit: int = 50,
    offset: int = 0,
) -> list[Workspace]:
    """List workspaces, newest first."""
    stmt = select(Workspace)
    if user_id is not None:
        stmt = stmt.where(Workspace.user_id == user_id)
    if agent_id is not None:
        stmt = stmt.where(by_agent(agent_id))
    if not include_terminated:
        stmt = stmt.where(non_terminated())
    stmt = stmt.order_by(Workspace.created_at.desc(), Workspace.id.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_desired_state(
    db: AsyncSession,
    workspace_id: str,
    new_desired_state: DesiredState | str,
    user_id: str | None = None,
    clock: Clock | None = None,
) -> Workspace:
    """Change a workspace's desired state.

    desired_state_updated_at is stamped only when the value actually changes,
    which is what makes the workspace visible to the next agent poll.

    Raises:
        WorkspaceNotFoundError: If workspace not found
        ForbiddenError: If user doesn't own the workspace
        WorkspaceTerminatedError: If the workspace is already Terminated
        ValidationFailedError: Other violations
    """
    clock = clock or SystemClock()
    workspace = await get_workspace(db, workspace_id, user_id)
    config = await agent_config_for(db, workspace.agent_id)

    candidate = LifecycleInput.from_workspace(workspace, desired_state=new_desired_state)
    _raise_for_errors(validate_workspace(candidate, config), workspace.id)

    if not desired_state_changed(candidate):
        return workspace

    now = clock.now()
    previous = workspace.desired_state
    workspace.desired_state = candidate.desired_state
    workspace.desired_state_updated_at = now
    workspace.updated_at = now

    await db.commit()
    await db.refresh(workspace)

    logger.info(
        "Workspace desired state changed",
        extra={
            "event": LogEvent.DESIRED_STATE_CHANGED,
            "component": Component.API,
            "ws_id": workspace.id,
            "from_state": previous,
            "to_state": workspace.desired_state,
        },
    )
    return workspace


def apply_actual_state(
    workspace: Workspace,
    actual_state: ActualState | str,
    observed_at: datetime,
    deployment_resource_version: str | None = None,
) -> None:
    """Write an agent report onto the workspace (no commit).

    Raises:
        ValidationFailedError: actual_state outside the enumeration
    """
    _raise_for_errors(validate_actual_state(actual_state), workspace.id)

    previous = workspace.actual_state
    workspace.actual_state = actual_state
    workspace.responded_to_agent_at = observed_at
    if deployment_resource_version is not None:
        workspace.deployment_resource_version = deployment_resource_version
    workspace.updated_at = observed_at

    if previous != actual_state:
        logger.info(
            "Workspace actual state reported",
            extra={
                "event": LogEvent.ACTUAL_STATE_REPORTED,
                "component": Component.RECONCILE,
                "ws_id": workspace.id,
                "agent_id": workspace.agent_id,
                "from_state": previous,
                "to_state": actual_state,
            },
        )


async def report_actual_state(
    db: AsyncSession,
    workspace_id: str,
    actual_state: ActualState | str,
    observed_at: datetime,
    agent_id: str | None = None,
    deployment_resource_version: str | None = None,
) -> Workspace:
    """Record the agent-reported actual state and stamp responded_to_agent_at.

    Args:
        db: Database session
        workspace_id: Workspace ID
        actual_state: State observed by the agent
        observed_at: Hand-off time, stored as responded_to_agent_at
        agent_id: Reporting agent; must be the bound agent when given
        deployment_resource_version: Agent-side resource version

    Raises:
        WorkspaceNotFoundError: If workspace not found
        ForbiddenError: If agent_id is not the workspace's agent
        ValidationFailedError: Unknown actual_state
    """
    workspace = await get_workspace(db, workspace_id)
    if agent_id is not None and workspace.agent_id != agent_id:
        raise ForbiddenError("Workspace is not bound to the reporting agent")

    apply_actual_state(workspace, actual_state, observed_at, deployment_resource_version)

    await db.commit()
    await db.refresh(workspace)
    return workspace
