"""Agent poll handling.

Algorithm:
1. Apply every reported actual state (unknown/foreign workspaces are skipped)
2. Select workspaces to return (partial: pending intent, full: all live)
3. Workspaces named in the reports are always returned
4. Stamp responded_to_agent_at and clear force_include_all_resources on
   everything returned, then commit once
"""

import logging
import time
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from remotedev.adapters.clock.system import SystemClock
from remotedev.app.config import get_settings
from remotedev.app.logging import log_context
from remotedev.control.selector import select_for_agent
from remotedev.core.domain.workspace import UpdateType
from remotedev.core.errors import ValidationFailedError
from remotedev.core.interfaces.clock import Clock
from remotedev.core.logging_schema import Component, LogEvent
from remotedev.core.models import Workspace
from remotedev.services.workspace_service import apply_actual_state, get_workspace_by_name

logger = logging.getLogger(__name__)
_settings = get_settings()


class WorkspaceAgentInfo(BaseModel):
    """One workspace as reported by the agent."""

    name: str
    actual_state: str
    deployment_resource_version: str | None = None


class WorkspaceDesiredInfo(BaseModel):
    """One workspace as sent back to the agent."""

    name: str
    namespace: str
    desired_state: str
    actual_state: str
    deployment_resource_version: str | None = None
    include_all_resources: bool


class ReconcileResponse(BaseModel):
    workspace_infos: list[WorkspaceDesiredInfo]
    partial_reconciliation_interval_seconds: int
    full_reconciliation_interval_seconds: int


async def _apply_reports(
    db: AsyncSession,
    agent_id: str,
    infos: list[WorkspaceAgentInfo],
    now: datetime,
) -> list[Workspace]:
    reported: list[Workspace] = []
    for info in infos:
        workspace = await get_workspace_by_name(db, info.name)
        if workspace is None or workspace.agent_id != agent_id:
            logger.warning(
                "Ignoring report for workspace not bound to agent",
                extra={
                    "event": LogEvent.REPORT_IGNORED,
                    "component": Component.RECONCILE,
                    "agent_id": agent_id,
                    "workspace_name": info.name,
                    "reason": "unknown_workspace" if workspace is None else "foreign_agent",
                },
            )
            continue
        try:
            apply_actual_state(
                workspace, info.actual_state, now, info.deployment_resource_version
            )
        except ValidationFailedError as exc:
            logger.warning(
                "Ignoring report with invalid actual state",
                extra={
                    "event": LogEvent.REPORT_IGNORED,
                    "component": Component.RECONCILE,
                    "agent_id": agent_id,
                    "ws_id": workspace.id,
                    "reason": "invalid_actual_state",
                    "error": exc.message,
                },
            )
            continue
        reported.append(workspace)
    return reported


async def reconcile(
    db: AsyncSession,
    agent_id: str,
    update_type: UpdateType,
    workspace_agent_infos: list[WorkspaceAgentInfo] | None = None,
    clock: Clock | None = None,
) -> ReconcileResponse:
    """Handle one agent poll.

    Args:
        db: Database session
        agent_id: Polling agent
        update_type: partial or full
        workspace_agent_infos: Actual states reported in this poll
        clock: Time source

    Returns:
        ReconcileResponse with the workspaces the agent must act on
    """
    with log_context(agent_id=agent_id):
        clock = clock or SystemClock()
        start = time.monotonic()
        now = clock.now()

        reported = await _apply_reports(db, agent_id, workspace_agent_infos or [], now)
        selected = await select_for_agent(db, agent_id, update_type)

        to_return: dict[str, Workspace] = {ws.id: ws for ws in selected}
        for ws in reported:
            to_return.setdefault(ws.id, ws)

        infos: list[WorkspaceDesiredInfo] = []
        for ws in to_return.values():
            include_all = (
                update_type == UpdateType.FULL
                or ws.force_include_all_resources
                or ws.responded_to_agent_at is None
            )
            infos.append(
                WorkspaceDesiredInfo(
                    name=ws.name,
                    namespace=ws.namespace,
                    desired_state=ws.desired_state,
                    actual_state=ws.actual_state,
                    deployment_resource_version=ws.deployment_resource_version,
                    include_all_resources=include_all,
                )
            )
            ws.responded_to_agent_at = now
            ws.force_include_all_resources = False

        await db.commit()

        logger.info(
            "Reconcile complete",
            extra={
                "event": LogEvent.RECONCILE_COMPLETE,
                "component": Component.RECONCILE,
                "agent_id": agent_id,
                "update_type": update_type,
                "reported": len(reported),
                "returned": len(infos),
                "duration_ms": round((time.monotonic() - start) * 1000, 2),
            },
        )

        return ReconcileResponse(
            workspace_infos=infos,
            partial_reconciliation_interval_seconds=_settings.reconcile.partial_interval_seconds,
            full_reconciliation_interval_seconds=_settings.reconcile.full_interval_seconds,
        )
