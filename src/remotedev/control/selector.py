"""Workspace query predicates and the reconciliation selector.

Predicates are plain SQLAlchemy expressions so quota counting and agent
selection share one definition of "non-terminated" and "needs reconcile".
"""

from sqlalchemy import ColumnElement, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from remotedev.core.domain.workspace import TERMINAL_DESIRED_STATE, UpdateType
from remotedev.core.models import Workspace


def non_terminated() -> ColumnElement[bool]:
    return Workspace.desired_state != TERMINAL_DESIRED_STATE.value


def by_agent(agent_id: str) -> ColumnElement[bool]:
    return Workspace.agent_id == agent_id


def by_user_and_agent(user_id: str, agent_id: str) -> ColumnElement[bool]:
    return and_(Workspace.user_id == user_id, Workspace.agent_id == agent_id)


def needs_reconcile() -> ColumnElement[bool]:
    """Desired intent not yet handed to the agent, or a forced resync."""
    return or_(
        Workspace.force_include_all_resources.is_(True),
        Workspace.responded_to_agent_at.is_(None),
        Workspace.desired_state_updated_at >= Workspace.responded_to_agent_at,
    )


async def count_workspaces(db: AsyncSession, *predicates: ColumnElement[bool]) -> int:
    stmt = select(func.count()).select_from(Workspace).where(*predicates)
    result = await db.execute(stmt)
    return result.scalar() or 0


async def select_for_agent(
    db: AsyncSession,
    agent_id: str,
    update_type: UpdateType = UpdateType.PARTIAL,
) -> list[Workspace]:
    """Workspaces the agent must receive on its next poll.

    Evaluated as a single SELECT so the timestamp comparison sees one
    snapshot per call.

    Args:
        db: Database session
        agent_id: Polling agent
        update_type: PARTIAL → needs_reconcile only.
            FULL → every non-terminated workspace plus anything pending.

    Returns:
        Matching workspaces ordered by desired_state_updated_at
    """
    if update_type == UpdateType.FULL:
        predicate = or_(non_terminated(), needs_reconcile())
    else:
        predicate = needs_reconcile()

    stmt = (
        select(Workspace)
        .where(by_agent(agent_id), predicate)
        .order_by(Workspace.desired_state_updated_at, Workspace.id)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
