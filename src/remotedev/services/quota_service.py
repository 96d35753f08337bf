"""Workspace quota evaluation at creation time.

Per-user quota is checked before per-agent quota; only the first failure is
reported.
"""

import logging

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from remotedev.control.selector import (
    by_agent,
    by_user_and_agent,
    count_workspaces,
    non_terminated,
)
from remotedev.core.domain.quota import Disabled, Limit, Quota, Unlimited, quota_exceeded
from remotedev.core.errors import QuotaExceededError, QuotaScope
from remotedev.core.logging_schema import Component, LogEvent
from remotedev.core.models import AgentConfig

logger = logging.getLogger(__name__)


class QuotaEvaluation(BaseModel):
    scope: QuotaScope
    quota: Quota
    count: int

    model_config = {"frozen": True}

    @property
    def exceeded(self) -> bool:
        return quota_exceeded(self.quota, self.count)

    @property
    def limit(self) -> int:
        match self.quota:
            case Limit(value=value):
                return value
            case Disabled():
                return 0
            case Unlimited():
                return -1


async def _evaluate(
    db: AsyncSession, scope: QuotaScope, quota: Quota, *predicates
) -> QuotaEvaluation:
    # Unlimited never needs the count query
    if isinstance(quota, Unlimited):
        return QuotaEvaluation(scope=scope, quota=quota, count=0)
    count = await count_workspaces(db, non_terminated(), *predicates)
    return QuotaEvaluation(scope=scope, quota=quota, count=count)


async def evaluate_per_user_quota(
    db: AsyncSession, config: AgentConfig, user_id: str
) -> QuotaEvaluation:
    return await _evaluate(
        db,
        QuotaScope.PER_USER,
        config.workspaces_per_user_quota_limit,
        by_user_and_agent(user_id, config.agent_id),
    )


async def evaluate_per_agent_quota(db: AsyncSession, config: AgentConfig) -> QuotaEvaluation:
    return await _evaluate(
        db,
        QuotaScope.PER_AGENT,
        config.workspaces_quota_limit,
        by_agent(config.agent_id),
    )


async def exceeds_per_user_quota(
    db: AsyncSession, config: AgentConfig | None, user_id: str
) -> bool:
    """Not applicable (False) without an agent config."""
    if config is None:
        return False
    return (await evaluate_per_user_quota(db, config, user_id)).exceeded


async def exceeds_per_agent_quota(db: AsyncSession, config: AgentConfig | None) -> bool:
    """Not applicable (False) without an agent config."""
    if config is None:
        return False
    return (await evaluate_per_agent_quota(db, config)).exceeded


async def enforce_quotas(db: AsyncSession, config: AgentConfig, user_id: str) -> None:
    """Raise for the first exceeded quota (per-user, then per-agent).

    Raises:
        QuotaExceededError: With scope, current count and limit
    """
    for evaluate in (
        lambda: evaluate_per_user_quota(db, config, user_id),
        lambda: evaluate_per_agent_quota(db, config),
    ):
        evaluation = await evaluate()
        if evaluation.exceeded:
            logger.info(
                "Workspace quota exceeded",
                extra={
                    "event": LogEvent.QUOTA_EXCEEDED,
                    "component": Component.API,
                    "agent_id": config.agent_id,
                    "user_id": user_id,
                    "scope": evaluation.scope,
                    "count": evaluation.count,
                    "limit": evaluation.limit,
                },
            )
            raise QuotaExceededError(evaluation.scope, evaluation.count, evaluation.limit)
