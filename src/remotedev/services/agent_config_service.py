"""Agent config lookup and update from an agent's configuration file entry."""

import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from remotedev.adapters.clock.system import SystemClock
from remotedev.adapters.schema.registry import (
    NETWORK_POLICY_EGRESS,
    RESOURCES_PER_WORKSPACE,
    get_schema_validator,
)
from remotedev.app.logging import log_context
from remotedev.control.selector import by_agent, non_terminated
from remotedev.core.errors import AgentConfigInvalidError, FieldError, SchemaValidationError
from remotedev.core.interfaces.clock import Clock
from remotedev.core.interfaces.schema_validator import SchemaValidator
from remotedev.core.logging_schema import Component, LogEvent
from remotedev.core.models import AgentConfig, Workspace

logger = logging.getLogger(__name__)

NETWORK_POLICY_EGRESS_DEFAULT = [
    {
        "allow": "0.0.0.0/0",
        "except": ["10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16"],
    }
]

_DNS_ZONE_RE = re.compile(
    r"^(?=.{1,253}$)([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)(\.[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)*$"
)


class NetworkPolicyDocument(BaseModel):
    enabled: bool = True
    egress: list[dict[str, Any]] = Field(
        default_factory=lambda: [dict(rule) for rule in NETWORK_POLICY_EGRESS_DEFAULT]
    )


class WorkspacesProxyDocument(BaseModel):
    namespace: str = "gitlab-workspaces"


class RemoteDevelopmentDocument(BaseModel):
    """`remote_development` entry of an agent config file."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = False
    dns_zone: str
    workspaces_quota: int = Field(default=-1, ge=-1)
    workspaces_per_user_quota: int = Field(default=-1, ge=-1)
    network_policy: NetworkPolicyDocument = Field(default_factory=NetworkPolicyDocument)
    gitlab_workspaces_proxy: WorkspacesProxyDocument = Field(
        default_factory=WorkspacesProxyDocument
    )
    default_resources_per_workspace_container: dict[str, Any] = Field(default_factory=dict)
    max_resources_per_workspace: dict[str, Any] = Field(default_factory=dict)

    @field_validator("dns_zone")
    @classmethod
    def _check_dns_zone(cls, value: str) -> str:
        if not _DNS_ZONE_RE.match(value):
            raise ValueError("contains invalid characters (valid DNS subdomain required)")
        return value


async def agent_config_for(
    db: AsyncSession,
    agent_id: str,
    lock: bool = False,
) -> AgentConfig | None:
    """Get the agent config bound to an agent, if any.

    Args:
        db: Database session
        agent_id: Agent ID
        lock: SELECT ... FOR UPDATE (serializes workspace creation per agent)
    """
    stmt = select(AgentConfig).where(AgentConfig.agent_id == agent_id)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def _parse_document(entry: dict[str, Any]) -> RemoteDevelopmentDocument:
    try:
        return RemoteDevelopmentDocument.model_validate(entry)
    except ValidationError as exc:
        raise AgentConfigInvalidError(
            [
                FieldError(
                    field=".".join(str(p) for p in e["loc"]) or "remote_development",
                    message=e["msg"],
                )
                for e in exc.errors()
            ]
        ) from exc


def _validate_schemas(doc: RemoteDevelopmentDocument, validator: SchemaValidator) -> None:
    documents = [
        (NETWORK_POLICY_EGRESS, doc.network_policy.egress),
        (RESOURCES_PER_WORKSPACE, doc.default_resources_per_workspace_container),
        (RESOURCES_PER_WORKSPACE, doc.max_resources_per_workspace),
    ]
    for schema_name, document in documents:
        errors = validator.validate(document, schema_name)
        if errors:
            raise SchemaValidationError(schema_name, errors)


async def update_agent_config(
    db: AsyncSession,
    agent_id: str,
    config: dict[str, Any],
    clock: Clock | None = None,
    validator: SchemaValidator | None = None,
) -> AgentConfig | None:
    """Create or update an agent config from the agent's config file.

    When the dns_zone changes, every non-terminated workspace of the agent is
    moved to the new zone and flagged for a full resync, in the same
    transaction.

    Args:
        db: Database session
        agent_id: Agent ID
        config: Parsed agent config file
        clock: Time source
        validator: Schema validator for resource/egress documents

    Returns:
        The saved config, or None if the file has no remote_development entry

    Raises:
        AgentConfigInvalidError: Invalid field values
        SchemaValidationError: Resource or egress document rejected
    """
    with log_context(agent_id=agent_id):
        clock = clock or SystemClock()
        validator = validator or get_schema_validator()

        entry = config.get("remote_development")
        if not entry:
            logger.info(
                "Agent config update skipped: no remote_development entry",
                extra={
                    "event": LogEvent.AGENT_CONFIG_SKIPPED,
                    "component": Component.AGENT_CONFIG,
                    "agent_id": agent_id,
                },
            )
            return None

        doc = _parse_document(entry)
        _validate_schemas(doc, validator)

        now = clock.now()
        agent_config = await agent_config_for(db, agent_id, lock=True)
        previous_dns_zone = agent_config.dns_zone if agent_config else None

        if agent_config is None:
            agent_config = AgentConfig(agent_id=agent_id, dns_zone=doc.dns_zone, created_at=now)
            db.add(agent_config)

        agent_config.enabled = doc.enabled
        agent_config.dns_zone = doc.dns_zone
        agent_config.workspaces_quota = doc.workspaces_quota
        agent_config.workspaces_per_user_quota = doc.workspaces_per_user_quota
        agent_config.network_policy_enabled = doc.network_policy.enabled
        agent_config.network_policy_egress = doc.network_policy.egress
        agent_config.default_resources_per_workspace_container = (
            doc.default_resources_per_workspace_container
        )
        agent_config.max_resources_per_workspace = doc.max_resources_per_workspace
        agent_config.workspaces_proxy_namespace = doc.gitlab_workspaces_proxy.namespace
        agent_config.updated_at = now

        if previous_dns_zone is not None and previous_dns_zone != doc.dns_zone:
            result = await db.execute(
                update(Workspace)
                .where(by_agent(agent_id), non_terminated())
                .values(
                    dns_zone=doc.dns_zone,
                    force_include_all_resources=True,
                    updated_at=now,
                )
                .execution_options(synchronize_session="fetch")
            )
            logger.info(
                "Agent dns_zone changed, workspaces flagged for full resync",
                extra={
                    "event": LogEvent.DNS_ZONE_CHANGED,
                    "component": Component.AGENT_CONFIG,
                    "agent_id": agent_id,
                    "old_dns_zone": previous_dns_zone,
                    "new_dns_zone": doc.dns_zone,
                    "workspace_count": result.rowcount,
                },
            )

        await db.commit()
        await db.refresh(agent_config)

        logger.info(
            "Agent config updated",
            extra={
                "event": LogEvent.AGENT_CONFIG_UPDATED,
                "component": Component.AGENT_CONFIG,
                "agent_id": agent_id,
                "enabled": agent_config.enabled,
            },
        )
        return agent_config
