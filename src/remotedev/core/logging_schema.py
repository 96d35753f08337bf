"""Logging field schema - v1.0

Standard fields (added to all logs):
- schema_version: Log schema version
- service: Service name (remotedev-reconciler)
- component: Component name (API, RECONCILE, AGENT_CONFIG, VARIABLES)
- event: Event type (workspace_created, reconcile_complete, etc.)
- trace_id: Trace ID of the request or agent poll

High cardinality fields (OK in logs, NOT in metric labels):
- ws_id: Workspace ID
- user_id: User ID
- agent_id: Agent ID
"""

from enum import StrEnum


class LogEvent(StrEnum):
    """Standard log event types for the 'event' extra field."""

    # Workspace lifecycle
    WORKSPACE_CREATED = "workspace_created"
    DESIRED_STATE_CHANGED = "desired_state_changed"
    ACTUAL_STATE_REPORTED = "actual_state_reported"
    VALIDATION_FAILED = "validation_failed"
    QUOTA_EXCEEDED = "quota_exceeded"

    # Reconciliation
    RECONCILE_COMPLETE = "reconcile_complete"
    REPORT_IGNORED = "report_ignored"

    # Agent config
    AGENT_CONFIG_UPDATED = "agent_config_updated"
    AGENT_CONFIG_SKIPPED = "agent_config_skipped"
    DNS_ZONE_CHANGED = "dns_zone_changed"

    # Variables
    VARIABLE_STORED = "variable_stored"

    # Lifecycle
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"

    # Infra
    DB_CONNECTED = "db_connected"
    DB_ERROR = "db_error"


class Component(StrEnum):
    """Component identifiers for log filtering."""

    API = "api"  # user-initiated workspace mutations
    RECONCILE = "reconcile"  # agent poll handler
    AGENT_CONFIG = "agent_config"
    VARIABLES = "variables"
