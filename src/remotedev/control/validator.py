"""Lifecycle validation - pure, ordered, collect-all.

Checks (all run, every violation is returned):
1. agent has an enabled agent config
2. dns_zone matches the agent config zone (skipped when desired is Terminated)
3. editor is allowed
4. max_hours_before_termination within range
5. desired_state cannot move away from Terminated
6. desired_state / actual_state drawn from their enumerations
"""

from typing import TYPE_CHECKING

from pydantic import BaseModel

from remotedev.app.config import get_settings
from remotedev.core.domain.workspace import (
    TERMINAL_DESIRED_STATE,
    VALID_ACTUAL_STATES,
    VALID_DESIRED_STATES,
)
from remotedev.core.errors import FieldError, ViolationKind

if TYPE_CHECKING:
    from remotedev.core.models import AgentConfig, Workspace

_settings = get_settings()


class LifecycleInput(BaseModel):
    """Candidate workspace state to validate.

    previous_desired_state is None for creation.
    """

    desired_state: str
    actual_state: str
    dns_zone: str
    editor: str
    max_hours_before_termination: int
    previous_desired_state: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_workspace(
        cls, ws: "Workspace", desired_state: str | None = None
    ) -> "LifecycleInput":
        """Build the update candidate: ws as stored, with a new desired_state."""
        return cls(
            desired_state=desired_state if desired_state is not None else ws.desired_state,
            actual_state=ws.actual_state,
            dns_zone=ws.dns_zone,
            editor=ws.editor,
            max_hours_before_termination=ws.max_hours_before_termination,
            previous_desired_state=ws.desired_state,
        )


def desired_state_changed(input: LifecycleInput) -> bool:
    """True on creation or when desired_state differs from the stored one."""
    return (
        input.previous_desired_state is None
        or input.previous_desired_state != input.desired_state
    )


def validate_workspace(
    input: LifecycleInput,
    config: "AgentConfig | None",
    allowed_editors: list[str] | None = None,
    max_hours_limit: int | None = None,
) -> list[FieldError]:
    """Validate a workspace candidate against its agent config.

    Args:
        input: Candidate state
        config: Agent config bound via the workspace's agent (None if absent)
        allowed_editors: Override WORKSPACE_ALLOWED_EDITORS
        max_hours_limit: Override WORKSPACE_MAX_HOURS_BEFORE_TERMINATION_LIMIT

    Returns:
        Violations in check order; empty list means valid.
    """
    if allowed_editors is None:
        allowed_editors = _settings.workspace.allowed_editors
    if max_hours_limit is None:
        max_hours_limit = _settings.workspace.max_hours_before_termination_limit

    errors: list[FieldError] = []

    # 1. agent config presence/enabled
    if config is None or not config.enabled:
        errors.append(
            FieldError(
                field="agent",
                message="must have an associated and enabled remote development agent config",
                kind=ViolationKind.BINDING,
            )
        )

    # 2. dns_zone binding (not enforced once terminated)
    if (
        config is not None
        and input.desired_state != TERMINAL_DESIRED_STATE
        and input.dns_zone != config.dns_zone
    ):
        errors.append(
            FieldError(
                field="dns_zone",
                message=f"must match the dns_zone '{config.dns_zone}' of the agent config",
                kind=ViolationKind.BINDING,
            )
        )

    # 3. editor
    if input.editor not in allowed_editors:
        errors.append(
            FieldError(
                field="editor",
                message=f"'{input.editor}' is not supported, must be one of {sorted(allowed_editors)}",
            )
        )

    # 4. max hours
    if input.max_hours_before_termination > max_hours_limit:
        errors.append(
            FieldError(
                field="max_hours_before_termination",
                message=f"must be less than or equal to {max_hours_limit}",
            )
        )
    elif input.max_hours_before_termination < 1:
        errors.append(
            FieldError(
                field="max_hours_before_termination",
                message="must be greater than or equal to 1",
            )
        )

    # 5. Terminated is absorbing
    if (
        input.previous_desired_state == TERMINAL_DESIRED_STATE
        and input.desired_state != TERMINAL_DESIRED_STATE
    ):
        errors.append(
            FieldError(
                field="desired_state",
                message="is 'Terminated', and cannot be updated. Create a new workspace instead.",
                kind=ViolationKind.TERMINAL,
            )
        )

    # 6. enumerations
    if input.desired_state not in VALID_DESIRED_STATES:
        errors.append(
            FieldError(
                field="desired_state",
                message=f"'{input.desired_state}' is not a valid desired state",
            )
        )
    errors.extend(validate_actual_state(input.actual_state))

    return errors


def validate_actual_state(actual_state: str) -> list[FieldError]:
    """Check 6 only; used for agent reports, which carry no user intent."""
    if actual_state in VALID_ACTUAL_STATES:
        return []
    return [
        FieldError(
            field="actual_state",
            message=f"'{actual_state}' is not a valid actual state",
        )
    ]
