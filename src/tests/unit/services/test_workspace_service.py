"""Tests for workspace_service."""

import pytest

from remotedev.core.domain.workspace import VariableType
from remotedev.core.errors import (
    ForbiddenError,
    QuotaExceededError,
    QuotaScope,
    ValidationFailedError,
    WorkspaceNotFoundError,
    WorkspaceTerminatedError,
)
from remotedev.services.variable_service import VariableInput, list_variables
from remotedev.services.workspace_service import (
    create_workspace,
    get_workspace,
    get_workspace_by_name,
    list_workspaces,
    report_actual_state,
    update_desired_state,
)

ZONE = "workspaces.example.dev"


class TestCreateWorkspace:
    @pytest.mark.asyncio
    async def test_creates_with_generated_identity(
        self, db_session, clock, make_agent_config, make_workspace
    ) -> None:
        await make_agent_config()

        ws = await make_workspace(user_id="u1", project_id="p1")

        assert ws.name.startswith("workspace-agent-1-u1-")
        assert ws.namespace.startswith("rd-ns-agent-1-u1-")
        assert ws.name.rsplit("-", 1)[1] == ws.namespace.rsplit("-", 1)[1]
        assert ws.desired_state == "Running"
        assert ws.actual_state == "CreationRequested"
        assert ws.desired_state_updated_at == clock.now()
        assert ws.responded_to_agent_at is None
        assert ws.dns_zone == ZONE
        assert ws.url == f"https://60001-{ws.name}.{ZONE}"
        assert await get_workspace_by_name(db_session, ws.name) is ws

    @pytest.mark.asyncio
    async def test_requires_enabled_config(self, db_session, make_agent_config, make_workspace) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            await make_workspace(agent_id="no-such-agent")
        assert exc_info.value.fields() == {"agent"}

        await make_agent_config(enabled=False)
        with pytest.raises(ValidationFailedError):
            await make_workspace()

        assert await list_workspaces(db_session) == []

    @pytest.mark.asyncio
    async def test_dns_zone_mismatch_rejected(self, make_agent_config, make_workspace) -> None:
        await make_agent_config()

        with pytest.raises(ValidationFailedError) as exc_info:
            await make_workspace(dns_zone="elsewhere.dev")

        assert exc_info.value.fields() == {"dns_zone"}

    @pytest.mark.asyncio
    async def test_collects_all_violations(self, db_session, make_agent_config, make_workspace) -> None:
        await make_agent_config()

        with pytest.raises(ValidationFailedError) as exc_info:
            await make_workspace(
                editor="emacs",
                max_hours_before_termination=1000,
                variables=[VariableInput(key="", value="x")],
            )

        assert exc_info.value.fields() == {
            "editor",
            "max_hours_before_termination",
            "variables[0].key",
        }
        assert await list_workspaces(db_session) == []

    @pytest.mark.asyncio
    async def test_variables_sealed_with_workspace(
        self, db_session, sealer, make_agent_config, make_workspace
    ) -> None:
        await make_agent_config()

        ws = await make_workspace(
            variables=[
                VariableInput(key="TOKEN", value="abc"),
                VariableInput(key="BLANK", value=""),
            ]
        )

        stored = dict(await list_variables(db_session, ws.id))
        assert set(stored) == {"TOKEN", "BLANK"}
        assert sealer.unseal(stored["TOKEN"]) == "abc"
        assert stored["BLANK"].is_empty()

    @pytest.mark.asyncio
    async def test_duplicate_variable_keys_rejected(
        self, db_session, make_agent_config, make_workspace
    ) -> None:
        await make_agent_config()

        with pytest.raises(ValidationFailedError) as exc_info:
            await make_workspace(
                variables=[
                    VariableInput(key="A", value="1"),
                    VariableInput(key="A", value="2"),
                ]
            )

        assert exc_info.value.fields() == {"variables[1].key"}
        assert exc_info.value.errors[0].message == "has already been taken"
        assert await list_workspaces(db_session) == []

    @pytest.mark.asyncio
    async def test_same_key_allowed_across_variable_types(
        self, db_session, make_agent_config, make_workspace
    ) -> None:
        await make_agent_config()

        ws = await make_workspace(
            variables=[
                VariableInput(key="A", value="1"),
                VariableInput(key="A", value="2", variable_type=VariableType.FILE),
            ]
        )

        assert [key for key, _ in await list_variables(db_session, ws.id, "File")] == ["A"]
        assert len(await list_variables(db_session, ws.id)) == 2


class TestQuotaScenario:
    """Agent quota 2, per-user quota 1."""

    @pytest.mark.asyncio
    async def test_per_user_then_per_agent(self, make_agent_config, make_workspace) -> None:
        await make_agent_config(workspaces_quota=2, workspaces_per_user_quota=1)

        await make_workspace(user_id="U")

        with pytest.raises(QuotaExceededError) as exc_info:
            await make_workspace(user_id="U")
        assert exc_info.value.scope == QuotaScope.PER_USER
        assert (exc_info.value.count, exc_info.value.limit) == (1, 1)

        await make_workspace(user_id="V")

        with pytest.raises(QuotaExceededError) as exc_info:
            await make_workspace(user_id="W")
        assert exc_info.value.scope == QuotaScope.PER_AGENT
        assert (exc_info.value.count, exc_info.value.limit) == (2, 2)

    @pytest.mark.asyncio
    async def test_per_user_reported_first(self, make_agent_config, make_workspace) -> None:
        await make_agent_config(workspaces_quota=1, workspaces_per_user_quota=1)
        await make_workspace(user_id="U")

        with pytest.raises(QuotaExceededError) as exc_info:
            await make_workspace(user_id="U")

        assert exc_info.value.scope == QuotaScope.PER_USER


class TestQuotaSentinels:
    @pytest.mark.asyncio
    async def test_disabled_quota_rejects_first_creation(self, make_agent_config, make_workspace) -> None:
        await make_agent_config(workspaces_quota=0)

        with pytest.raises(QuotaExceededError) as exc_info:
            await make_workspace()

        assert exc_info.value.scope == QuotaScope.PER_AGENT
        assert (exc_info.value.count, exc_info.value.limit) == (0, 0)

    @pytest.mark.asyncio
    async def test_disabled_per_user_quota(self, make_agent_config, make_workspace) -> None:
        await make_agent_config(workspaces_per_user_quota=0)

        with pytest.raises(QuotaExceededError) as exc_info:
            await make_workspace()

        assert exc_info.value.scope == QuotaScope.PER_USER

    @pytest.mark.asyncio
    async def test_unlimited_never_rejects(self, db_session, make_agent_config, make_workspace) -> None:
        await make_agent_config(workspaces_quota=-1, workspaces_per_user_quota=-1)

        for _ in range(5):
            await make_workspace(user_id="U")

        assert len(await list_workspaces(db_session, user_id="U")) == 5

    @pytest.mark.asyncio
    async def test_boundary_frees_after_termination(
        self, db_session, clock, make_agent_config, make_workspace
    ) -> None:
        await make_agent_config(workspaces_quota=2)
        first = await make_workspace(user_id="u1")
        await make_workspace(user_id="u2")

        with pytest.raises(QuotaExceededError):
            await make_workspace(user_id="u3")

        await update_desired_state(db_session, first.id, "Terminated", clock=clock)
        ws = await make_workspace(user_id="u3")

        assert ws.desired_state == "Running"


class TestUpdateDesiredState:
    @pytest.mark.asyncio
    async def test_change_stamps_timestamp(
        self, db_session, clock, make_agent_config, make_workspace
    ) -> None:
        await make_agent_config()
        ws = await make_workspace()
        created_at = ws.desired_state_updated_at

        clock.advance(30)
        updated = await update_desired_state(db_session, ws.id, "Stopped", clock=clock)

        assert updated.desired_state == "Stopped"
        assert updated.desired_state_updated_at == clock.now()
        assert updated.desired_state_updated_at > created_at

    @pytest.mark.asyncio
    async def test_same_state_is_noop(self, db_session, clock, make_agent_config, make_workspace) -> None:
        await make_agent_config()
        ws = await make_workspace()
        stamped = ws.desired_state_updated_at

        clock.advance(30)
        updated = await update_desired_state(db_session, ws.id, "Running", clock=clock)

        assert updated.desired_state_updated_at == stamped

    @pytest.mark.asyncio
    async def test_terminal_absorption(self, db_session, clock, make_agent_config, make_workspace) -> None:
        await make_agent_config()
        ws = await make_workspace()
        await update_desired_state(db_session, ws.id, "Terminated", clock=clock)

        for state in ("Running", "Stopped", "RestartRequested"):
            with pytest.raises(WorkspaceTerminatedError) as exc_info:
                await update_desired_state(db_session, ws.id, state, clock=clock)
            assert exc_info.value.status_code == 409

        assert (await get_workspace(db_session, ws.id)).desired_state == "Terminated"

    @pytest.mark.asyncio
    async def test_dns_zone_binding_skipped_for_termination(
        self, db_session, clock, make_agent_config, make_workspace
    ) -> None:
        config = await make_agent_config()
        ws = await make_workspace()
        config.dns_zone = "moved.example.dev"
        await db_session.commit()

        with pytest.raises(ValidationFailedError) as exc_info:
            await update_desired_state(db_session, ws.id, "Stopped", clock=clock)
        assert exc_info.value.fields() == {"dns_zone"}

        terminated = await update_desired_state(db_session, ws.id, "Terminated", clock=clock)
        assert terminated.desired_state == "Terminated"

    @pytest.mark.asyncio
    async def test_invalid_desired_state(self, db_session, clock, make_agent_config, make_workspace) -> None:
        await make_agent_config()
        ws = await make_workspace()

        with pytest.raises(ValidationFailedError) as exc_info:
            await update_desired_state(db_session, ws.id, "Starting", clock=clock)

        assert not isinstance(exc_info.value, WorkspaceTerminatedError)
        assert exc_info.value.fields() == {"desired_state"}

    @pytest.mark.asyncio
    async def test_ownership(self, db_session, clock, make_agent_config, make_workspace) -> None:
        await make_agent_config()
        ws = await make_workspace(user_id="owner")

        with pytest.raises(ForbiddenError):
            await update_desired_state(db_session, ws.id, "Stopped", user_id="intruder", clock=clock)
        with pytest.raises(WorkspaceNotFoundError):
            await update_desired_state(db_session, "missing", "Stopped", clock=clock)


class TestReportActualState:
    @pytest.mark.asyncio
    async def test_stamps_responded_to_agent_at(
        self, db_session, clock, make_agent_config, make_workspace
    ) -> None:
        await make_agent_config()
        ws = await make_workspace()
        observed = clock.advance(10)

        updated = await report_actual_state(
            db_session, ws.id, "Running", observed, agent_id="agent-1",
            deployment_resource_version="7",
        )

        assert updated.actual_state == "Running"
        assert updated.responded_to_agent_at == observed
        assert updated.deployment_resource_version == "7"
        assert updated.desired_state_updated_at < observed

    @pytest.mark.asyncio
    async def test_error_states_accepted(self, db_session, clock, make_agent_config, make_workspace) -> None:
        await make_agent_config()
        ws = await make_workspace()

        updated = await report_actual_state(db_session, ws.id, "Error", clock.advance())

        assert updated.actual_state == "Error"

    @pytest.mark.asyncio
    async def test_accepted_even_when_binding_broken(
        self, db_session, clock, make_agent_config, make_workspace
    ) -> None:
        config = await make_agent_config()
        ws = await make_workspace()
        config.enabled = False
        await db_session.commit()

        updated = await report_actual_state(db_session, ws.id, "Stopped", clock.advance())

        assert updated.actual_state == "Stopped"

    @pytest.mark.asyncio
    async def test_rejects_other_agent_and_bad_state(
        self, db_session, clock, make_agent_config, make_workspace
    ) -> None:
        await make_agent_config()
        ws = await make_workspace()

        with pytest.raises(ForbiddenError):
            await report_actual_state(db_session, ws.id, "Running", clock.now(), agent_id="agent-9")
        with pytest.raises(ValidationFailedError):
            await report_actual_state(db_session, ws.id, "RestartRequested", clock.now())


class TestListWorkspaces:
    @pytest.mark.asyncio
    async def test_filters(self, db_session, clock, make_agent_config, make_workspace) -> None:
        await make_agent_config("agent-1")
        await make_agent_config("agent-2")
        a = await make_workspace(user_id="u1", agent_id="agent-1")
        clock.advance()
        b = await make_workspace(user_id="u1", agent_id="agent-2")
        clock.advance()
        c = await make_workspace(user_id="u2", agent_id="agent-1")
        await update_desired_state(db_session, c.id, "Terminated", clock=clock)

        assert [w.id for w in await list_workspaces(db_session)] == [c.id, b.id, a.id]
        assert [w.id for w in await list_workspaces(db_session, user_id="u1")] == [b.id, a.id]
        assert [w.id for w in await list_workspaces(db_session, agent_id="agent-1")] == [c.id, a.id]
        assert [
            w.id for w in await list_workspaces(db_session, agent_id="agent-1", include_terminated=False)
        ] == [a.id]
        assert [w.id for w in await list_workspaces(db_session, limit=1, offset=1)] == [b.id]


class TestCreateWorkspaceDirect:
    @pytest.mark.asyncio
    async def test_explicit_dns_zone_and_state(self, db_session, clock, sealer, make_agent_config) -> None:
        await make_agent_config()

        ws = await create_workspace(
            db_session,
            user_id="u1",
            project_id="p1",
            agent_id="agent-1",
            desired_state="Stopped",
            editor="webide",
            max_hours_before_termination=120,
            dns_zone=ZONE,
            clock=clock,
            sealer=sealer,
        )

        assert ws.desired_state == "Stopped"
        assert ws.max_hours_before_termination == 120
