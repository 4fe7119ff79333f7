"""Tests for n8n monitoring: severity, execution parsing, pull sync and stats."""

from datetime import timedelta

import httpx
import pytest

from leadhub_engine.common.config import LeadhubSettings
from leadhub_engine.common.database import DatabaseManager
from leadhub_engine.common.exceptions import ConflictError, UpstreamGatewayError
from leadhub_engine.common.models import utcnow
from leadhub_engine.monitor.n8n_client import N8nClient, extract_failure
from leadhub_engine.monitor.schemas import ErrorReport
from leadhub_engine.monitor.service import MonitorService, classify_severity
from leadhub_engine.tenants.service import TenantService
from leadhub_engine.vault.crypto import MASKED_SECRET, Vault


def make_settings(**overrides) -> LeadhubSettings:
    defaults = {"encryption_key": "unit-test-master-key", "db_url": "sqlite+aiosqlite://"}
    defaults.update(overrides)
    return LeadhubSettings(**defaults)


def failed_execution(execution_id, message="Request failed", node="HTTP Request"):
    return {
        "id": execution_id,
        "workflowId": "wf-1",
        "stoppedAt": "2024-05-01T10:00:00.000Z",
        "workflowData": {"id": "wf-1", "name": "Lead intake"},
        "data": {"resultData": {"error": {"message": message, "node": {"name": node}}}},
    }


def n8n_transport(pages, seen=None, status_code=200):
    """Serve ``pages`` in order, keyed by the cursor the client sends."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if status_code != 200:
            return httpx.Response(status_code, text="unauthorized")
        cursor = request.url.params.get("cursor")
        index = int(cursor) if cursor else 0
        next_cursor = str(index + 1) if index + 1 < len(pages) else None
        return httpx.Response(200, json={"data": pages[index], "nextCursor": next_cursor})

    return httpx.MockTransport(handler)


@pytest.fixture
async def db():
    manager = DatabaseManager(make_settings())
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture(scope="module")
def vault():
    return Vault("unit-test-master-key")


@pytest.fixture
async def company_id(db):
    async with db.get_session() as session:
        company = await TenantService().create_company(session, name="Acme", slug="acme")
        return company.id


# ── Parsing ──


class TestClassifySeverity:
    @pytest.mark.parametrize("message, expected", [
        ("CRITICAL: database down", "critical"),
        ("Warning: deprecated node", "low"),
        ("Request timed out after 30s", "high"),
        ("ETIMEDOUT timeout", "high"),
        ("Something odd", "medium"),
        ("", "medium"),
    ])
    def test_keywords(self, message, expected):
        assert classify_severity(message) == expected


class TestExtractFailure:
    def test_result_error(self):
        failure = extract_failure(failed_execution("101"))
        assert failure["execution_id"] == "101"
        assert failure["workflow_id"] == "wf-1"
        assert failure["workflow_name"] == "Lead intake"
        assert failure["error_node"] == "HTTP Request"
        assert failure["message"] == "Request failed"

    def test_node_as_string(self):
        execution = {"id": 5, "data": {"resultData": {"error": {"message": "x", "node": "Set"}}}}
        assert extract_failure(execution)["error_node"] == "Set"

    def test_run_data_fallback(self):
        execution = {
            "id": "7",
            "workflowName": "Billing",
            "data": {"resultData": {"runData": {
                "Start": [{"data": {}}],
                "Code": [{"error": {"message": "ReferenceError: x is not defined"}}],
            }}},
        }
        failure = extract_failure(execution)
        assert failure["workflow_name"] == "Billing"
        assert failure["error_node"] == "Code"
        assert failure["message"] == "ReferenceError: x is not defined"

    def test_nothing_known(self):
        failure = extract_failure({"id": "9"})
        assert failure["workflow_name"] == "Unknown"
        assert failure["error_node"] == "Unknown"
        assert failure["message"] == "Unknown error"
        assert failure["workflow_id"] == ""


# ── Client ──


class TestN8nClient:
    async def test_follows_cursor(self):
        seen = []
        pages = [[failed_execution("1"), failed_execution("2")], [failed_execution("3")]]
        client = N8nClient("https://n8n.example.com/", "key-1", transport=n8n_transport(pages, seen))
        executions = await client.list_failed_executions()

        assert [e["id"] for e in executions] == ["1", "2", "3"]
        assert len(seen) == 2
        first = seen[0]
        assert first.url.path == "/api/v1/executions"
        assert first.url.params["status"] == "error"
        assert first.url.params["includeData"] == "true"
        assert first.headers["X-N8N-API-KEY"] == "key-1"
        assert seen[1].url.params["cursor"] == "1"

    async def test_plain_list_body(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json=[failed_execution("1")]))
        client = N8nClient("https://n8n.example.com", "k", transport=transport)
        assert len(await client.list_failed_executions()) == 1

    async def test_error_status(self):
        client = N8nClient("https://n8n.example.com", "k", transport=n8n_transport([], status_code=401))
        with pytest.raises(UpstreamGatewayError) as exc_info:
            await client.list_failed_executions()
        assert exc_info.value.code == "N8N_ERROR"

    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = N8nClient("https://n8n.example.com", "k", transport=httpx.MockTransport(handler))
        with pytest.raises(UpstreamGatewayError) as exc_info:
            await client.list_failed_executions()
        assert exc_info.value.code == "N8N_UNREACHABLE"

    @pytest.mark.parametrize("response", [
        httpx.Response(200, text="<html>Sign in</html>"),
        httpx.Response(200, json="ok"),
    ])
    async def test_body_that_is_not_json_data(self, response):
        client = N8nClient(
            "https://n8n.example.com", "k", transport=httpx.MockTransport(lambda request: response),
        )
        with pytest.raises(UpstreamGatewayError) as exc_info:
            await client.list_failed_executions()
        assert exc_info.value.code == "N8N_INVALID_RESPONSE"
        assert exc_info.value.message == "n8n returned invalid JSON"

    def test_execution_url(self):
        client = N8nClient("https://n8n.example.com/", "k")
        assert client.execution_url("42") == "https://n8n.example.com/execution/42"


# ── Service ──


class TestInstances:
    async def test_key_encrypted_and_masked(self, db, vault, company_id):
        svc = MonitorService(make_settings(), vault)
        async with db.get_session() as session:
            instance = await svc.create_instance(
                session, company_id, name="prod", url="https://n8n.example.com/", api_key="n8n-key",
            )
        assert instance.url == "https://n8n.example.com"
        assert instance.api_key_encrypted != "n8n-key"
        assert svc.instance_api_key(instance) == "n8n-key"
        assert svc.instance_view(instance)["api_key"] == MASKED_SECRET

    async def test_update_rotates_key(self, db, vault, company_id):
        svc = MonitorService(make_settings(), vault)
        async with db.get_session() as session:
            instance = await svc.create_instance(
                session, company_id, name="prod", url="https://a.example.com", api_key="old",
            )
            updated = await svc.update_instance(
                session, company_id, instance.id, api_key="new", active=False,
            )
            assert await svc.update_instance(session, "other", instance.id, name="x") is None
        assert svc.instance_api_key(updated) == "new"
        assert updated.active is False

    async def test_deleted_instance_keeps_errors(self, db, vault, company_id):
        svc = MonitorService(make_settings(), vault)
        async with db.get_session() as session:
            instance = await svc.create_instance(
                session, company_id, name="prod", url="https://a.example.com", api_key="k",
            )
            await svc.record_error(session, instance, ErrorReport(message="boom"))
            assert await svc.delete_instance(session, company_id, instance.id)
            rows = await svc.list_errors(session, company_id)
        assert len(rows) == 1
        assert rows[0][1] is None


class TestErrors:
    async def test_record_classifies(self, db, vault, company_id):
        svc = MonitorService(make_settings(), vault)
        async with db.get_session() as session:
            instance = await svc.create_instance(
                session, company_id, name="prod", url="https://a.example.com", api_key="k",
            )
            auto = await svc.record_error(session, instance, ErrorReport(message="Gateway timeout"))
            explicit = await svc.record_error(
                session, instance, ErrorReport(message="Gateway timeout", severity="low"),
            )
        assert auto.severity == "high"
        assert explicit.severity == "low"

    async def test_duplicate_execution_conflicts(self, db, vault, company_id):
        svc = MonitorService(make_settings(), vault)
        async with db.get_session() as session:
            instance = await svc.create_instance(
                session, company_id, name="prod", url="https://a.example.com", api_key="k",
            )
        report = ErrorReport(execution_id="e-1", message="boom")
        async with db.get_session() as session:
            await svc.record_error(session, instance, report)
        with pytest.raises(ConflictError):
            async with db.get_session() as session:
                await svc.record_error(session, instance, report)

    async def test_resolve_sets_timestamp_once(self, db, vault, company_id):
        svc = MonitorService(make_settings(), vault)
        async with db.get_session() as session:
            instance = await svc.create_instance(
                session, company_id, name="prod", url="https://a.example.com", api_key="k",
            )
            error = await svc.record_error(session, instance, ErrorReport(message="boom"))
            resolved = await svc.resolve_error(session, company_id, error.id)
            first_at = resolved.resolved_at
            again = await svc.resolve_error(session, company_id, error.id)
            assert await svc.resolve_error(session, "other", error.id) is None
        assert resolved.resolved
        assert again.resolved_at == first_at


class TestStats:
    async def test_counts(self, db, vault, company_id):
        svc = MonitorService(make_settings(), vault)
        async with db.get_session() as session:
            a = await svc.create_instance(
                session, company_id, name="a", url="https://a.example.com", api_key="k",
            )
            await svc.create_instance(
                session, company_id, name="b", url="https://b.example.com", api_key="k", active=False,
            )
            await svc.record_error(session, a, ErrorReport(message="critical failure"))
            await svc.record_error(session, a, ErrorReport(message="warning only"))
            old = await svc.record_error(
                session, a, ErrorReport(message="x", timestamp=utcnow() - timedelta(days=3)),
            )
            await svc.resolve_error(session, company_id, old.id)
            stats = await svc.stats(session, company_id)
            empty = await svc.stats(session, "no-such-company")

        assert stats["total_instances"] == 2
        assert stats["active_instances"] == 1
        assert stats["uptime_average"] == 50
        assert stats["errors_24h"] == 2
        assert stats["unresolved_errors"] == 2
        assert stats["severity_counts"] == {"low": 1, "medium": 0, "high": 0, "critical": 1}
        assert empty["uptime_average"] == 0
        assert empty["total_instances"] == 0


class TestSync:
    async def test_imports_new_executions_only(self, db, vault, company_id):
        pages = [[failed_execution("1"), failed_execution("2", message="Workflow timed out")]]
        svc = MonitorService(make_settings(), vault, transport=n8n_transport(pages))
        async with db.get_session() as session:
            instance = await svc.create_instance(
                session, company_id, name="prod", url="https://n8n.example.com", api_key="k",
            )
            await svc.record_error(session, instance, ErrorReport(execution_id="1", message="pushed"))

        async with db.get_session() as session:
            instance = await svc.get_instance(session, company_id, instance.id)
            outcome = await svc.sync_instance(session, instance)
        assert outcome["new_errors"] == 1
        assert outcome["skipped"] == 1
        assert outcome["total_executions"] == 2

        async with db.get_session() as session:
            instance = await svc.get_instance(session, company_id, instance.id)
            again = await svc.sync_instance(session, instance)
            rows = await svc.list_errors(session, company_id)
            refreshed = await svc.get_instance(session, company_id, instance.id)
        assert again["new_errors"] == 0
        imported = next(e for e, _ in rows if e.execution_id == "2")
        assert imported.severity == "high"
        assert imported.workflow_name == "Lead intake"
        assert imported.details["executionUrl"] == "https://n8n.example.com/execution/2"
        assert refreshed.last_check_at is not None

    async def test_failing_instance_does_not_stop_others(self, db, vault, company_id):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "down.example.com":
                return httpx.Response(500, text="boom")
            return httpx.Response(200, json={"data": [failed_execution("9")], "nextCursor": None})

        svc = MonitorService(make_settings(), vault, transport=httpx.MockTransport(handler))
        async with db.get_session() as session:
            await svc.create_instance(
                session, company_id, name="down", url="https://down.example.com", api_key="k",
            )
            await svc.create_instance(
                session, company_id, name="up", url="https://up.example.com", api_key="k",
            )
            await svc.create_instance(
                session, company_id, name="paused", url="https://up2.example.com", api_key="k",
                active=False,
            )

        async with db.get_session() as session:
            outcome = await svc.sync_all(session, company_id=company_id)

        by_name = {r["instance"]: r for r in outcome["results"]}
        assert set(by_name) == {"down", "up"}
        assert by_name["down"]["status"] == "error"
        assert by_name["up"]["new_errors"] == 1
        assert outcome["new_errors"] == 1

    async def test_html_answer_does_not_stop_others(self, db, vault, company_id):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "login.example.com":
                return httpx.Response(200, text="<html>Sign in</html>")
            return httpx.Response(200, json={"data": [failed_execution("9")], "nextCursor": None})

        svc = MonitorService(make_settings(), vault, transport=httpx.MockTransport(handler))
        async with db.get_session() as session:
            await svc.create_instance(
                session, company_id, name="proxied", url="https://login.example.com", api_key="k",
            )
            await svc.create_instance(
                session, company_id, name="up", url="https://up.example.com", api_key="k",
            )

        async with db.get_session() as session:
            outcome = await svc.sync_all(session, company_id=company_id)

        by_name = {r["instance"]: r for r in outcome["results"]}
        assert by_name["proxied"] == {
            "instance": "proxied", "status": "error", "message": "n8n returned invalid JSON",
        }
        assert by_name["up"]["new_errors"] == 1
        assert [a["workflow_name"] for a in outcome["alerts"][company_id]] == ["Lead intake"]

        async with db.get_session() as session:
            rows = await svc.list_errors(session, company_id)
        assert [e.execution_id for e, _ in rows] == ["9"]

    async def test_unexpected_failure_does_not_stop_others(self, db, vault, company_id):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "odd.example.com":
                # Executions that are not objects break parsing, not the run.
                return httpx.Response(200, json={"data": ["not-an-execution"]})
            return httpx.Response(200, json={"data": [failed_execution("9")], "nextCursor": None})

        svc = MonitorService(make_settings(), vault, transport=httpx.MockTransport(handler))
        async with db.get_session() as session:
            await svc.create_instance(
                session, company_id, name="odd", url="https://odd.example.com", api_key="k",
            )
            await svc.create_instance(
                session, company_id, name="up", url="https://up.example.com", api_key="k",
            )

        async with db.get_session() as session:
            outcome = await svc.sync_all(session, company_id=company_id)

        by_name = {r["instance"]: r for r in outcome["results"]}
        assert by_name["odd"]["status"] == "error"
        assert by_name["up"]["status"] == "success"
        assert outcome["new_errors"] == 1
