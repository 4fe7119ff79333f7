"""Integration tests for scheduler-driven endpoints."""

import httpx


class TestKeepAlive:
    async def test_requires_secret(self, client):
        resp = await client.get("/cron/keep-alive")
        assert resp.status_code == 401
        resp = await client.get("/cron/keep-alive", headers={"Authorization": "Bearer wrong"})
        assert resp.status_code == 401

    async def test_alive(self, client, cron_headers):
        resp = await client.get("/cron/keep-alive", headers=cron_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "alive"
        assert data["db"] == "connected"
        assert data["uptime"] >= 0

    async def test_unconfigured_secret(self, client, cron_headers, monkeypatch):
        from leadhub_engine.common.config import get_settings

        monkeypatch.setenv("LEADHUB_CRON_SECRET", "")
        get_settings.cache_clear()
        resp = await client.get("/cron/keep-alive", headers=cron_headers)
        assert resp.status_code == 503
        assert resp.json()["code"] == "CRON_NOT_CONFIGURED"


class TestMonitorSync:
    async def test_syncs_every_tenant(self, client, make_tenant, cron_headers):
        from leadhub_engine.deps import get_monitor_service

        def handler(request: httpx.Request) -> httpx.Response:
            execution_id = f"{request.url.host}-1"
            return httpx.Response(200, json={"data": [{
                "id": execution_id,
                "data": {"resultData": {"error": {"message": "boom"}}},
            }]})

        get_monitor_service()._transport = httpx.MockTransport(handler)

        for slug in ("alpha", "beta"):
            _, headers = await make_tenant(slug, f"{slug}-admin")
            resp = await client.post("/monitor/instances", json={
                "name": slug, "url": f"https://{slug}.n8n.cloud", "api_key": "k",
            }, headers=headers)
            assert resp.status_code == 201

        resp = await client.post("/cron/monitor-sync", headers=cron_headers)
        assert resp.status_code == 200
        assert resp.json()["new_errors"] == 2
        assert {r["instance"] for r in resp.json()["results"]} == {"alpha", "beta"}

    async def test_html_answer_from_one_tenant(self, client, make_tenant, cron_headers):
        from leadhub_engine.deps import get_monitor_service, get_task_dispatcher

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "beta.n8n.cloud":
                return httpx.Response(200, text="<html>Sign in</html>")
            return httpx.Response(200, json=[{
                "id": "alpha-1",
                "data": {"resultData": {"error": {"message": "boom"}}},
            }])

        get_monitor_service()._transport = httpx.MockTransport(handler)

        tenants = {}
        for slug in ("alpha", "beta"):
            _, headers = await make_tenant(slug, f"{slug}-admin")
            tenants[slug] = headers
            await client.post("/monitor/instances", json={
                "name": slug, "url": f"https://{slug}.n8n.cloud", "api_key": "k",
            }, headers=headers)

        resp = await client.post("/cron/monitor-sync", headers=cron_headers)
        await get_task_dispatcher().drain()
        assert resp.status_code == 200
        by_name = {r["instance"]: r for r in resp.json()["results"]}
        assert by_name["alpha"]["status"] == "success"
        assert by_name["beta"]["status"] == "error"
        assert by_name["beta"]["message"] == "n8n returned invalid JSON"
        assert resp.json()["new_errors"] == 1

        errors = (await client.get("/monitor/errors", headers=tenants["alpha"])).json()
        assert [e["execution_id"] for e in errors] == ["alpha-1"]

    async def test_requires_secret(self, client, admin_headers):
        resp = await client.post("/cron/monitor-sync", headers=admin_headers)
        assert resp.status_code == 401
