"""Integration tests for the Asaas webhook and billing admin endpoints."""

import json
from decimal import Decimal

import pytest

from leadhub_engine.vault.crypto import sign_payload


def delivery(payment_id="pay_001", status="PENDING", value=199.9, event="PAYMENT_CREATED"):
    return {
        "event": event,
        "payment": {
            "id": payment_id,
            "customer": {"name": "João", "email": "joao@example.com", "cpfCnpj": "98765432100"},
            "value": value,
            "status": status,
            "dueDate": "2024-07-01",
        },
    }


@pytest.fixture
async def agent(client, admin_headers):
    resp = await client.post("/billing/agents", json={"name": "Asaas prod"}, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def post_delivery(client, agent, body, token=None):
    from leadhub_engine.deps import get_task_dispatcher

    headers = {"asaas-access-token": token if token is not None else agent["webhook_secret"]}
    resp = await client.post(f"/webhooks/{agent['webhook_id']}", json=body, headers=headers)
    # Activity logging runs in the background; let it finish before the next request.
    await get_task_dispatcher().drain()
    return resp


class TestAgents:
    async def test_create_returns_secret_once(self, client, admin_headers, agent):
        assert agent["webhook_url"].endswith(f"/webhooks/{agent['webhook_id']}")
        assert len(agent["webhook_secret"]) >= 64

        resp = await client.get(f"/billing/agents/{agent['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert "webhook_secret" not in resp.json()
        assert resp.json()["charges_count"] == 0

    async def test_list_with_counts(self, client, admin_headers, agent):
        await post_delivery(client, agent, delivery("p1"))
        await post_delivery(client, agent, delivery("p2"))
        resp = await client.get("/billing/agents", headers=admin_headers)
        assert resp.json()[0]["charges_count"] == 2

    async def test_deactivate(self, client, admin_headers, agent):
        resp = await client.delete(f"/billing/agents/{agent['id']}", headers=admin_headers)
        assert resp.json() == {"success": True}
        resp = await post_delivery(client, agent, delivery())
        assert resp.status_code == 404

    async def test_unknown_agent(self, client, admin_headers):
        resp = await client.get("/billing/agents/nope", headers=admin_headers)
        assert resp.status_code == 404


class TestWebhook:
    async def test_reconciles_and_updates(self, client, admin_headers, agent):
        resp = await post_delivery(client, agent, delivery())
        assert resp.status_code == 200
        first = resp.json()
        assert first["success"] is True
        assert first["event"] == "PAYMENT_CREATED"

        resp = await post_delivery(
            client, agent, delivery(status="RECEIVED", event="PAYMENT_RECEIVED"),
        )
        assert resp.json()["charge_id"] == first["charge_id"]

        resp = await client.get("/billing/charges", headers=admin_headers)
        charges = resp.json()
        assert len(charges) == 1
        assert charges[0]["status"] == "RECEIVED"
        assert charges[0]["customer_name"] == "João"
        assert Decimal(str(charges[0]["amount"])) == Decimal("199.90")

    @pytest.mark.parametrize("provider_status", [
        "AWAITING_RISK_ANALYSIS", "REFUND_REQUESTED", "CHARGEBACK_REQUESTED", "DUNNING_REQUESTED",
    ])
    async def test_other_asaas_statuses_accepted(self, client, admin_headers, agent, provider_status):
        await post_delivery(client, agent, delivery(status="RECEIVED", event="PAYMENT_RECEIVED"))
        resp = await post_delivery(client, agent, delivery(status=provider_status, event="PAYMENT_UPDATED"))
        assert resp.status_code == 200, resp.text

        charges = (await client.get("/billing/charges", headers=admin_headers)).json()
        assert len(charges) == 1
        expected = {"AWAITING_RISK_ANALYSIS": "PENDING", "REFUND_REQUESTED": "REFUNDED",
                    "CHARGEBACK_REQUESTED": "RECEIVED", "DUNNING_REQUESTED": "OVERDUE"}
        assert charges[0]["status"] == expected[provider_status]

    async def test_redelivery_is_idempotent(self, client, admin_headers, agent):
        for _ in range(3):
            assert (await post_delivery(client, agent, delivery())).status_code == 200
        resp = await client.get("/billing/charges", headers=admin_headers)
        assert len(resp.json()) == 1

    async def test_signature_header(self, client, admin_headers, agent):
        body = json.dumps(delivery()).encode()
        resp = await client.post(
            f"/webhooks/{agent['webhook_id']}",
            content=body,
            headers={
                "Content-Type": "application/json",
                "X-Asaas-Signature": sign_payload(body, agent["webhook_secret"]),
            },
        )
        assert resp.status_code == 200

    async def test_wrong_token_writes_nothing(self, client, admin_headers, agent):
        resp = await post_delivery(client, agent, delivery(), token="wrong")
        assert resp.status_code == 403
        assert resp.json()["success"] is False
        resp = await client.get("/billing/charges", headers=admin_headers)
        assert resp.json() == []

    async def test_missing_credentials(self, client, agent):
        resp = await client.post(f"/webhooks/{agent['webhook_id']}", json=delivery())
        assert resp.status_code == 403

    async def test_unknown_webhook(self, client):
        resp = await client.post("/webhooks/does-not-exist", json=delivery())
        assert resp.status_code == 404
        assert resp.json()["message"] == "Webhook not found or inactive"

    async def test_invalid_json(self, client, agent):
        resp = await client.post(
            f"/webhooks/{agent['webhook_id']}",
            content=b"{not json",
            headers={"asaas-access-token": agent["webhook_secret"]},
        )
        assert resp.status_code == 400

    async def test_missing_payment(self, client, agent):
        resp = await post_delivery(client, agent, {"event": "PAYMENT_CREATED"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

    async def test_activity_logged(self, client, admin_headers, agent):
        from leadhub_engine.deps import get_task_dispatcher

        await post_delivery(client, agent, delivery())
        await get_task_dispatcher().drain()

        resp = await client.get(
            "/activity-logs", params={"action": "billing.charge_reconciled"}, headers=admin_headers,
        )
        entries = resp.json()
        assert len(entries) == 1
        assert entries[0]["metadata"]["external_id"] == "pay_001"
        assert entries[0]["metadata"]["status"] == "PENDING"


class TestChargesAndSummary:
    async def test_filters(self, client, admin_headers, agent):
        await post_delivery(client, agent, delivery("a", status="PENDING"))
        await post_delivery(client, agent, delivery("b", status="OVERDUE"))
        resp = await client.get("/billing/charges", params={"status": "OVERDUE"}, headers=admin_headers)
        assert [c["external_id"] for c in resp.json()] == ["b"]

        resp = await client.get("/billing/charges", params={"status": "BOGUS"}, headers=admin_headers)
        assert resp.status_code == 400

    async def test_summary(self, client, admin_headers, agent):
        await post_delivery(client, agent, delivery("a", status="RECEIVED", value=100))
        await post_delivery(client, agent, delivery("b", status="PENDING", value=40.5))
        resp = await client.get("/billing/summary", headers=admin_headers)
        data = resp.json()
        assert data["total_charges"] == 2
        assert Decimal(str(data["received_revenue"])) == Decimal("100.00")
        assert Decimal(str(data["pending_value"])) == Decimal("40.50")
        assert data["active_agents"] == 1
        assert data["status_counts"]["RECEIVED"] == 1


async def test_created_then_received_end_to_end(client, admin_headers, agent):
    await post_delivery(client, agent, delivery("pay_123", status="PENDING", value=150.00))
    received = delivery("pay_123", status="RECEIVED", value=150.00, event="PAYMENT_RECEIVED")
    received["payment"]["paymentDate"] = "2024-01-05"
    await post_delivery(client, agent, received)

    charges = (await client.get("/billing/charges", headers=admin_headers)).json()
    assert len(charges) == 1
    assert charges[0]["external_id"] == "pay_123"
    assert charges[0]["status"] == "RECEIVED"
    assert charges[0]["paid_at"] == "2024-01-05"
    assert Decimal(str(charges[0]["amount"])) == Decimal("150.00")
