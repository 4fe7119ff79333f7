"""HTTP client for the n8n public REST API (failed executions)."""

import logging
from typing import Any

import httpx

from leadhub_engine.common.exceptions import UpstreamGatewayError

logger = logging.getLogger(__name__)

PAGE_SIZE = 250
MAX_PAGES = 10


class N8nClient:
    """Reads failed executions from one n8n instance."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def execution_url(self, execution_id: str) -> str:
        return f"{self.base_url}/execution/{execution_id}"

    async def list_failed_executions(self) -> list[dict[str, Any]]:
        """Follow ``nextCursor`` pages of ``status=error`` executions.

        Raises UpstreamGatewayError on a non-2xx answer, a body that is not a
        JSON object or list, or a transport failure.
        """
        executions: list[dict[str, Any]] = []
        cursor = None
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport,
        ) as client:
            for _ in range(MAX_PAGES):
                params = {"status": "error", "limit": PAGE_SIZE, "includeData": "true"}
                if cursor:
                    params["cursor"] = cursor
                try:
                    resp = await client.get(
                        f"{self.base_url}/api/v1/executions",
                        params=params,
                        headers={"X-N8N-API-KEY": self.api_key},
                    )
                except httpx.HTTPError as exc:
                    raise UpstreamGatewayError(
                        f"n8n request failed: {exc}", code="N8N_UNREACHABLE",
                    ) from exc

                if resp.status_code >= 400:
                    raise UpstreamGatewayError(
                        f"n8n returned HTTP {resp.status_code}: {resp.text[:100]}",
                        code="N8N_ERROR",
                    )

                try:
                    body = resp.json()
                except ValueError:
                    body = None
                if not isinstance(body, (dict, list)):
                    raise UpstreamGatewayError(
                        "n8n returned invalid JSON", code="N8N_INVALID_RESPONSE",
                    )
                if isinstance(body, list):
                    executions.extend(body)
                    break
                executions.extend(body.get("data") or [])
                cursor = body.get("nextCursor")
                if not cursor:
                    break
        return executions


def extract_failure(execution: dict[str, Any]) -> dict[str, Any]:
    """Pull workflow, failing node and message out of an execution record.

    n8n versions disagree on where these live, so several locations are tried.
    """
    data = execution.get("data") or {}
    workflow = execution.get("workflowData") or data.get("workflowData") or {}
    workflow_name = workflow.get("name") or execution.get("workflowName") or "Unknown"

    result = data.get("resultData") or execution.get("resultData") or {}
    error = result.get("error")
    node, message = "Unknown", "Unknown error"
    if error:
        ref = error.get("node")
        if isinstance(ref, str):
            node = ref
        elif isinstance(ref, dict):
            node = ref.get("name") or ref.get("type") or "Unknown"
        message = error.get("message") or message
    else:
        for node_name, runs in (result.get("runData") or {}).items():
            last = runs[-1] if runs else None
            if last and last.get("error"):
                node = node_name
                message = last["error"].get("message") or message
                break

    return {
        "execution_id": str(execution.get("id")),
        "workflow_id": str(execution.get("workflowId") or workflow.get("id") or ""),
        "workflow_name": str(workflow_name)[:500],
        "error_node": str(node)[:255],
        "message": str(message)[:5000],
        "details": error or {},
        "stopped_at": execution.get("stoppedAt"),
    }
