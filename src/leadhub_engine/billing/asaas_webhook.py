"""Asaas payment webhook: authentication and payload parsing."""

import hmac
import json
import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from leadhub_engine.billing.schemas import AsaasWebhookPayload
from leadhub_engine.common.exceptions import ValidationError
from leadhub_engine.vault.crypto import validate_webhook_signature

logger = logging.getLogger(__name__)


def verify_asaas_request(
    payload: bytes,
    access_token: str | None,
    signature: str | None,
    webhook_secret: str | None,
) -> bool:
    """Authenticate a delivery against the channel secret.

    Channels without a secret accept everything. Otherwise the request must
    carry the shared token Asaas sends in ``asaas-access-token`` or an
    HMAC-SHA256 of the raw body.
    """
    if not webhook_secret:
        return True

    if access_token:
        return hmac.compare_digest(access_token.encode(), webhook_secret.encode())

    if signature:
        return validate_webhook_signature(payload, signature, webhook_secret)

    return False


def parse_asaas_event(payload: bytes) -> tuple[AsaasWebhookPayload, dict[str, Any]]:
    """Decode and validate a delivery body.

    Returns the validated event and the decoded JSON kept for auditing.
    Raises ValidationError (400).
    """
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError("Invalid JSON payload") from exc

    if not isinstance(data, dict) or not isinstance(data.get("payment"), dict):
        raise ValidationError("Invalid payload: missing payment")

    try:
        return AsaasWebhookPayload.model_validate(data), data
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        logger.warning("Rejected Asaas payload: %s: %s", field, first["msg"])
        raise ValidationError(f"Invalid payload: {field}: {first['msg']}") from exc
