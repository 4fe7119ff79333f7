"""Authentication and tenant-scoping dependencies.

Login happens in the external auth provider; this service only sees a
signed session token naming the user. The token is resolved to an active
membership, which fixes the tenant (company) every query is scoped to.
"""

import hmac
from dataclasses import dataclass

from fastapi import Header
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from leadhub_engine.common.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    TransientConnectionError,
)

SESSION_SALT = "leadhub-session"


@dataclass(frozen=True)
class TenantPrincipal:
    """Resolved identity available to request handlers."""
    user_id: str
    company_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _get_serializer() -> URLSafeTimedSerializer:
    from leadhub_engine.common.config import get_settings
    return URLSafeTimedSerializer(get_settings().secret_key, salt=SESSION_SALT)


def issue_session_token(user_id: str) -> str:
    """Sign a session payload for ``user_id``."""
    return _get_serializer().dumps({"user_id": user_id})


def verify_session_token(token: str) -> str | None:
    """Return the user id carried by a valid token, else None."""
    from leadhub_engine.common.config import get_settings

    try:
        payload = _get_serializer().loads(token, max_age=get_settings().session_max_age)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(payload, dict) or not payload.get("user_id"):
        return None
    return str(payload["user_id"])


def _bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


async def require_tenant_member(
    authorization: str | None = Header(None),
) -> TenantPrincipal:
    """FastAPI dependency resolving the session to an active tenant member."""
    token = _bearer(authorization)
    if token is None:
        raise AuthenticationError()
    user_id = verify_session_token(token)
    if user_id is None:
        raise AuthenticationError()

    from leadhub_engine.deps import get_db, get_tenant_service
    svc = get_tenant_service()
    member = await get_db().run(lambda session: svc.get_active_member(session, user_id))
    if member is None:
        raise AuthorizationError()
    return TenantPrincipal(
        user_id=member.user_id,
        company_id=member.company_id,
        role=member.role,
    )


async def require_tenant_admin(
    authorization: str | None = Header(None),
) -> TenantPrincipal:
    """FastAPI dependency requiring an admin of the caller's tenant."""
    principal = await require_tenant_member(authorization)
    if not principal.is_admin:
        raise AuthorizationError("Admin role required")
    return principal


async def require_super_admin(
    x_leadhub_admin_key: str | None = Header(None, alias="X-Leadhub-Admin-Key"),
) -> str:
    """FastAPI dependency for platform operations (tenant provisioning)."""
    from leadhub_engine.common.config import get_settings

    if not x_leadhub_admin_key:
        raise AuthenticationError()
    settings = get_settings()
    if not hmac.compare_digest(x_leadhub_admin_key.encode(), settings.super_admin_key.encode()):
        raise AuthorizationError("Invalid super-admin key")
    return x_leadhub_admin_key


async def require_cron_secret(
    authorization: str | None = Header(None),
) -> None:
    """FastAPI dependency for endpoints driven by the external scheduler."""
    from leadhub_engine.common.config import get_settings

    expected = get_settings().cron_secret
    if not expected:
        raise TransientConnectionError("Cron secret not configured", code="CRON_NOT_CONFIGURED")
    token = _bearer(authorization)
    if token is None or not hmac.compare_digest(token.encode(), expected.encode()):
        raise AuthenticationError("Unauthorized")


def ensure_company(principal: TenantPrincipal, company_id: str | None) -> str:
    """Check a client-supplied company id against the session's tenant.

    A mismatch is reported as not-found so callers learn nothing about other
    tenants. Returns the tenant id to scope queries with.
    """
    if company_id is not None and str(company_id) != principal.company_id:
        raise NotFoundError()
    return principal.company_id
