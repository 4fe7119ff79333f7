"""Shared test fixtures for LeadHub-Engine."""

import os
import pytest
from httpx import ASGITransport, AsyncClient


ENCRYPTION_KEY = "test-vault-master-key"
SECRET_KEY = "test-session-secret-key"
SUPER_ADMIN_KEY = "test-super-admin-key"
CRON_SECRET = "test-cron-secret"


@pytest.fixture
def app():
    """Create a test app with in-memory DB."""
    os.environ["LEADHUB_DB_URL"] = "sqlite+aiosqlite://"
    os.environ["LEADHUB_ENCRYPTION_KEY"] = ENCRYPTION_KEY
    os.environ["LEADHUB_SECRET_KEY"] = SECRET_KEY
    os.environ["LEADHUB_SUPER_ADMIN_KEY"] = SUPER_ADMIN_KEY
    os.environ["LEADHUB_CRON_SECRET"] = CRON_SECRET
    os.environ["LEADHUB_DB_RETRY_BASE_DELAY"] = "0"

    # Clear caches and singletons so new env vars take effect
    from leadhub_engine.common.config import get_settings
    get_settings.cache_clear()

    from leadhub_engine.deps import reset_singletons
    reset_singletons()

    from leadhub_engine.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from leadhub_engine.deps import get_db, get_task_dispatcher
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await get_task_dispatcher().drain()
    await db.close()


@pytest.fixture
def super_admin_headers():
    return {"X-Leadhub-Admin-Key": SUPER_ADMIN_KEY}


def session_headers(user_id: str) -> dict[str, str]:
    from leadhub_engine.common.security import issue_session_token
    return {"Authorization": f"Bearer {issue_session_token(user_id)}"}


@pytest.fixture
def make_tenant(client, super_admin_headers):
    """Factory: create a company with one member and return (company_id, headers)."""

    async def _make(slug: str, user_id: str, role: str = "admin"):
        resp = await client.post(
            "/companies",
            json={"name": slug.title(), "slug": slug},
            headers=super_admin_headers,
        )
        assert resp.status_code == 201, resp.text
        company_id = resp.json()["id"]
        resp = await client.post(
            f"/companies/{company_id}/members",
            json={"user_id": user_id, "email": f"{user_id}@example.com", "role": role},
            headers=super_admin_headers,
        )
        assert resp.status_code == 201, resp.text
        return company_id, session_headers(user_id)

    return _make


@pytest.fixture
async def tenant(make_tenant):
    return await make_tenant("acme", "acme-admin")


@pytest.fixture
def company_id(tenant):
    return tenant[0]


@pytest.fixture
def admin_headers(tenant):
    return tenant[1]


@pytest.fixture
async def member_headers(client, company_id, super_admin_headers):
    resp = await client.post(
        f"/companies/{company_id}/members",
        json={"user_id": "acme-agent", "role": "member"},
        headers=super_admin_headers,
    )
    assert resp.status_code == 201, resp.text
    return session_headers("acme-agent")


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {CRON_SECRET}"}


@pytest.fixture
def auth_headers_for(app):
    """Bearer headers for an arbitrary user id (membership not required)."""
    return session_headers
