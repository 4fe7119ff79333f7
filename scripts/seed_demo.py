#!/usr/bin/env python3
"""Seed a demo company with an admin member and default automation rows.

Usage:
    python scripts/seed_demo.py [user_id]

Prints a session token for the admin so the API can be explored right away.
"""

import asyncio
import sys
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from leadhub_engine.common.config import get_settings
from leadhub_engine.common.database import DatabaseManager
from leadhub_engine.common.security import issue_session_token
from leadhub_engine.automation.service import AutomationService
from leadhub_engine.tenants.service import TenantService

DEMO_SLUG = "demo"

DEMO_RULES = [
    {
        "name": "Preços",
        "keywords": ["preço", "valor", "quanto custa"],
        "response_message": "Nossa tabela de preços está em https://example.com/precos",
        "priority": 10,
    },
    {
        "name": "Endereço",
        "keywords": ["endereço", "localização"],
        "response_message": "Estamos na Av. Paulista, 1000 - São Paulo/SP.",
        "priority": 5,
    },
]


async def seed_demo(user_id: str) -> None:
    settings = get_settings()
    db = DatabaseManager(settings)
    await db.init()
    await db.create_all()

    tenants = TenantService()
    automation = AutomationService(settings)

    async with db.get_session() as session:
        existing = [c for c in await tenants.list_companies(session) if c.slug == DEMO_SLUG]
        if existing:
            print(f"  [skip] company '{DEMO_SLUG}' already exists")
            company = existing[0]
        else:
            company = await tenants.create_company(session, name="Demo Ltda", slug=DEMO_SLUG)
            await tenants.add_member(
                session, company.id, user_id, email="admin@example.com", role="admin",
            )
            for rule in DEMO_RULES:
                await automation.create_rule(session, company.id, **rule)
            print(f"  [created] company '{DEMO_SLUG}' ({company.id})")

        await automation.get_business_hours(session, company.id)
        await automation.get_settings(session, company.id)

    await db.close()
    print(f"\nSession token for {user_id}:\n{issue_session_token(user_id)}")


if __name__ == "__main__":
    asyncio.run(seed_demo(sys.argv[1] if len(sys.argv) > 1 else "demo-admin"))
