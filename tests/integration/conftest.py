"""Integration-test fixtures (requires running PG + Redis and `alembic upgrade head`).

Skipped unless CL_INTEGRATION=1. All integration tests share a single event
loop so the module-level SQLAlchemy engine pool and Redis pool stay valid.
"""

import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

if os.environ.get("CL_INTEGRATION") != "1":
    pytest.skip("set CL_INTEGRATION=1 to run integration tests", allow_module_level=True)

from src.cl_common.database import session_factory  # noqa: E402
from src.main import app  # noqa: E402


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client; keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def user_id() -> str:
    """Insert a fresh user row (users are owned by the identity system)."""
    uid = f"user-{uuid.uuid4().hex[:8]}"
    async with session_factory() as db:
        await db.execute(
            text("INSERT INTO users (id, document, email) VALUES (:id, :doc, :email)"),
            {"id": uid, "doc": uid[-8:], "email": f"{uid}@example.com"},
        )
        await db.commit()
    return uid
