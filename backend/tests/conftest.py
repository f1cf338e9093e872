"""Pytest configuration and shared fixtures."""
import os
from typing import Any, Dict, List, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("BASE_URL", "https://pocketlawyer.test")
os.environ.setdefault("RESEND_API_KEY", "re_test")
os.environ.setdefault("SCHEDULER_API_KEY", "test-scheduler-key")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pocketlawyer.dependencies import get_db, get_email_client, get_session_factory
from pocketlawyer.main import create_app
from pocketlawyer.models import Base

SCHEDULER_KEY = os.environ["SCHEDULER_API_KEY"]


class FakeEmailClient:
    """Records every send; addresses in fail_for are rejected by the 'transport'."""

    def __init__(self, fail_for: Optional[List[str]] = None):
        self.fail_for = set(fail_for or [])
        self.sent: List[Dict[str, Any]] = []

    @property
    def is_configured(self) -> bool:
        return True

    async def send_email(self, to_email, subject, html, text=None, reply_to=None, tags=None, attachments=None):
        if to_email in self.fail_for:
            return {"success": False, "error": "mailbox unavailable"}
        self.sent.append({"to": to_email, "subject": subject, "html": html, "text": text, "tags": tags,
                          "attachments": attachments})
        return {"success": True, "message_id": f"msg-{len(self.sent)}"}

    def recipients(self) -> List[str]:
        return [message["to"] for message in self.sent]


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
async def client(session_factory, email_client):
    app = create_app()

    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_email_client] = lambda: email_client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
