"""
Pytest configuration and fixtures for QuickForm tests.
"""
import os

# Set test environment variables before importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SUBMIT_RATE_LIMIT"] = "1000/minute"
os.environ["ENV"] = "test"
os.environ.pop("APP_ENV", None)
os.environ.pop("REDIS_URL", None)
os.environ.pop("PUBLIC_BASE_URL", None)

import io
from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db.database import create_engine_for, get_session
from db.setup_db import create_tables
from main import app
from services.field_registry import construct

USER_ID = "user-1"


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_engine_for("sqlite+aiosqlite:///:memory:")
    await create_tables(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def client(session_maker):
    async def override_get_session():
        session = session_maker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    app.dependency_overrides[get_session] = override_get_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


def field(tag: str, field_id: str, **attrs: Any) -> Dict[str, Any]:
    """Content entry with the type's defaults, overridden by `attrs`."""
    data = construct(tag, field_id).to_json()
    data["extraAttributes"].update(attrs)
    return data


def png_bytes(width: int, height: int, color=(200, 30, 30)) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (width, height), color).save(out, format="PNG")
    return out.getvalue()


async def create_form(client: httpx.AsyncClient, name: str = "Feedback form", theme: str = "default") -> Dict[str, Any]:
    resp = await client.post("/api/forms", params={"user_id": USER_ID}, json={"name": name, "theme": theme})
    assert resp.status_code == 201, resp.text
    return resp.json()


async def published_form(
    client: httpx.AsyncClient,
    content: List[Dict[str, Any]],
    name: str = "Feedback form",
    theme: Optional[str] = None,
) -> Dict[str, Any]:
    form = await create_form(client, name)
    body: Dict[str, Any] = {"content": content}
    if theme:
        body["theme"] = theme
    resp = await client.put(f"/api/forms/{form['id']}/content", params={"user_id": USER_ID}, json=body)
    assert resp.status_code == 200, resp.text
    resp = await client.post(f"/api/forms/{form['id']}/publish", params={"user_id": USER_ID})
    assert resp.status_code == 200, resp.text
    return resp.json()


def truncated_png_bytes() -> bytes:
    """Head of a noisy PNG: opens fine, fails while decoding pixel data."""
    out = io.BytesIO()
    Image.effect_noise((64, 64), 100).save(out, format="PNG")
    return out.getvalue()[:200]
