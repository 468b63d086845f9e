"""
tests/conftest.py -- Shared test fixtures for Craterra.

This module provides:
  - memory_url(): a unique named shared-memory SQLite URL
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api: module-scoped Harness around a TestClient plus the stores behind it
  - user_store / album_store: function-scoped isolated stores for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares one
in-memory instance across all connections in the same process.

Cloudinary is never contacted: cloudinary.uploader.upload/destroy are patched
with MagicMocks, so the real AssetHost code (extension check, cleanup on
failed writes) still runs.

DEBUG and RATE_LIMIT_ENABLED must be set before any api/auth/core import so
get_settings() auto-generates SECRET_KEY and the limiter starts disabled.
"""

from __future__ import annotations

import itertools
import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from unittest.mock import MagicMock, patch

# CRITICAL: Set before any craterra import -- Settings is cached on first use.
os.environ.setdefault("DEBUG", "true")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from catalog.store import AlbumStore
from media.host import AssetHost

PASSWORD = "correct-horse-battery"


def memory_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def _patch_lifespan(user_store: UserStore, album_store: AlbumStore, asset_host: AssetHost):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.album_store = album_store
        app.state.asset_host = asset_host
        yield

    return test_lifespan


def _fake_upload_result() -> Callable[..., dict]:
    counter = itertools.count(1)

    def upload(fileobj, **options):
        public_id = f"{options.get('folder', 'craterra')}/asset{next(counter)}"
        return {"public_id": public_id, "secure_url": f"https://res.cloudinary.com/test/image/upload/{public_id}.jpg"}

    return upload


@dataclass
class Harness:
    client: TestClient
    user_store: UserStore
    album_store: AlbumStore
    upload: MagicMock
    destroy: MagicMock
    admin_id: str
    admin_headers: dict

    def signup(self, name: str = "Listener") -> tuple[str, dict]:
        """Register a fresh user over HTTP, log in, and return (user_id, auth headers)."""
        email = f"{uuid.uuid4().hex[:12]}@example.com"
        resp = self.client.post("/auth/register", json={"name": name, "email": email, "password": PASSWORD})
        assert resp.status_code == 201, resp.text
        user_id = resp.json()["data"]["id"]
        resp = self.client.post("/auth/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["access_token"]
        return user_id, {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Module-scoped API harness -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api() -> Generator[Harness, None, None]:
    """Yield a Harness wired to isolated stores and a mocked Cloudinary.

    An admin user is created directly in the store (admins cannot register
    over HTTP) and a JWT is issued for it.
    """
    user_store = UserStore(db_url=memory_url("test_users"))
    album_store = AlbumStore(db_url=memory_url("test_albums"))
    asset_host = AssetHost("test-cloud", "test-key", "test-secret", folder="craterra-test")

    admin = User(name="Admin", email="admin@craterra.test", hashed_password=hash_password(PASSWORD), role="admin")
    admin_id = user_store.create_user(admin)
    token = create_access_token(admin_id, admin.email)

    app.router.lifespan_context = _patch_lifespan(user_store, album_store, asset_host)

    with (
        patch("cloudinary.uploader.upload", side_effect=_fake_upload_result()) as upload,
        patch("cloudinary.uploader.destroy", return_value={"result": "ok"}) as destroy,
        TestClient(app, raise_server_exceptions=True) as client,
    ):
        yield Harness(
            client=client,
            user_store=user_store,
            album_store=album_store,
            upload=upload,
            destroy=destroy,
            admin_id=admin_id,
            admin_headers={"Authorization": f"Bearer {token}"},
        )

    album_store.close()
    user_store.close()


@pytest.fixture(autouse=True)
def _reset_cloudinary_mocks(request: pytest.FixtureRequest) -> None:
    """Clear call history between tests that share the module harness."""
    if "api" in request.fixturenames:
        harness = request.getfixturevalue("api")
        harness.upload.reset_mock()
        harness.destroy.reset_mock()
        harness.destroy.side_effect = None


# ---------------------------------------------------------------------------
# Function-scoped stores for unit tests
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(db_url=memory_url("unit_users"))
    yield store
    store.close()


@pytest.fixture
def album_store() -> Generator[AlbumStore, None, None]:
    store = AlbumStore(db_url=memory_url("unit_albums"))
    yield store
    store.close()
