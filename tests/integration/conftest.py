"""
Integration fixtures.

Builds the real routers and error handlers on a bare FastAPI app whose
lifespan injects the in-memory services from tests/conftest.py. No network
connections are made.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import register_error_handlers
from routes.account_routes import router as account_router
from routes.admin_routes import router as admin_router
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router


@pytest.fixture
def api(account_service, session_service, rate_limiter):
    mock_db = MagicMock()
    mock_db.client.admin.command = AsyncMock(return_value={"ok": 1})

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db = mock_db
        app.state.account_service = account_service
        app.state.session_service = session_service
        app.state.rate_limiter = rate_limiter
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    for router in (health_router, auth_router, account_router, admin_router):
        app.include_router(router)

    with TestClient(app) as client:
        yield client


@pytest.fixture
def login(api):
    """Sign *api* in; the session cookie stays on the client."""

    def _login(email: str, password: str):
        resp = api.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()["user"]

    return _login
