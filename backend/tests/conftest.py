"""Fixtures compartidas para las pruebas."""

import pytest
from httpx import ASGITransport, AsyncClient

from zapdesk.core.config import settings
from zapdesk.main import app

TEST_LOGIN = "operador"
TEST_PASSWORD = "s3nha-forte"


@pytest.fixture(name="credentials")
def fixture_credentials(monkeypatch: pytest.MonkeyPatch) -> tuple[str, str]:
    """Configura `LOGIN`/`SENHA` conocidos para la app de pruebas."""
    monkeypatch.setattr(settings, "login", TEST_LOGIN)
    monkeypatch.setattr(settings, "senha", TEST_PASSWORD)
    return TEST_LOGIN, TEST_PASSWORD


@pytest.fixture(name="async_client")
async def fixture_async_client() -> AsyncClient:
    """Retorna un cliente asíncrono contra la app principal utilizando ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture(name="auth_client")
async def fixture_auth_client(async_client: AsyncClient, credentials: tuple[str, str]) -> AsyncClient:
    """Cliente con la cookie de sesión ya emitida por `/api/auth/login`."""
    username, password = credentials
    response = await async_client.post(
        "/api/auth/login", json={"username": username, "password": password}
    )
    assert response.status_code == 200
    return async_client
