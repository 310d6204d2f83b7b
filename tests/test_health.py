import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.database import get_session
from backend.main import app


@pytest.mark.asyncio
async def test_health_check(sessionmaker: async_sessionmaker[AsyncSession]) -> None:
    async def override() -> AsyncSession:  # type: ignore[misc]
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_session] = override
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/health")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
