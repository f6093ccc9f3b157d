"""Unit tests for the global exception handlers."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware


def _failing_app() -> FastAPI:
    app = FastAPI()
    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database went away")

    return app


async def _get_boom(headers: dict | None = None):
    transport = ASGITransport(app=_failing_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        return await ac.get("/boom", headers=headers)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unhandled_error_echoes_supplied_request_id():
    response = await _get_boom({"X-Request-ID": "req-42"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error", "requestId": "req-42"}
    assert response.headers["X-Request-ID"] == "req-42"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unhandled_error_reports_generated_request_id():
    response = await _get_boom()

    assert response.status_code == 500
    request_id = response.json()["requestId"]
    assert request_id
    assert response.headers["X-Request-ID"] == request_id
