from __future__ import annotations

import logging

import httpx
import pytest

from apps.api.main import app


@pytest.mark.anyio
async def test_api_logs_request_id_for_success(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="anchorex.api")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.post(
            "/v1/extract",
            json={"source": "<a>1</a>", "pattern": "<a>{{NUMERIC:X}}</a>"},
        )

    assert response.status_code == 200
    request_id = response.headers["X-Anchorex-Request-Id"]
    messages = [record.message for record in caplog.records if record.name == "anchorex.api"]
    assert any('"event":"start"' in message and request_id in message for message in messages)
    assert any(
        '"event":"done"' in message and request_id in message and '"row_count":1' in message
        for message in messages
    )


@pytest.mark.anyio
async def test_api_logs_request_id_and_error_code_for_failure(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="anchorex.api")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.post(
            "/v1/extract",
            json={"source": "x", "pattern": "{{NUMERIC:X"},
        )

    assert response.status_code == 400
    request_id = response.headers["X-Anchorex-Request-Id"]
    messages = [record.message for record in caplog.records if record.name == "anchorex.api"]
    assert any(
        '"event":"error"' in message
        and request_id in message
        and '"error_code":"INVALID_TEMPLATE"' in message
        and '"failure_stage":"compile"' in message
        for message in messages
    )
