"""Tests for the webhook HTTP server."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from ci_events.core.logging import setup_logging
from ci_events.webhook.server import EVENT_UUID_HEADER, WebhookServer


@pytest.fixture
def event_handler() -> MagicMock:
    """Create a mock event handler."""
    handler = MagicMock()
    handler.handle_event = AsyncMock(return_value=[])
    return handler


@pytest.fixture
def server(event_handler: MagicMock) -> WebhookServer:
    """Create a webhook server that is never bound to a port."""
    return WebhookServer("127.0.0.1", 0, event_handler, path="/gitlab")


@pytest_asyncio.fixture
async def client(server: WebhookServer) -> AsyncIterator[TestClient]:
    """Serve the application on an ephemeral port."""
    test_client = TestClient(TestServer(server.build_app()))
    await test_client.start_server()
    yield test_client
    await test_client.close()


async def _drain(server: WebhookServer) -> None:
    await asyncio.gather(*server._tasks)


@pytest.mark.asyncio
async def test_health(client: TestClient) -> None:
    """Test the health endpoint reports the service."""
    response = await client.get("/health")

    assert response.status == 200
    assert await response.json() == {"status": "healthy", "service": "ci-events"}


@pytest.mark.asyncio
async def test_payload_is_dispatched(
    client: TestClient,
    server: WebhookServer,
    event_handler: MagicMock,
    pipeline_payload: dict[str, Any],
) -> None:
    """Test a JSON object is acknowledged and handed to the handler."""
    response = await client.post(
        "/gitlab",
        json=pipeline_payload,
        headers={EVENT_UUID_HEADER: "delivery-1", "X-Gitlab-Event": "Pipeline Hook"},
    )
    await _drain(server)

    assert response.status == 200
    assert await response.json() == {"status": "received", "correlation_id": "delivery-1"}
    event_handler.handle_event.assert_awaited_once_with(pipeline_payload)


@pytest.mark.asyncio
async def test_correlation_id_generated_without_header(
    client: TestClient, server: WebhookServer, job_payload: dict[str, Any]
) -> None:
    """Test deliveries without a UUID header still get a correlation id."""
    response = await client.post("/gitlab", json=job_payload)
    await _drain(server)

    body = await response.json()
    assert body["status"] == "received"
    assert len(body["correlation_id"]) == 32


@pytest.mark.asyncio
async def test_invalid_json_is_acknowledged(
    client: TestClient, event_handler: MagicMock
) -> None:
    """Test unreadable bodies are still answered with 200."""
    response = await client.post(
        "/gitlab", data=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status == 200
    assert await response.json() == {"status": "ignored"}
    event_handler.handle_event.assert_not_called()


@pytest.mark.asyncio
async def test_non_object_is_acknowledged(client: TestClient, event_handler: MagicMock) -> None:
    """Test JSON that is not an object is not handed to the handler."""
    response = await client.post("/gitlab", json=[1, 2, 3])

    assert response.status == 200
    assert await response.json() == {"status": "ignored"}
    event_handler.handle_event.assert_not_called()


@pytest.mark.asyncio
async def test_handler_failure_still_acknowledged(
    client: TestClient,
    server: WebhookServer,
    event_handler: MagicMock,
    pipeline_payload: dict[str, Any],
) -> None:
    """Test a failing handler does not change the response."""
    event_handler.handle_event = AsyncMock(side_effect=RuntimeError("boom"))

    response = await client.post("/gitlab", json=pipeline_payload)
    await _drain(server)

    assert response.status == 200
    assert (await response.json())["status"] == "received"


@pytest.mark.asyncio
async def test_unknown_path_is_not_found(client: TestClient) -> None:
    """Test only the configured path accepts deliveries."""
    response = await client.post("/events", json={})

    assert response.status == 404


@pytest.mark.asyncio
async def test_stop_waits_for_pending_deliveries(
    server: WebhookServer, event_handler: MagicMock
) -> None:
    """Test stop lets background processing finish."""
    done = asyncio.Event()

    async def slow_handle(payload: dict[str, Any]) -> list[Any]:
        await asyncio.sleep(0.01)
        done.set()
        return []

    event_handler.handle_event = AsyncMock(side_effect=slow_handle)
    task = asyncio.create_task(server._process_webhook({"object_kind": "pipeline"}))
    server._tasks.add(task)
    task.add_done_callback(server._tasks.discard)

    await server.stop()

    assert done.is_set()
    assert not server.is_running


@pytest.mark.asyncio
async def test_delivery_acknowledged_with_logging_configured(
    client: TestClient,
    server: WebhookServer,
    event_handler: MagicMock,
    pipeline_payload: dict[str, Any],
) -> None:
    """Test a delivery is accepted with structlog configured at DEBUG."""
    setup_logging("DEBUG")

    response = await client.post(
        "/gitlab", json=pipeline_payload, headers={"X-Gitlab-Event": "Pipeline Hook"}
    )
    await _drain(server)

    assert response.status == 200
    assert (await response.json())["status"] == "received"
    event_handler.handle_event.assert_awaited_once_with(pipeline_payload)
