"""
Unit tests for the ProberService class.

HTTP is served by httpx.MockTransport so every outcome class can be
produced deterministically without touching the network.
"""

import asyncio

import httpx
import pytest

from status_monitor.models import Endpoint
from status_monitor.services.prober import ProberService, truncate_body


def make_endpoint(**overrides) -> Endpoint:
    values = dict(
        id=7,
        name="Search API",
        url="https://search.example.com/health",
        expected_status_code=200,
        timeout_ms=2000,
        monitoring_interval=60,
        is_active=True,
    )
    values.update(overrides)
    return Endpoint(**values)


def prober_for(handler, **kwargs) -> ProberService:
    return ProberService(transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_probe_should_report_success_when_status_matches() -> None:
    # Arrange
    prober = prober_for(lambda request: httpx.Response(200, text="ok"))

    # Act
    result = await prober.probe(make_endpoint())

    # Assert
    assert result.status == "success"
    assert result.status_code == 200
    assert result.error_message is None
    assert result.response_body is None
    assert result.response_headers is None
    assert result.response_time_ms >= 0


@pytest.mark.asyncio
async def test_probe_should_capture_body_and_headers_on_status_mismatch() -> None:
    # Arrange
    prober = prober_for(
        lambda request: httpx.Response(500, text="internal error", headers={"X-Request-Id": "abc123"})
    )

    # Act
    result = await prober.probe(make_endpoint())

    # Assert
    assert result.status == "failure"
    assert result.status_code == 500
    assert result.error_message == "Unexpected status code: 500 (expected 200)"
    assert result.response_body == "internal error"
    assert result.response_headers["x-request-id"] == "abc123"
    assert all(isinstance(v, str) for v in result.response_headers.values())


@pytest.mark.asyncio
async def test_probe_should_honour_non_default_expected_status() -> None:
    prober = prober_for(lambda request: httpx.Response(204))

    result = await prober.probe(make_endpoint(expected_status_code=204))

    assert result.status == "success"


@pytest.mark.asyncio
async def test_probe_should_treat_200_as_failure_when_another_code_is_expected() -> None:
    prober = prober_for(lambda request: httpx.Response(200, text="hello"))

    result = await prober.probe(make_endpoint(expected_status_code=201))

    assert result.status == "failure"
    assert result.response_body == "hello"


@pytest.mark.asyncio
async def test_probe_should_truncate_large_bodies() -> None:
    # Arrange
    prober = prober_for(lambda request: httpx.Response(503, text="x" * 200), max_body_chars=50)

    # Act
    result = await prober.probe(make_endpoint())

    # Assert
    assert result.response_body.startswith("x" * 50)
    assert "[Response truncated" in result.response_body
    assert not result.response_body.startswith("x" * 51)


@pytest.mark.asyncio
async def test_probe_should_classify_transport_timeout_as_timeout() -> None:
    # Arrange
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    prober = prober_for(handler)

    # Act
    result = await prober.probe(make_endpoint())

    # Assert
    assert result.status == "timeout"
    assert result.status_code is None
    assert result.response_body is None
    assert result.response_headers is None


@pytest.mark.asyncio
async def test_probe_should_enforce_overall_deadline() -> None:
    # Arrange
    async def slow_handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200)

    prober = prober_for(slow_handler)

    # Act
    result = await prober.probe(make_endpoint(timeout_ms=50))

    # Assert
    assert result.status == "timeout"
    assert result.response_time_ms < 5000


@pytest.mark.asyncio
async def test_probe_should_report_connection_errors_as_failure() -> None:
    # Arrange
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    prober = prober_for(handler)

    # Act
    result = await prober.probe(make_endpoint())

    # Assert
    assert result.status == "failure"
    assert result.status_code is None
    assert result.error_message == "Name or service not known"
    assert result.response_body is None
    assert result.response_headers is None


@pytest.mark.asyncio
async def test_probe_should_send_user_agent_and_use_get() -> None:
    # Arrange
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["user_agent"] = request.headers.get("user-agent")
        return httpx.Response(200)

    prober = prober_for(handler, user_agent="StatusMonitor/test")

    # Act
    await prober.probe(make_endpoint())

    # Assert
    assert seen == {"method": "GET", "user_agent": "StatusMonitor/test"}


def test_truncate_body_leaves_short_bodies_and_none_untouched() -> None:
    assert truncate_body(None, 10) is None
    assert truncate_body("short", 10) == "short"
