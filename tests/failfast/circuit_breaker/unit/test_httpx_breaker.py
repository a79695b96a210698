import httpx
import pytest
from pytest_httpx import HTTPXMock

from failfast.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitOpenError,
    ConsecutiveFailureTripCondition,
    EventType,
    HTTPStatusFailureInterpreter,
)
from tests.failfast.support.breaker_fakes import RecordingCollector

pytestmark = pytest.mark.asyncio

_URL = "https://upstream.example/items"


async def _fetch(client: httpx.AsyncClient) -> dict[str, object]:
    response = await client.get(_URL)
    response.raise_for_status()
    return response.json()


def _breaker(collector: RecordingCollector) -> CircuitBreaker:
    return CircuitBreaker(
        "upstream",
        config=CircuitBreakerConfig(invocation_timeout=1.0),
        failure_interpreter=HTTPStatusFailureInterpreter(),
        trip_condition=ConsecutiveFailureTripCondition(2),
        collector=collector,
    )


async def test_server_errors_open_the_breaker(
    httpx_mock: HTTPXMock,
    recording_collector: RecordingCollector,
) -> None:
    httpx_mock.add_response(url=_URL, status_code=503, is_reusable=True)
    breaker = _breaker(recording_collector)

    async with httpx.AsyncClient() as client:
        for _ in range(2):
            with pytest.raises(httpx.HTTPStatusError):
                await breaker.call(_fetch, client)
        with pytest.raises(CircuitOpenError):
            await breaker.call(_fetch, client)

    assert recording_collector.counts == [
        EventType.ERROR,
        EventType.ERROR,
        EventType.SHORT_CIRCUIT,
    ]
    assert len(httpx_mock.get_requests()) == 2


async def test_client_errors_pass_through_without_tripping(
    httpx_mock: HTTPXMock,
    recording_collector: RecordingCollector,
) -> None:
    httpx_mock.add_response(url=_URL, status_code=404, is_reusable=True)
    breaker = _breaker(recording_collector)

    async with httpx.AsyncClient() as client:
        for _ in range(3):
            with pytest.raises(httpx.HTTPStatusError) as excinfo:
                await breaker.call(_fetch, client)
            assert excinfo.value.response.status_code == 404

    assert recording_collector.counts == [EventType.BAD_REQUEST] * 3
    assert breaker.should_try() is True


async def test_transport_errors_count_as_failures(
    httpx_mock: HTTPXMock,
    recording_collector: RecordingCollector,
) -> None:
    httpx_mock.add_exception(
        httpx.ConnectError("connection refused"), url=_URL, is_reusable=True
    )
    breaker = _breaker(recording_collector)

    async with httpx.AsyncClient() as client:
        for _ in range(2):
            with pytest.raises(httpx.ConnectError):
                await breaker.call(_fetch, client)
        with pytest.raises(CircuitOpenError):
            await breaker.call(_fetch, client)


async def test_successful_response_is_returned(
    httpx_mock: HTTPXMock,
    recording_collector: RecordingCollector,
) -> None:
    httpx_mock.add_response(url=_URL, json={"items": [1, 2]})
    breaker = _breaker(recording_collector)

    async with httpx.AsyncClient() as client:
        assert await breaker.call(_fetch, client) == {"items": [1, 2]}

    assert recording_collector.counts == [EventType.SUCCESS]
