import httpx
import pytest

from risk_link.clients.assessment_api import AssessmentApiClient
from risk_link.connectors.rest_pull_fetch import fetch_all_patients
from risk_link.core.errors import (
    InvalidResponseError,
    RetryExhaustedError,
    UpstreamStatusError,
)
from risk_link.core.progress import ProgressChannel, ProgressEvent

BASE_URL = "https://assessment.test/api"


def _patients(page: int, count: int) -> list[dict]:
    return [
        {
            "patient_id": f"DEMO{page:02d}{index}",
            "name": f"Patient {page}-{index}",
            "age": 45,
            "blood_pressure": "120/80",
            "temperature": 98.6,
        }
        for index in range(count)
    ]


def _page_body(page: int, total_pages: int, count: int = 2) -> dict:
    return {
        "data": _patients(page, count),
        "pagination": {
            "page": page,
            "limit": 5,
            "total": total_pages * count,
            "totalPages": total_pages,
            "hasNext": page < total_pages,
            "hasPrevious": page > 1,
        },
        "metadata": {"timestamp": "2025-07-15T23:01:05.059Z", "version": "v1.0", "requestId": "req"},
    }


def _client(handler, fake_sleep) -> AssessmentApiClient:
    return AssessmentApiClient(
        "test-key", BASE_URL, transport=httpx.MockTransport(handler), sleep=fake_sleep
    )


def _collect(channel: ProgressChannel) -> list[ProgressEvent]:
    events: list[ProgressEvent] = []
    channel.subscribe(events.append)
    return events


@pytest.mark.asyncio
async def test_fetch_all_patients_requests_every_page_in_order(fake_sleep):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        page = int(request.url.params["page"])
        return httpx.Response(200, json=_page_body(page, 3))

    channel = ProgressChannel()
    events = _collect(channel)
    patients = await fetch_all_patients(
        _client(handler, fake_sleep), channel, inter_page_delay=0.5, sleep=fake_sleep
    )

    assert [int(r.url.params["page"]) for r in requests] == [1, 2, 3]
    assert all(r.url.params["limit"] == "5" for r in requests)
    assert all(r.headers["x-api-key"] == "test-key" for r in requests)
    assert str(requests[0].url).startswith(f"{BASE_URL}/patients")
    assert [p.patient_id for p in patients] == [
        "DEMO010", "DEMO011", "DEMO020", "DEMO021", "DEMO030", "DEMO031",
    ]
    assert fake_sleep.calls == [0.5, 0.5]
    assert [event.type for event in events] == [
        "info", "success", "info", "success", "info", "success", "success",
    ]
    assert events[-1].patients_count == 6
    assert events[-1].total_pages == 3


@pytest.mark.asyncio
async def test_rate_limited_page_retries_with_doubled_base(fake_sleep):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] <= 3:
            return httpx.Response(429, json={"error": "Rate limit exceeded"})
        return httpx.Response(200, json=_page_body(1, 1))

    channel = ProgressChannel()
    events = _collect(channel)
    patients = await fetch_all_patients(_client(handler, fake_sleep), channel, sleep=fake_sleep)

    assert calls["count"] == 4
    assert fake_sleep.calls == [2.0, 4.0, 8.0]
    assert len(patients) == 2
    retry_events = [e for e in events if e.message.startswith("Retrying page 1")]
    assert len(retry_events) == 3
    assert all(e.type == "info" for e in retry_events)
    assert not any(e.type == "error" for e in events)


@pytest.mark.asyncio
async def test_retry_exhaustion_emits_error_and_raises(fake_sleep):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(503, text="unavailable")

    channel = ProgressChannel()
    events = _collect(channel)
    with pytest.raises(RetryExhaustedError) as info:
        await fetch_all_patients(_client(handler, fake_sleep), channel, sleep=fake_sleep)

    assert calls["count"] == 5
    assert fake_sleep.calls == [1.0, 2.0, 4.0, 8.0]
    assert info.value.attempts == 5
    assert "503" in info.value.last_error
    assert events[-1].type == "error"
    assert events[-1].patients_count == 0


@pytest.mark.asyncio
async def test_non_retryable_status_fails_immediately(fake_sleep):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        page = int(request.url.params["page"])
        if page == 2:
            return httpx.Response(404, text="page not found")
        return httpx.Response(200, json=_page_body(page, 3))

    channel = ProgressChannel()
    events = _collect(channel)
    with pytest.raises(UpstreamStatusError) as info:
        await fetch_all_patients(_client(handler, fake_sleep), channel, sleep=fake_sleep)

    assert calls["count"] == 2
    assert info.value.status_code == 404
    assert info.value.detail == "page not found"
    assert events[-1].type == "error"
    assert events[-1].page == 2
    assert events[-1].patients_count == 2


@pytest.mark.asyncio
async def test_page_missing_data_contributes_zero_records(fake_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        body = _page_body(page, 3)
        if page == 2:
            del body["data"]
        return httpx.Response(200, json=body)

    channel = ProgressChannel()
    events = _collect(channel)
    patients = await fetch_all_patients(_client(handler, fake_sleep), channel, sleep=fake_sleep)

    assert [p.patient_id for p in patients] == ["DEMO010", "DEMO011", "DEMO030", "DEMO031"]
    warnings = [e for e in events if e.type == "warning"]
    assert len(warnings) == 1
    assert warnings[0].page == 2
    assert events[-1].type == "success"


@pytest.mark.asyncio
async def test_malformed_first_page_defaults_to_single_page(fake_sleep):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(200, json={"data": "not-a-list"})

    patients = await fetch_all_patients(_client(handler, fake_sleep), sleep=fake_sleep)
    assert patients == []
    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_non_object_records_are_skipped(fake_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        body = _page_body(1, 1)
        body["data"].append("garbage")
        return httpx.Response(200, json=body)

    patients = await fetch_all_patients(_client(handler, fake_sleep), sleep=fake_sleep)
    assert len(patients) == 2


@pytest.mark.asyncio
async def test_non_json_body_is_fatal(fake_sleep):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(InvalidResponseError):
        await fetch_all_patients(_client(handler, fake_sleep), sleep=fake_sleep)
    assert calls["count"] == 1
    assert fake_sleep.calls == []


@pytest.mark.asyncio
async def test_transport_error_is_retried_with_standard_base(fake_sleep):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=_page_body(1, 1))

    patients = await fetch_all_patients(_client(handler, fake_sleep), sleep=fake_sleep)
    assert len(patients) == 2
    assert fake_sleep.calls == [1.0]


@pytest.mark.asyncio
async def test_invalid_pagination_field_keeps_total_pages(fake_sleep):
    requested: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        requested.append(page)
        body = _page_body(page, 3, count=1)
        body["pagination"]["hasNext"] = None
        body["pagination"]["total"] = "unknown"
        return httpx.Response(200, json=body)

    channel = ProgressChannel()
    events = _collect(channel)
    patients = await fetch_all_patients(_client(handler, fake_sleep), channel, sleep=fake_sleep)

    assert requested == [1, 2, 3]
    assert [p.patient_id for p in patients] == ["DEMO010", "DEMO020", "DEMO030"]
    assert events[-1].total_pages == 3


@pytest.mark.asyncio
async def test_fetch_page_pagination_falls_back_per_field(fake_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "data": [],
                "pagination": {"page": 2, "totalPages": "4", "hasNext": None, "limit": "x"},
                "metadata": {"version": 2, "requestId": "req-7"},
            },
        )

    envelope = await _client(handler, fake_sleep).fetch_patients_page(2, 5)

    assert envelope.pagination.totalPages == 4
    assert envelope.pagination.page == 2
    assert envelope.pagination.hasNext is False
    assert envelope.pagination.limit == 5
    assert envelope.metadata.requestId == "req-7"
    assert envelope.metadata.version is None
