import pytest
import requests

from provenance.errors import UpstreamError
from provenance.services.care_event.event_store_client import EventStoreClient


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


EVENT = {
    "id": "e1",
    "batchId": "B1",
    "eventType": "Irrigation",
    "occurredAt": "2024-03-01T06:00:00.1234567",
    "payload": "{}",
    "hash": "0x1",
    "prevHash": "0x" + "0" * 64,
}


def _client(session, **kw):
    return EventStoreClient(base_url="https://store.test/api/", max_retries=3, backoff=0, session=session, **kw)


def test_get_care_events_unwraps_envelope():
    session = FakeSession(FakeResponse(body={"success": True, "message": "ok", "data": [EVENT]}))

    events = _client(session).get_care_events("B1")

    assert session.urls == ["https://store.test/api/product-batches/B1/care-events/verify"]
    assert [e.id for e in events] == ["e1"]
    assert events[0].occurred_at.microsecond == 123456


def test_success_false_is_upstream_error():
    session = FakeSession(FakeResponse(body={"success": False, "message": "Batch not found"}))
    with pytest.raises(UpstreamError) as exc:
        _client(session).get_care_events("B1")
    assert "Batch not found" in exc.value.message


def test_http_error_carries_status_code():
    session = FakeSession(FakeResponse(status_code=401, body={"success": False, "message": "Unauthorized"}))
    with pytest.raises(UpstreamError) as exc:
        _client(session).get_care_events("B1")
    assert exc.value.status_code == 401


def test_gateway_errors_are_retried():
    session = FakeSession(
        FakeResponse(status_code=503, text="<html>"),
        FakeResponse(body={"success": True, "data": [EVENT]}),
    )
    assert len(_client(session).get_care_events("B1")) == 1
    assert len(session.urls) == 2


def test_network_failure_exhausts_retries():
    session = FakeSession(*[requests.ConnectionError("down")] * 3)
    with pytest.raises(UpstreamError) as exc:
        _client(session).get_care_events("B1")
    assert len(session.urls) == 3
    assert "down" in exc.value.message


def test_non_json_body():
    session = FakeSession(FakeResponse(status_code=200, body=None, text="<html>oops</html>"))
    with pytest.raises(UpstreamError) as exc:
        _client(session).get_care_events("B1")
    assert "non-JSON" in exc.value.message


def test_malformed_record():
    bad = dict(EVENT, occurredAt="not a date")
    session = FakeSession(FakeResponse(body={"success": True, "data": [bad]}))
    with pytest.raises(UpstreamError):
        _client(session).get_care_events("B1")


def test_missing_base_url():
    with pytest.raises(UpstreamError):
        EventStoreClient(base_url="", session=FakeSession()).get_care_events("B1")


def test_event_types():
    et = {
        "id": "t1",
        "eventTypeName": "Irrigation",
        "eventTypeDesc": "Water the field",
        "payloadFields": '["Water volume (l)", "Duration (min)"]',
    }
    session = FakeSession(
        FakeResponse(body={"success": True, "data": [et]}),
        FakeResponse(body={"success": True, "data": et}),
    )
    client = _client(session)

    types = client.list_event_types()
    single = client.get_event_type("t1")

    assert types[0].event_type_name == "Irrigation"
    assert [s.name for s in single.field_specs()] == ["water_volume_(l)", "duration_(min)"]
    assert session.urls[1].endswith("/event-types/t1")
