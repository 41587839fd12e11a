import json

from provenance.errors import UpstreamError
from provenance.models.care_event.event_models import as_care_events
from provenance.services.traceability.traceability_services import TraceabilityService


class StubClient:
    def __init__(self, events=None, error=None):
        self.events = events or []
        self.error = error
        self.calls = []

    def get_care_events(self, batch_id):
        self.calls.append(batch_id)
        if self.error:
            raise self.error
        return as_care_events(self.events)


def test_verified_report(chain_factory):
    events = chain_factory(3)
    vm = TraceabilityService.build_traceability("BATCH-1", list(reversed(events)))
    data = vm.to_dict()

    assert data["status"] == "verified"
    assert data["message"] == ""
    assert data["eventCount"] == 3
    assert data["chain"] == {"valid": True, "brokenAtEventId": None}
    assert [t["id"] for t in data["timeline"]] == ["e1", "e2", "e3"]
    assert data["timeline"][0]["isGenesis"] is True
    assert all(t["linked"] for t in data["timeline"])
    assert data["timeline"][0]["date"] == "01/03/2024 06:00"
    assert data["timeline"][0]["parsedPayload"] == {"Water volume (l)": "10 l"}
    assert data["resources"] == {"Irrigation": {"total": 60.0, "unit": "l", "eventCount": 3}}


def test_broken_report(chain_factory):
    events = chain_factory(3)
    events[2]["prevHash"] = "WRONG"

    vm = TraceabilityService.build_traceability(None, events)

    assert vm.batchId == "BATCH-1"
    assert vm.status == "broken"
    assert vm.chain == {"valid": False, "brokenAtEventId": "e3"}
    assert "e3" in vm.message
    assert [t.linked for t in vm.timeline] == [True, True, False]


def test_raw_payload_fallback(chain_factory):
    events = chain_factory(2, payloads=["watered by hand", ""])
    events[0]["eventType"] = ""

    vm = TraceabilityService.build_traceability("BATCH-1", events)
    first, second = vm.timeline

    assert first.eventType == "Care Event"
    assert first.parsedPayload is None
    assert first.description == "Payload: watered by hand"
    assert second.description == "No payload"
    assert vm.resources == {}
    assert vm.debug["undecodedPayloads"] == 1


def test_deeply_nested_payload_does_not_abort_report(chain_factory):
    events = chain_factory(2, payloads=["[" * 200000 + "]" * 200000, json.dumps({"Water volume (l)": "5 l"})])

    vm = TraceabilityService.build_traceability("BATCH-1", events)

    assert vm.status == "verified"
    assert vm.timeline[0].parsedPayload is None
    assert vm.resources == {"Irrigation": {"total": 5.0, "unit": "l", "eventCount": 1}}


def test_empty_batch_is_verified():
    vm = TraceabilityService.build_traceability("EMPTY", [])
    assert vm.status == "verified"
    assert vm.chain == {"valid": True, "brokenAtEventId": None}
    assert vm.timeline == []


def test_load_traceability_upstream_failure_is_not_a_broken_chain():
    client = StubClient(error=UpstreamError("Batch not found (HTTP 404)", status_code=404))

    vm = TraceabilityService.load_traceability("BATCH-404", client)

    assert vm.status == "unavailable"
    assert vm.chain is None
    assert vm.message == "Batch not found (HTTP 404)"
    assert vm.debug == {"upstreamStatus": 404}


def test_load_traceability_success(chain_factory):
    payloads = [json.dumps({"Rate": "4 g/ha"})]
    client = StubClient(events=chain_factory(1, event_type="Fertilization", payloads=payloads))

    vm = TraceabilityService.load_traceability("BATCH-1", client)

    assert client.calls == ["BATCH-1"]
    assert vm.status == "verified"
    assert vm.resources["Fertilization"]["total"] == 4.0
