import pytest

from provenance.models.care_event.event_models import GENESIS_HASH, ChainState
from provenance.services.care_event.chain_verifier import ChainVerifier


def test_genesis_sentinel_shape():
    assert len(GENESIS_HASH) == 66
    assert GENESIS_HASH == "0x" + "0" * 64


def test_empty_chain_is_valid():
    report = ChainVerifier.verify([])
    assert report.valid is True
    assert report.broken_at_event_id is None
    assert report.state == ChainState.GENESIS
    assert report.to_dict() == {"valid": True, "brokenAtEventId": None}


@pytest.mark.parametrize("n", [1, 2, 5])
def test_linked_chain_is_valid(chain_factory, n):
    report = ChainVerifier.verify(chain_factory(n))
    assert report.valid is True
    assert report.state == ChainState.LINKED


def test_broken_chain_scenario(chain_factory):
    events = chain_factory(3)
    events[2]["prevHash"] = "WRONG"

    report = ChainVerifier.verify(events)

    assert report.to_dict() == {"valid": False, "brokenAtEventId": "e3"}
    assert report.state == ChainState.BROKEN


def test_first_event_must_point_at_genesis(chain_factory):
    events = chain_factory(2)
    events[0]["prevHash"] = "0x" + "1" * 64
    assert ChainVerifier.verify(events).broken_at_event_id == "e1"


@pytest.mark.parametrize("i", range(4))
def test_flipping_any_prev_hash_breaks_at_that_event(chain_factory, i):
    events = chain_factory(4)
    events[i]["prevHash"] = events[i]["prevHash"][:-1] + "f"

    report = ChainVerifier.verify(events)
    assert report.valid is False
    assert report.broken_at_event_id == events[i]["id"]


@pytest.mark.parametrize("i", range(3))
def test_flipping_a_hash_breaks_at_its_successor(chain_factory, i):
    # the last event's own hash has no successor to contradict it
    events = chain_factory(4)
    events[i]["hash"] = events[i]["hash"][:-1] + "f"

    report = ChainVerifier.verify(events)
    assert report.valid is False
    assert report.broken_at_event_id == events[i + 1]["id"]


def test_events_are_ordered_by_occurred_at(chain_factory):
    events = chain_factory(4)
    shuffled = [events[2], events[0], events[3], events[1]]
    assert ChainVerifier.verify(shuffled).valid is True
    assert [e.id for e in ChainVerifier.order(shuffled)] == ["e1", "e2", "e3", "e4"]


def test_ties_keep_input_order(chain_factory):
    events = chain_factory(2)
    events[1]["occurredAt"] = events[0]["occurredAt"]

    assert ChainVerifier.verify(events).valid is True
    assert ChainVerifier.verify(list(reversed(events))).broken_at_event_id == "e2"


def test_hash_comparison_is_exact(chain_factory):
    events = chain_factory(2)
    events[1]["prevHash"] = events[0]["hash"].upper()
    assert ChainVerifier.verify(events).valid is False


def test_verify_batches_checks_each_batch_separately(chain_factory):
    a = chain_factory(2, batch_id="A")
    b = chain_factory(3, batch_id="B")
    b[1]["prevHash"] = "WRONG"

    reports = ChainVerifier.verify_batches(a + b)

    assert reports["A"].valid is True
    assert reports["B"].broken_at_event_id == "e2"


def test_link_status_continues_after_a_break(chain_factory):
    events = chain_factory(3)
    events[1]["prevHash"] = "WRONG"

    flags = [(ev.id, linked) for ev, linked in ChainVerifier.link_status(events)]
    assert flags == [("e1", True), ("e2", False), ("e3", True)]
