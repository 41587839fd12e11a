# provenance/services/care_event/chain_verifier.py
"""
Link-continuity check over a batch's stored (hash, prevHash) pairs.

    GENESIS --first.prevHash == GENESIS_HASH--> LINKED
    LINKED  --ev.prevHash == previous.hash----> LINKED
    any     --mismatch------------------------> BROKEN (terminal)

Hashes are only compared, never recomputed: minting them is the event
store's job.
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Tuple, Union

from provenance.models.care_event.event_models import (
    GENESIS_HASH,
    CareEvent,
    ChainReport,
    ChainState,
    as_care_events,
)

logger = logging.getLogger(__name__)

EventsIn = Iterable[Union[CareEvent, Dict[str, Any]]]


class ChainVerifier:

    @staticmethod
    def order(events: EventsIn) -> List[CareEvent]:
        """Chronological by occurredAt; ties keep their input order (stable sort)."""
        return sorted(as_care_events(events), key=lambda e: e.occurred_at)

    @staticmethod
    def verify(events: EventsIn) -> ChainReport:
        state = ChainState.GENESIS
        previous = None

        for ev in ChainVerifier.order(events):
            expected = GENESIS_HASH if previous is None else previous.hash
            if ev.prev_hash != expected:
                logger.warning(
                    "hash chain broken at event %s (batch %s): prevHash %s != %s",
                    ev.id, ev.batch_id, ev.prev_hash, expected,
                )
                return ChainReport(valid=False, broken_at_event_id=ev.id, state=ChainState.BROKEN)
            state = ChainState.LINKED
            previous = ev

        return ChainReport(valid=True, state=state)

    @staticmethod
    def verify_batches(events: EventsIn) -> Dict[str, ChainReport]:
        """Split a mixed list by batchId and verify each chain on its own."""
        groups: "OrderedDict[str, List[CareEvent]]" = OrderedDict()
        for ev in as_care_events(events):
            groups.setdefault(ev.batch_id, []).append(ev)
        return {batch_id: ChainVerifier.verify(evs) for batch_id, evs in groups.items()}

    @staticmethod
    def link_status(events: EventsIn) -> List[Tuple[CareEvent, bool]]:
        """
        Per-event flag for the timeline: does this event point at its
        predecessor (or at genesis for the first one)? Unlike verify(),
        this keeps going after a break.
        """
        out: List[Tuple[CareEvent, bool]] = []
        previous = None
        for ev in ChainVerifier.order(events):
            expected = GENESIS_HASH if previous is None else previous.hash
            out.append((ev, ev.prev_hash == expected))
            previous = ev
        return out
