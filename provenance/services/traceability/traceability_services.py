# provenance/services/traceability/traceability_services.py
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from provenance.errors import UpstreamError
from provenance.models.care_event.event_models import GENESIS_HASH, CareEvent, as_care_events
from provenance.models.traceability.traceability_models import (
    TimelineEntry,
    TraceabilityStatus,
    TraceabilityViewModel,
)
from provenance.services.care_event.chain_verifier import ChainVerifier
from provenance.services.care_event.event_store_client import EventStoreClient
from provenance.services.care_event.payload_codec import PayloadCanonicalizer
from provenance.services.care_event.resource_aggregator import ResourceAggregator
from provenance.utils.time_utils import format_utc_datetime

logger = logging.getLogger(__name__)


class TraceabilityService:
    """
    Compose the batch traceability view:
      - timeline: ordered care events with decoded payloads
      - chain:    hash-link continuity verdict
      - resources: per event type quantity totals
    """

    # -------------------------
    # Public API
    # -------------------------
    @staticmethod
    def build_traceability(
        batch_id: Optional[str],
        events: Iterable[Union[CareEvent, Dict[str, Any]]],
    ) -> TraceabilityViewModel:
        care_events = as_care_events(events)
        if not batch_id and care_events:
            batch_id = care_events[0].batch_id

        vm = TraceabilityViewModel(batchId=batch_id or "", eventCount=len(care_events))

        report = ChainVerifier.verify(care_events)
        vm.chain = report.to_dict()
        if report.valid:
            vm.status = TraceabilityStatus.VERIFIED.value
        else:
            vm.status = TraceabilityStatus.BROKEN.value
            vm.message = f"Hash chain broken at event {report.broken_at_event_id}"

        vm.timeline = TraceabilityService._compose_timeline(care_events)

        summary = ResourceAggregator.aggregate(care_events)
        vm.resources = {name: total.to_dict() for name, total in summary.items()}

        vm.debug = {
            "chainState": report.state.value,
            "undecodedPayloads": sum(1 for t in vm.timeline if t.payload and t.parsedPayload is None),
            "trackedEventTypes": len(vm.resources),
        }
        logger.info("traceability for batch %s: %d event(s), %s", vm.batchId, vm.eventCount, vm.status)
        return vm

    @staticmethod
    def load_traceability(batch_id: str, client: EventStoreClient) -> TraceabilityViewModel:
        """
        Fetch + build. A failed fetch is reported as UNAVAILABLE with no chain
        verdict at all; it must never read as a broken chain.
        """
        try:
            events = client.get_care_events(batch_id)
        except UpstreamError as e:
            logger.warning("care events for batch %s could not be loaded: %s", batch_id, e.message)
            return TraceabilityViewModel(
                batchId=batch_id,
                status=TraceabilityStatus.UNAVAILABLE.value,
                message=e.message,
                chain=None,
                debug={"upstreamStatus": e.status_code},
            )
        return TraceabilityService.build_traceability(batch_id, events)

    # -------------------------
    # Compose
    # -------------------------
    @staticmethod
    def _compose_timeline(events: List[CareEvent]) -> List[TimelineEntry]:
        out: List[TimelineEntry] = []
        for ev, linked in ChainVerifier.link_status(events):
            raw = TraceabilityService._raw_payload_text(ev.payload)
            out.append(
                TimelineEntry(
                    id=ev.id,
                    eventType=ev.event_type or "Care Event",
                    occurredAt=ev.occurred_at.isoformat(),
                    date=format_utc_datetime(ev.occurred_at),
                    description=f"Payload: {raw}" if raw else "No payload",
                    payload=raw,
                    # None -> presentation shows the raw text instead
                    parsedPayload=PayloadCanonicalizer.decode(ev.payload),
                    hash=ev.hash,
                    prevHash=ev.prev_hash,
                    imageUrl=ev.image_url or None,
                    linked=linked,
                    isGenesis=ev.prev_hash == GENESIS_HASH,
                )
            )
        return out

    @staticmethod
    def _raw_payload_text(payload: Any) -> str:
        if payload is None:
            return ""
        if isinstance(payload, dict):
            return PayloadCanonicalizer.dumps(payload)
        return str(payload)
