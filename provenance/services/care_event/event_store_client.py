# provenance/services/care_event/event_store_client.py
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from provenance import app_config
from provenance.errors import UpstreamError
from provenance.models.care_event.event_models import ApiEnvelope, CareEvent, EventType

logger = logging.getLogger(__name__)

# Retry these (transient gateway / cold start)
RETRY_STATUS = {502, 503, 504}


def _safe_json(resp: requests.Response) -> Optional[Any]:
    """
    JSON body if there is one, else None.
    HTML error pages from a proxy are common on 5xx.
    """
    try:
        return resp.json()
    except ValueError:
        return None


class EventStoreClient:
    """
    Read-only adapter over the event catalog / care-event store.

    Every failure to obtain data (network, non-JSON, HTTP >= 400,
    success=false) is an UpstreamError, so callers can tell
    "could not load" apart from "loaded but the chain is broken".
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
        backoff: float = 0.6,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url if base_url is not None else app_config.EVENT_STORE_BASE_URL).rstrip("/")
        self.timeout = timeout or app_config.EVENT_STORE_TIMEOUT
        self.max_retries = max(1, max_retries or app_config.EVENT_STORE_MAX_RETRIES)
        self.backoff = backoff
        self.session = session or requests.Session()

    # -------------------------
    # Public API
    # -------------------------
    def list_event_types(self) -> List[EventType]:
        data = self._get("/event-types")
        return self._parse_list(data, EventType, "event type")

    def get_event_type(self, event_type_id: str) -> EventType:
        data = self._get(f"/event-types/{event_type_id}")
        try:
            return EventType.model_validate(data)
        except ValidationError as e:
            raise UpstreamError(f"Malformed event type {event_type_id}: {e.errors()[0].get('msg')}")

    def get_care_events(self, batch_id: str) -> List[CareEvent]:
        data = self._get(f"/product-batches/{batch_id}/care-events/verify")
        return self._parse_list(data, CareEvent, "care event")

    # -------------------------
    # Internals
    # -------------------------
    @staticmethod
    def _parse_list(data: Any, model, what: str) -> List[Any]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamError(f"Expected a list of {what}s, got {type(data).__name__}")
        try:
            return [model.model_validate(x) for x in data]
        except ValidationError as e:
            raise UpstreamError(f"Malformed {what} record: {e.errors()[0].get('msg')}")

    def _backoff_sleep(self, attempt: int) -> None:
        if self.backoff > 0:
            time.sleep(self.backoff * (2 ** (attempt - 1)))

    def _get(self, path: str) -> Any:
        """
        GET {base}{path}, unwrap the {success, message, data} envelope.
          - retry on 502/503/504 and network timeouts
          - non-JSON bodies and HTTP >= 400 -> UpstreamError
        """
        if not self.base_url:
            raise UpstreamError("EVENT_STORE_BASE_URL is not set")

        url = f"{self.base_url}{path}"
        last_err: Optional[str] = None
        last_status: Optional[int] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                resp = self.session.get(url, timeout=self.timeout)
            except (requests.Timeout, requests.ConnectionError) as e:
                last_err = f"Network error on {url}: {e}"
                logger.warning("%s (attempt %d/%d)", last_err, attempt, self.max_retries)
                if attempt < self.max_retries:
                    self._backoff_sleep(attempt)
                continue

            if resp.status_code in RETRY_STATUS:
                last_err = f"Upstream error {resp.status_code} on {url}"
                last_status = resp.status_code
                logger.warning("%s (attempt %d/%d)", last_err, attempt, self.max_retries)
                if attempt < self.max_retries:
                    self._backoff_sleep(attempt)
                continue

            body = _safe_json(resp)
            if body is None:
                snippet = (resp.text or "").strip().replace("\n", " ")[:240]
                raise UpstreamError(
                    f"Event store returned non-JSON response ({resp.status_code}) on {url}: {snippet}",
                    status_code=resp.status_code,
                )

            envelope = ApiEnvelope.model_validate(body if isinstance(body, dict) else {"success": True, "data": body})

            if resp.status_code >= 400 or not envelope.success:
                msg = envelope.message or "Request failed"
                raise UpstreamError(f"{msg} (HTTP {resp.status_code})", status_code=resp.status_code)

            return envelope.data

        raise UpstreamError(
            f"Event store not responding after {self.max_retries} attempt(s). Last: {last_err}",
            status_code=last_status,
        )
