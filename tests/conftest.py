import json
from datetime import datetime, timedelta, timezone

import pytest

from provenance.models.care_event.event_models import GENESIS_HASH

FERTILIZER_FIELDS = [
    {
        "name": "fertilizerType",
        "label": "Fertilizer Type",
        "type": "select",
        "required": True,
        "options": [
            {"label": "NPK (10-10-10)", "value": "npk_10_10_10"},
            {"label": "Organic Compost", "value": "organic_compost"},
            {"label": "Other", "value": "other"},
        ],
    },
    {
        "name": "amountKg",
        "label": "Amount (kg)",
        "type": "number",
        "required": True,
        "min": 0.1,
        "max": 10000,
        "placeholder": "e.g., 50",
    },
    {
        "name": "applicationMethod",
        "label": "Application Method",
        "type": "select",
        "required": True,
        "options": [
            {"label": "Broadcasting", "value": "broadcasting"},
            {"label": "Foliar Spray", "value": "foliar_spray"},
        ],
    },
    {
        "name": "weatherConditions",
        "label": "Weather Conditions",
        "type": "text",
        "required": False,
    },
    {
        "name": "applicatorEmail",
        "label": "Applicator Email",
        "type": "email",
        "required": False,
    },
]


@pytest.fixture
def fertilizer_fields_json():
    return json.dumps(FERTILIZER_FIELDS)


@pytest.fixture
def chain_factory():
    """
    chain_factory(n) -> n linked care-event dicts (wire shape), one minute apart.
    payloads / event_type apply to every event unless given per event.
    """

    def _make(n, batch_id="BATCH-1", event_type="Irrigation", payloads=None):
        start = datetime(2024, 3, 1, 6, 0, tzinfo=timezone.utc)
        events = []
        prev = GENESIS_HASH
        for i in range(n):
            h = f"0x{i + 1:064x}"
            payload = payloads[i] if payloads else json.dumps({"Water volume (l)": f"{10 * (i + 1)} l"})
            events.append(
                {
                    "id": f"e{i + 1}",
                    "batchId": batch_id,
                    "eventType": event_type,
                    "occurredAt": (start + timedelta(minutes=i)).isoformat(),
                    "payload": payload,
                    "hash": h,
                    "prevHash": prev,
                }
            )
            prev = h
        return events

    return _make
