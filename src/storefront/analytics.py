"""Best-effort analytics log and campaign attribution.

Events are appended to a JSON list in the persistent storage tier. UTM
parameters from the landing URL are kept in the ephemeral tier so a later
conversion in the same browsing session can be attributed to them.
"""

import json
import time
from uuid import uuid4

import structlog

from storefront.errors import StorageError
from storefront.storage.port import KeyValueStore

logger = structlog.get_logger(__name__)

EVENTS_KEY = "analytics"
UTM_KEY = "utm"


class AnalyticsLog:
    def __init__(self, events_store: KeyValueStore, attribution_store: KeyValueStore) -> None:
        self.events_store = events_store
        self.attribution_store = attribution_store

    def capture_utm(self, params: dict) -> None:
        """Remember campaign parameters from the landing URL's query string."""
        source, campaign = params.get("utm_source"), params.get("utm_campaign")
        if not (source or campaign):
            return

        data = {
            "source": source,
            "campaign": campaign,
            "medium": params.get("utm_medium"),
            "timestamp": int(time.time() * 1000),
        }
        try:
            self.attribution_store.set(UTM_KEY, json.dumps(data))
        except StorageError as exc:
            logger.warning("Failed to store campaign attribution", error=exc.message)

    def utm(self) -> dict:
        raw = self.attribution_store.get(UTM_KEY)
        if not raw:
            return {}
        try:
            return json.loads(raw)
        except ValueError:
            return {}

    def events(self) -> list[dict]:
        raw = self.events_store.get(EVENTS_KEY)
        if not raw:
            return []
        try:
            events = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable analytics log")
            return []
        return events if isinstance(events, list) else []

    async def record(self, event_type: str, **fields) -> dict:
        event = {"id": str(uuid4()), "type": event_type, "timestamp": int(time.time() * 1000), **fields}
        self.events_store.set(EVENTS_KEY, json.dumps([*self.events(), event]))
        return event

    async def record_conversion(self, order_id: str, revenue: float) -> dict:
        utm = self.utm()
        return await self.record(
            "conversion",
            order_id=order_id,
            revenue=revenue,
            source=utm.get("source") or "direct",
            campaign=utm.get("campaign"),
            medium=utm.get("medium"),
        )
