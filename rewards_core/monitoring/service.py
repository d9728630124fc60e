"""Append-only event log that feeds the alert dispatcher."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from rewards_core.core.database import SessionFactory, session_scope
from rewards_core.models.system_event import SystemEvent
from rewards_core.models.types import utcnow
from rewards_core.monitoring.alerts import AlertDispatcher, AlertHandler

LOGGER = logging.getLogger("rewards_core.monitoring.service")


class MonitoringService:
    """Persists system events and forwards them to alert evaluation.

    Built once per process and shared by the delivery engine, the sweeper and
    the health probe.
    """

    def __init__(
        self,
        *,
        environment: str,
        dispatcher: Optional[AlertDispatcher] = None,
        session_factory: SessionFactory = session_scope,
    ) -> None:
        self._environment = environment
        self._dispatcher = dispatcher or AlertDispatcher()
        self._session_factory = session_factory

    @property
    def dispatcher(self) -> AlertDispatcher:
        return self._dispatcher

    def register_alert_handler(self, handler: AlertHandler) -> None:
        self._dispatcher.register_alert_handler(handler)

    def log_event(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> Optional[SystemEvent]:
        """Append a SystemEvent; never raises into the caller."""

        payload = _to_json_payload(data)
        record: Optional[SystemEvent] = None
        try:
            with self._session_factory() as session:
                record = SystemEvent(
                    event_type=event_type,
                    data=payload,
                    environment=self._environment,
                    created_at=utcnow(),
                )
                session.add(record)
        except Exception:  # noqa: BLE001 - telemetry must never crash the caller
            LOGGER.exception("system_event_persist_failed", extra={"event_type": event_type})
            record = None

        try:
            self._dispatcher.check_for_alert(event_type, payload)
        except Exception:  # noqa: BLE001
            LOGGER.exception("system_event_alert_failed", extra={"event_type": event_type})

        LOGGER.info("system_event_logged", extra={"event_type": event_type})
        return record

    def list_events(self, *, event_type: Optional[str] = None, limit: int = 50) -> List[SystemEvent]:
        stmt = select(SystemEvent).order_by(SystemEvent.created_at.desc()).limit(limit)
        if event_type:
            stmt = stmt.where(SystemEvent.event_type == event_type)
        with self._session_factory() as session:
            return list(session.scalars(stmt))


def _to_json_payload(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Shallow-copy the payload and coerce UUIDs/datetimes into JSON-safe values."""

    if not data:
        return {}
    return json.loads(json.dumps(dict(data), default=str))
