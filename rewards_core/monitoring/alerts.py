"""Alert evaluation with per-(type, severity) throttling."""

from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

LOGGER = logging.getLogger("rewards_core.monitoring.alerts")

ALERT_SEVERITIES: Dict[str, str] = {
    "reward_delivery_failed": "high",
    "system_error": "critical",
    "database_connection_error": "critical",
    "api_error": "medium",
    "stuck_rewards_detected": "high",
}

# Seconds between two dispatched alerts sharing a throttle key.
THROTTLE_WINDOWS: Dict[str, float] = {
    "low": 3600.0,
    "medium": 1800.0,
    "high": 300.0,
    "critical": 0.0,
}


class AlertHandler(Protocol):
    """Callable notified for every alert that passes the throttle."""

    def __call__(self, alert_type: str, data: Dict[str, Any], severity: str) -> None:
        ...


class AlertDispatcher:
    """Maps event types to severities and fans alerts out to registered handlers.

    Throttle state is kept per process; in a multi-instance deployment every
    instance throttles independently.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        severities: Optional[Mapping[str, str]] = None,
        throttle_windows: Optional[Mapping[str, float]] = None,
    ) -> None:
        self._clock = clock
        self._severities = dict(severities if severities is not None else ALERT_SEVERITIES)
        self._windows = dict(throttle_windows if throttle_windows is not None else THROTTLE_WINDOWS)
        self._handlers: List[AlertHandler] = []
        self._last_dispatch: Dict[str, float] = {}
        self._lock = Lock()

    @property
    def handlers(self) -> List[AlertHandler]:
        return list(self._handlers)

    def register_alert_handler(self, handler: AlertHandler) -> None:
        """Append a handler. No deduplication."""

        if not callable(handler):
            raise TypeError("alert handler must be callable")
        self._handlers.append(handler)

    def severity_for(self, event_type: str) -> Optional[str]:
        return self._severities.get(event_type)

    def check_for_alert(self, event_type: str, data: Dict[str, Any]) -> bool:
        """Forward alert-worthy event types to the throttled dispatch step."""

        severity = self._severities.get(event_type)
        if severity is None:
            return False
        return self.trigger_alert(event_type, data, severity)

    def trigger_alert(self, alert_type: str, data: Dict[str, Any], severity: str) -> bool:
        """Dispatch an alert unless one with the same key went out inside the window."""

        key = f"{alert_type}:{severity}"
        window = self._windows.get(severity, 0.0)

        with self._lock:
            now = self._clock()
            last = self._last_dispatch.get(key)
            if window > 0 and last is not None and now - last <= window:
                LOGGER.debug("alert_throttled", extra={"alert_type": alert_type, "severity": severity})
                return False
            self._last_dispatch[key] = now

        for handler in list(self._handlers):
            try:
                handler(alert_type, data, severity)
            except Exception:  # noqa: BLE001 - one bad handler must not block the others
                LOGGER.exception(
                    "alert_handler_failed",
                    extra={"alert_type": alert_type, "severity": severity},
                )

        LOGGER.warning(
            "alert_dispatched",
            extra={"alert_type": alert_type, "severity": severity, "alert_data": data},
        )
        return True
