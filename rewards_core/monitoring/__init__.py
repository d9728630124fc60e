"""Event log, alerting and health probing for the rewards service."""

from .alerts import AlertDispatcher  # noqa: F401
from .health import SystemHealthProbe  # noqa: F401
from .service import MonitoringService  # noqa: F401
