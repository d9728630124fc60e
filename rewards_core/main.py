"""FastAPI application factory."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI

from rewards_core.api.error_handlers import register_exception_handlers
from rewards_core.api.routers import get_api_router
from rewards_core.core.config import AppSettings, get_settings
from rewards_core.core.logging import configure_logging
from rewards_core.models.types import utcnow
from rewards_core.monitoring.alerts import AlertDispatcher
from rewards_core.monitoring.handlers import build_alert_handlers
from rewards_core.monitoring.health import HealthThresholds, SystemHealthProbe
from rewards_core.monitoring.service import MonitoringService
from rewards_core.services.delivery_channel import DeliveryChannel, build_delivery_channel
from rewards_core.services.delivery_queue import BackgroundDeliveryQueue, DeliveryQueue, InlineDeliveryQueue
from rewards_core.services.rewards import RewardsService

LOGGER = logging.getLogger("rewards_core.main")


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: D401
    """Start the delivery workers and re-queue rewards left pending by a previous run."""

    delivery_queue = app.state.delivery_queue
    background = isinstance(delivery_queue, BackgroundDeliveryQueue)
    if background:
        delivery_queue.start()
        delivery_queue.recover_backlog()

    yield

    if background:
        delivery_queue.stop()


def build_delivery_queue(settings: AppSettings, rewards: RewardsService) -> DeliveryQueue:
    if settings.delivery_inline:
        return InlineDeliveryQueue(rewards)
    return BackgroundDeliveryQueue(
        rewards,
        maxsize=settings.delivery_queue_size,
        workers=settings.delivery_workers,
    )


def create_app(
    settings: AppSettings | None = None,
    *,
    channel: Optional[DeliveryChannel] = None,
    dispatcher: Optional[AlertDispatcher] = None,
    sleep: Optional[Callable[[float], None]] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """Application factory.

    Collaborators are built once here and shared through ``app.state``; tests
    pass their own channel, dispatcher, sleep and clock.
    """

    settings = settings or get_settings()
    configure_logging(settings)
    sleep = sleep or time.sleep
    clock = clock or utcnow

    monitoring = MonitoringService(
        environment=settings.environment,
        dispatcher=dispatcher or AlertDispatcher(),
    )
    for handler in build_alert_handlers(settings):
        monitoring.register_alert_handler(handler)

    rewards = RewardsService(
        monitoring=monitoring,
        channel=channel or build_delivery_channel(settings),
        sleep=sleep,
        clock=clock,
        max_attempts=settings.delivery_max_attempts,
        reconcile_max_attempts=settings.reconcile_max_attempts,
        base_delay_seconds=settings.retry_base_delay_seconds,
        stuck_threshold_hours=settings.stuck_threshold_hours,
    )

    app = FastAPI(
        title="Daily Rewards Core",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sleep = sleep
    app.state.clock = clock
    app.state.monitoring = monitoring
    app.state.rewards = rewards
    app.state.health_probe = SystemHealthProbe(monitoring, thresholds=HealthThresholds.from_settings(settings))
    app.state.delivery_queue = build_delivery_queue(settings, rewards)

    register_exception_handlers(app)
    app.include_router(get_api_router())
    LOGGER.info(
        "app_created",
        extra={"environment": settings.environment, "delivery_inline": settings.delivery_inline},
    )
    return app


app = create_app()
