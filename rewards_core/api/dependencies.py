"""Dependency injection helpers for FastAPI routes."""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from rewards_core.core.config import AppSettings
from rewards_core.core.database import get_session
from rewards_core.models.user import User
from rewards_core.monitoring.health import SystemHealthProbe
from rewards_core.monitoring.service import MonitoringService
from rewards_core.services.claims import ClaimService
from rewards_core.services.delivery_queue import DeliveryQueue
from rewards_core.services.rewards import RewardsService
from rewards_core.services.users import UserService

LOGGER = logging.getLogger("rewards_core.api")

INVALID_KEY_DELAY_SECONDS = 1.0


class InvalidApiKeyError(Exception):
    """Raised when a scheduled call presents a missing or wrong API key."""


def get_db_session() -> Session:
    yield from get_session()


def get_settings_state(request: Request) -> AppSettings:
    return request.app.state.settings


def get_monitoring(request: Request) -> MonitoringService:
    return request.app.state.monitoring


def get_rewards_service(request: Request) -> RewardsService:
    return request.app.state.rewards


def get_health_probe(request: Request) -> SystemHealthProbe:
    return request.app.state.health_probe


def get_delivery_queue(request: Request) -> DeliveryQueue:
    return request.app.state.delivery_queue


def get_claim_service(request: Request, session: Session = Depends(get_db_session)) -> ClaimService:
    settings: AppSettings = request.app.state.settings
    return ClaimService(
        session,
        monitoring=request.app.state.monitoring,
        delivery_queue=request.app.state.delivery_queue,
        plan_tiers=settings.vip_plan_tiers,
        cooldown_hours=settings.claim_cooldown_hours,
        server_id=settings.default_server_id,
        clock=request.app.state.clock,
    )


def get_current_user(
    session: Session = Depends(get_db_session),
    x_discord_id: Optional[str] = Header(default=None, alias="X-Discord-Id"),
) -> User:
    return UserService(session).resolve_principal(x_discord_id)


def get_admin_user(user: User = Depends(get_current_user)) -> User:
    return UserService.require_admin(user)


def require_cron_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
) -> None:
    expected = request.app.state.settings.cron_api_key
    if expected and x_api_key and hmac.compare_digest(x_api_key.encode(), expected.encode()):
        return
    LOGGER.warning(
        "scheduled_call_unauthorized",
        extra={"client": request.client.host if request.client else None, "key_configured": bool(expected)},
    )
    # Slows down key guessing.
    request.app.state.sleep(INVALID_KEY_DELAY_SECONDS)
    raise InvalidApiKeyError("API key inválida")
