"""Principal resolution and VIP tier lookup."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rewards_core.models.types import utcnow
from rewards_core.models.user import Subscription, User


class PrincipalError(Exception):
    """Base class for principal resolution errors."""


class PrincipalMissingError(PrincipalError):
    """Raised when the request carries no authenticated principal."""


class UserNotFoundError(PrincipalError):
    """Raised when the principal does not map to an internal user."""


class SteamIdMissingError(PrincipalError):
    """Raised when the user has not linked a Steam id yet."""


class AdminRequiredError(PrincipalError):
    """Raised when a non-admin calls an admin operation."""


class UserService:
    """Resolves authenticated principals into internal users."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def resolve_principal(self, discord_id: Optional[str]) -> User:
        if not discord_id:
            raise PrincipalMissingError("Não autenticado")
        user = self._session.scalar(select(User).where(User.discord_id == str(discord_id)))
        if not user:
            raise UserNotFoundError("Usuário não encontrado")
        return user

    @staticmethod
    def require_steam_id(user: User) -> str:
        if not user.steam_id:
            raise SteamIdMissingError(
                "Steam ID não configurado. Configure seu Steam ID para acessar recompensas diárias."
            )
        return user.steam_id

    @staticmethod
    def require_admin(user: User) -> User:
        if user.role != "admin":
            raise AdminRequiredError("Acesso restrito a administradores")
        return user


class VipTierResolver:
    """Maps a user's active subscription (or role) to a VIP tier."""

    def __init__(self, session: Session, plan_tiers: Mapping[str, str]) -> None:
        self._session = session
        self._plan_tiers = dict(plan_tiers)
        self._logger = logging.getLogger("rewards_core.services.users")

    def resolve(self, user: User) -> str:
        if user.role == "admin":
            return "vip-plus"

        try:
            subscription = self._session.scalar(
                select(Subscription)
                .where(Subscription.user_id == user.id)
                .where(Subscription.status == "active")
                .where(Subscription.expires_at >= utcnow())
                .order_by(Subscription.created_at.desc())
                .limit(1)
            )
        except SQLAlchemyError:
            self._logger.exception("vip_subscription_lookup_failed", extra={"user_id": str(user.id)})
            return self._tier_from_role(user)

        if subscription is None:
            return self._tier_from_role(user)
        return self._plan_tiers.get(subscription.plan_id, "vip-basic")

    @staticmethod
    def _tier_from_role(user: User) -> str:
        if user.role == "vip-plus":
            return "vip-plus"
        if user.role == "vip":
            return "vip-basic"
        return "none"
