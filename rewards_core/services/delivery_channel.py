"""Game-server delivery channel collaborators."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from rewards_core.core.config import AppSettings
from rewards_core.models.pending_reward import PendingReward

LOGGER = logging.getLogger("rewards_core.services.delivery_channel")


class DeliveryChannelError(Exception):
    """Raised when the game server rejects or cannot receive a grant. Retryable."""


class DeliveryChannel(Protocol):
    """Grants a claimed reward in game."""

    def deliver(self, reward: PendingReward) -> None:
        ...


class NullDeliveryChannel(DeliveryChannel):
    """Accepts every grant without contacting a game server."""

    def deliver(self, reward: PendingReward) -> None:  # noqa: D401
        LOGGER.info(
            "delivery_channel_skipped",
            extra={"reward_id": str(reward.id), "steam_id": reward.steam_id, "day": reward.day},
        )


class HttpDeliveryChannel(DeliveryChannel):
    """
    Delivers grants to the game-server bridge over HTTP.

    Sends ``POST {base_url}/rewards/deliver`` with a JSON body describing the
    grant. Any 2xx response is a successful delivery; other statuses and
    transport failures (including timeouts) raise DeliveryChannelError.
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = client or httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
        )

    def deliver(self, reward: PendingReward) -> None:
        body = self._build_payload(reward)
        try:
            response = self._client.post("/rewards/deliver", json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            LOGGER.error(
                "delivery_channel_http_error",
                extra={
                    "reward_id": body["rewardId"],
                    "status_code": exc.response.status_code,
                    "detail": exc.response.text[:500],
                },
            )
            raise DeliveryChannelError(
                f"Game server rejected reward {body['rewardId']}: {exc.response.status_code}"
            ) from exc
        except httpx.RequestError as exc:
            LOGGER.error(
                "delivery_channel_request_error",
                extra={"reward_id": body["rewardId"], "error": str(exc)},
            )
            raise DeliveryChannelError(f"Failed to reach game server: {exc}") from exc

        LOGGER.info(
            "delivery_channel_delivered",
            extra={"reward_id": body["rewardId"], "status_code": response.status_code},
        )

    @staticmethod
    def _build_payload(reward: PendingReward) -> Dict[str, Any]:
        return {
            "rewardId": str(reward.id),
            "steamId": reward.steam_id,
            "day": reward.day,
            "serverId": reward.server_id,
            "claimType": reward.claim_type,
        }


def build_delivery_channel(settings: AppSettings) -> DeliveryChannel:
    """Return the HTTP channel when an endpoint is configured, else the null channel."""

    if settings.delivery_channel_url:
        return HttpDeliveryChannel(
            base_url=settings.delivery_channel_url,
            token=settings.delivery_channel_token,
            timeout=settings.delivery_channel_timeout,
        )
    LOGGER.warning("delivery_channel_not_configured")
    return NullDeliveryChannel()
