from __future__ import annotations

import json
import uuid

import httpx
import pytest

from rewards_core.core.config import AppSettings
from rewards_core.models import PendingReward, RewardStatus
from rewards_core.services.delivery_channel import (
    DeliveryChannelError,
    HttpDeliveryChannel,
    NullDeliveryChannel,
    build_delivery_channel,
)


def _reward() -> PendingReward:
    return PendingReward(
        id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        steam_id="76561198000000001",
        day=3,
        status=RewardStatus.PROCESSING,
        claim_type="website",
        server_id="main",
    )


def _channel(handler) -> HttpDeliveryChannel:
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://bridge.local")
    return HttpDeliveryChannel(base_url="http://bridge.local", client=client)


def test_http_channel_posts_grant() -> None:
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"ok": True})

    reward = _reward()
    _channel(handler).deliver(reward)

    assert len(captured) == 1
    assert captured[0].method == "POST"
    assert captured[0].url.path == "/rewards/deliver"
    assert json.loads(captured[0].content) == {
        "rewardId": str(reward.id),
        "steamId": "76561198000000001",
        "day": 3,
        "serverId": "main",
        "claimType": "website",
    }


def test_http_channel_raises_on_error_status() -> None:
    channel = _channel(lambda request: httpx.Response(503, text="maintenance"))

    with pytest.raises(DeliveryChannelError):
        channel.deliver(_reward())


def test_http_channel_raises_on_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DeliveryChannelError):
        _channel(handler).deliver(_reward())


def test_http_channel_sends_bearer_token() -> None:
    channel = HttpDeliveryChannel(base_url="http://bridge.local/", token="secret")

    assert channel._client.headers["Authorization"] == "Bearer secret"


def test_build_delivery_channel_uses_settings() -> None:
    assert isinstance(build_delivery_channel(AppSettings(delivery_channel_url="")), NullDeliveryChannel)
    assert isinstance(
        build_delivery_channel(AppSettings(delivery_channel_url="http://bridge.local")),
        HttpDeliveryChannel,
    )
