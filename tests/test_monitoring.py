from __future__ import annotations

import json
import uuid

import httpx
import pytest
from botocore.stub import ANY, Stubber

from rewards_core.core.config import AppSettings
from rewards_core.monitoring.handlers import SnsAlertHandler, WebhookAlertHandler, build_alert_handlers
from rewards_core.monitoring.service import MonitoringService


def test_log_event_persists_and_alerts(monitoring, fetch_events, alerts) -> None:
    reward_id = uuid.uuid4()

    record = monitoring.log_event("reward_delivery_failed", {"reward_id": reward_id})

    assert record is not None
    stored = fetch_events("reward_delivery_failed")
    assert len(stored) == 1
    assert stored[0].data == {"reward_id": str(reward_id)}
    assert stored[0].environment == "test"
    assert alerts == [("reward_delivery_failed", {"reward_id": str(reward_id)}, "high")]


def test_log_event_survives_store_failure(dispatcher, broken_scope, alerts) -> None:
    monitoring = MonitoringService(environment="test", dispatcher=dispatcher, session_factory=broken_scope)

    assert monitoring.log_event("system_error", {"error": "x"}) is None
    assert [alert[0] for alert in alerts] == ["system_error"]


def test_list_events_filters_and_limits(monitoring) -> None:
    for day in range(3):
        monitoring.log_event("reward_claimed", {"day": day})
    monitoring.log_event("reward_delivered", {"attempts": 1})

    assert len(monitoring.list_events()) == 4
    assert len(monitoring.list_events(event_type="reward_claimed", limit=2)) == 2
    assert [event.event_type for event in monitoring.list_events(event_type="reward_delivered")] == [
        "reward_delivered"
    ]


def test_webhook_handler_posts_embed() -> None:
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(json.loads(request.content))
        return httpx.Response(204)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    webhook = WebhookAlertHandler(url="http://hooks.local/alerts", environment="test", client=client)

    webhook("system_error", {"error": "db down"}, "critical")

    assert captured[0]["content"] == "[ALERTA CRITICAL] system_error"
    assert captured[0]["embeds"][0]["footer"] == {"text": "test"}


def test_webhook_handler_raises_on_error_status() -> None:
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    webhook = WebhookAlertHandler(url="http://hooks.local/alerts", environment="test", client=client)

    with pytest.raises(httpx.HTTPStatusError):
        webhook("system_error", {}, "critical")


def test_sns_handler_publishes(monkeypatch) -> None:
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    topic = "arn:aws:sns:us-east-1:123456789012:reward-alerts"
    sns = SnsAlertHandler(topic_arn=topic, region_name="us-east-1", environment="test")

    with Stubber(sns._client) as stubber:
        stubber.add_response(
            "publish",
            {"MessageId": "msg-1"},
            {"TopicArn": topic, "Subject": "[HIGH] stuck_rewards_detected", "Message": ANY, "MessageAttributes": ANY},
        )
        sns("stuck_rewards_detected", {"stuckCount": 12}, "high")
        stubber.assert_no_pending_responses()


def test_build_alert_handlers_from_settings() -> None:
    assert build_alert_handlers(AppSettings(alert_webhook_url="", alert_topic_arn="")) == []

    handlers = build_alert_handlers(AppSettings(alert_webhook_url="http://hooks.local/alerts", alert_topic_arn=""))
    assert len(handlers) == 1
    assert isinstance(handlers[0], WebhookAlertHandler)
