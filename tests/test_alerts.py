from __future__ import annotations

import pytest

from rewards_core.monitoring.alerts import AlertDispatcher


def test_high_severity_alert_throttled_inside_window(dispatcher, alert_clock, alerts) -> None:
    assert dispatcher.check_for_alert("reward_delivery_failed", {"reward_id": "a"}) is True

    alert_clock.advance(1)
    assert dispatcher.check_for_alert("reward_delivery_failed", {"reward_id": "b"}) is False

    alert_clock.advance(300)
    assert dispatcher.check_for_alert("reward_delivery_failed", {"reward_id": "c"}) is True

    assert [(alert[0], alert[1]["reward_id"], alert[2]) for alert in alerts] == [
        ("reward_delivery_failed", "a", "high"),
        ("reward_delivery_failed", "c", "high"),
    ]


def test_critical_alerts_are_never_throttled(dispatcher, alerts) -> None:
    assert dispatcher.check_for_alert("database_connection_error", {"n": 1}) is True
    assert dispatcher.check_for_alert("database_connection_error", {"n": 2}) is True
    assert dispatcher.check_for_alert("system_error", {"n": 3}) is True

    assert [alert[2] for alert in alerts] == ["critical", "critical", "critical"]


def test_medium_severity_uses_thirty_minute_window(dispatcher, alert_clock, alerts) -> None:
    assert dispatcher.check_for_alert("api_error", {}) is True
    alert_clock.advance(1800)
    assert dispatcher.check_for_alert("api_error", {}) is False
    alert_clock.advance(1)
    assert dispatcher.check_for_alert("api_error", {}) is True
    assert len(alerts) == 2


def test_throttle_keys_are_independent_per_type(dispatcher, alerts) -> None:
    assert dispatcher.check_for_alert("reward_delivery_failed", {}) is True
    assert dispatcher.check_for_alert("stuck_rewards_detected", {}) is True
    assert {alert[0] for alert in alerts} == {"reward_delivery_failed", "stuck_rewards_detected"}


def test_unmapped_event_types_do_not_alert(dispatcher, alerts) -> None:
    assert dispatcher.check_for_alert("reward_claimed", {"day": 1}) is False
    assert dispatcher.severity_for("reward_claimed") is None
    assert alerts == []


def test_failing_handler_does_not_block_others(alert_clock) -> None:
    received = []
    dispatcher = AlertDispatcher(clock=alert_clock)

    def broken(alert_type, data, severity):
        raise RuntimeError("webhook down")

    dispatcher.register_alert_handler(broken)
    dispatcher.register_alert_handler(lambda alert_type, data, severity: received.append(alert_type))

    assert dispatcher.trigger_alert("system_error", {}, "critical") is True
    assert received == ["system_error"]
    assert len(dispatcher.handlers) == 2


def test_register_rejects_non_callable(dispatcher) -> None:
    with pytest.raises(TypeError):
        dispatcher.register_alert_handler("not-a-handler")  # type: ignore[arg-type]
