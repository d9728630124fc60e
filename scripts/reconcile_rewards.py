#!/usr/bin/env python
"""CLI utility to re-drive stuck rewards outside the scheduled endpoint."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from rewards_core.core.config import get_settings
from rewards_core.monitoring.handlers import build_alert_handlers
from rewards_core.monitoring.health import CRITICAL, HealthThresholds, SystemHealthProbe
from rewards_core.monitoring.service import MonitoringService
from rewards_core.services.delivery_channel import build_delivery_channel
from rewards_core.services.rewards import RewardsService


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile rewards stuck in pending or processing.")
    parser.add_argument("--health-only", action="store_true", help="Print the health snapshot and exit.")
    parser.add_argument("--force", action="store_true", help="Reconcile even when the system is critical.")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = get_settings()
    monitoring = MonitoringService(environment=settings.environment)
    for handler in build_alert_handlers(settings):
        monitoring.register_alert_handler(handler)

    probe = SystemHealthProbe(monitoring, thresholds=HealthThresholds.from_settings(settings))
    health = probe.check_system_health()
    if args.health_only:
        print(json.dumps(health, indent=2, default=str))
        return 0 if health["status"] != CRITICAL else 2

    if health["status"] == CRITICAL and not args.force:
        logging.error("System is critical; reconciliation skipped (use --force to override)")
        monitoring.log_event("reconcile_skipped", {"reason": "system_critical", "source": "cli"})
        return 2

    rewards = RewardsService(
        monitoring=monitoring,
        channel=build_delivery_channel(settings),
        max_attempts=settings.delivery_max_attempts,
        reconcile_max_attempts=settings.reconcile_max_attempts,
        base_delay_seconds=settings.retry_base_delay_seconds,
        stuck_threshold_hours=settings.stuck_threshold_hours,
    )
    result = rewards.reconcile_stuck_rewards()
    monitoring.log_event("reconciliation_completed", {**result.to_dict(), "source": "cli"})

    logging.info(
        "Reconciliation finished: %s fixed, %s failed, %s skipped",
        result.fixed,
        result.failed,
        result.skipped,
    )
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
