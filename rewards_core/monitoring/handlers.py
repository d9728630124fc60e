"""Alert handlers delivering alerts to external transports."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from rewards_core.core.config import AppSettings
from rewards_core.monitoring.alerts import AlertHandler

LOGGER = logging.getLogger("rewards_core.monitoring.handlers")

_SEVERITY_COLORS = {
    "low": 0x95A5A6,
    "medium": 0xF1C40F,
    "high": 0xE67E22,
    "critical": 0xE74C3C,
}


class WebhookAlertHandler:
    """Posts alerts to a Discord-compatible webhook."""

    def __init__(
        self,
        *,
        url: str,
        environment: str,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._url = url
        self._environment = environment
        self._client = client or httpx.Client(timeout=timeout)

    def __call__(self, alert_type: str, data: Dict[str, Any], severity: str) -> None:
        body = {
            "content": f"[ALERTA {severity.upper()}] {alert_type}",
            "embeds": [
                {
                    "title": alert_type,
                    "description": json.dumps(data, default=str, ensure_ascii=False)[:4000],
                    "color": _SEVERITY_COLORS.get(severity, 0),
                    "footer": {"text": self._environment},
                }
            ],
        }
        response = self._client.post(self._url, json=body)
        response.raise_for_status()
        LOGGER.info("alert_webhook_sent", extra={"alert_type": alert_type, "severity": severity})


class SnsAlertHandler:
    """Publishes alerts to an AWS SNS topic."""

    def __init__(self, *, topic_arn: str, region_name: str, environment: str) -> None:
        self._topic_arn = topic_arn
        self._environment = environment
        self._client = boto3.client("sns", region_name=region_name)

    def __call__(self, alert_type: str, data: Dict[str, Any], severity: str) -> None:
        message = json.dumps(
            {
                "alert_type": alert_type,
                "severity": severity,
                "environment": self._environment,
                "data": data,
            },
            default=str,
        )
        try:
            self._client.publish(
                TopicArn=self._topic_arn,
                Subject=f"[{severity.upper()}] {alert_type}"[:100],
                Message=message,
                MessageAttributes={
                    "severity": {"DataType": "String", "StringValue": severity},
                    "alert_type": {"DataType": "String", "StringValue": alert_type},
                },
            )
        except (BotoCoreError, ClientError):
            LOGGER.exception(
                "alert_sns_publish_failed",
                extra={"alert_type": alert_type, "topic_arn": self._topic_arn},
            )
            raise


def build_alert_handlers(settings: AppSettings) -> List[AlertHandler]:
    """Materialize the alert handlers enabled by configuration."""

    handlers: List[AlertHandler] = []
    if settings.alert_webhook_url:
        handlers.append(
            WebhookAlertHandler(url=settings.alert_webhook_url, environment=settings.environment)
        )
    if settings.alert_topic_arn:
        region = os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "us-east-1"
        handlers.append(
            SnsAlertHandler(
                topic_arn=settings.alert_topic_arn,
                region_name=region,
                environment=settings.environment,
            )
        )
    return handlers
