"""
Notification Service
Slack incoming-webhook messages for job lifecycle and mention alerts
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from aeo.config import get_settings

logger = logging.getLogger(__name__)

SLACK_TIMEOUT = 10.0


def format_duration(seconds: float) -> str:
    """Seconds up to a minute, then fractional minutes"""
    if seconds > 60:
        return f"{seconds / 60:.1f}m"
    return f"{seconds:.1f}s"


def _field(label: str, value: Any) -> Dict[str, str]:
    return {"type": "mrkdwn", "text": f"*{label}:*\n{value}"}


def _section(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


class SlackNotifier:
    """
    Fire-and-forget sink. Every method returns whether Slack accepted the
    message; failures are logged, never raised.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else get_settings().SLACK_WEBHOOK_URL
        self._transport = transport

    async def send(self, message: str, blocks: Optional[List[Dict[str, Any]]] = None) -> bool:
        if not self.webhook_url:
            return False

        payload: Dict[str, Any] = {"text": message}
        if blocks:
            payload["blocks"] = blocks

        try:
            async with httpx.AsyncClient(timeout=SLACK_TIMEOUT, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=payload)
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning(f"Slack notification failed: {e}")
            return False

    async def notify_job_started(self, job_name: str) -> bool:
        return await self.send(f"AEO Job Started: {job_name}", [
            _section(f"*{job_name} Job Started*"),
            {
                "type": "section",
                "fields": [
                    _field("Status", "Running"),
                    _field("Started", datetime.utcnow().isoformat()),
                ],
            },
        ])

    async def notify_job_completed(
        self,
        job_name: str,
        success: bool,
        duration_seconds: Optional[float] = None,
        summary: Optional[Dict[str, Any]] = None,
    ) -> bool:
        status_text = "Completed Successfully" if success else "Failed"

        fields = [
            _field("Status", status_text),
            _field("Completed", datetime.utcnow().isoformat()),
        ]
        if duration_seconds is not None:
            fields.append(_field("Duration", format_duration(duration_seconds)))

        blocks = [_section(f"*{job_name} Job {status_text}*"), {"type": "section", "fields": fields}]
        if summary:
            lines = "\n".join(f"{k}: {v}" for k, v in summary.items())
            blocks.append(_section(f"*Results:*\n{lines}"))

        return await self.send(f"AEO Job {status_text}: {job_name}", blocks)

    async def notify_mention_alert(
        self,
        provider: str,
        current_rate: float,
        threshold: float,
        previous_rate: Optional[float] = None,
    ) -> bool:
        fields = [
            _field("Provider", provider),
            _field("Current Rate", f"{current_rate * 100:.1f}%"),
            _field("Threshold", f"{threshold * 100:.1f}%"),
        ]
        if previous_rate is not None:
            change = current_rate - previous_rate
            sign = "+" if change >= 0 else ""
            fields.append(_field("Change", f"{sign}{change * 100:.1f}%"))

        return await self.send(f"Mention Rate Alert: {provider}", [
            _section("*Mention Rate Below Threshold*"),
            {"type": "section", "fields": fields},
        ])
