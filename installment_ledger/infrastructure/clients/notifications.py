"""Notification webhook client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict, List
import httpx
from installment_ledger.config import settings
from installment_ledger.infrastructure.observability.metrics import (
    notification_failure_counter,
    notification_latency_histogram,
)

logger = logging.getLogger(__name__)


class NotificationClient:
    """Client for handing ledger events to the notification dispatcher"""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Send one event to the dispatcher with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base^attempt)
        - Retries on 5xx errors and network failures
        - Tracks latency histogram and failure counter
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while attempt < self.max_retries:
                try:
                    with notification_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError):
                    attempt += 1
                    notification_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)

    async def emit(self, events: List[Dict[str, Any]]) -> None:
        """Fire-and-forget: delivery failures are logged, never raised to the ledger operation"""
        for payload in events:
            try:
                await self.send_event(payload)
            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                logger.error(
                    f"Notification delivery failed: {e}",
                    extra={"event": payload.get("event"), "invoice_id": payload.get("invoice_id")},
                )
