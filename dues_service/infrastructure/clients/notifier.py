"""Dues event webhook client with exponential backoff retry logic"""

import httpx
import asyncio
import logging
from typing import Dict, Any
from dues_service.config import settings
from dues_service.infrastructure.observability.metrics import notifier_latency_histogram, notifier_failure_counter


class WebhookNotifier:
    """Client for pushing dues events to an external notification service"""

    def __init__(
        self,
        webhook_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.notify_webhook_url
        self.timeout = settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Send a dues event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base^attempt)
        - Retries on 5xx errors and network failures

        Raises:
            httpx.HTTPError: Delivery still failing after max_retries
        """
        attempt = 0
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            while attempt < self.max_retries:
                try:
                    with notifier_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError):
                    attempt += 1
                    notifier_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)

    async def notify(self, payload: Dict[str, Any]) -> bool:
        """
        Deliver an event without failing the caller.

        Returns:
            True when delivered, False when disabled or delivery failed
        """
        if not self.enabled:
            return False
        try:
            await self.send_event(payload)
        except httpx.HTTPError as e:
            logging.error(f"Dues notification failed: {e}", extra={"event": payload.get("event")})
            return False
        return True
