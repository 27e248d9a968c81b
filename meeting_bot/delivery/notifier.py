# FilePath: "/meeting_bot/delivery/notifier.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Fans one event out to every configured destination.
#              HTTP destinations get one best-effort POST, WebSocket destinations are
#              retried with exponential backoff. One failing destination never stops the rest.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlparse

from ..errors import DeliveryError
from ..metrics import DELIVERIES_COUNTER
from ..sinks import get_bot_logger
from .client import (
    DeliveryClient,
    DeliveryResult,
    HttpDeliveryClient,
    StreamDeliveryClient,
)

HTTP_SCHEMES = ("http", "https")
STREAM_SCHEMES = ("ws", "wss")


@dataclass(frozen=True)
class RetryPolicy:
    """Delay after failed attempt n (1-based) is 2**n * base_delay seconds."""
    retries: int = 5
    base_delay: float = 0.1

    def delay_for(self, attempt: int) -> float:
        return (2 ** attempt) * self.base_delay


class Notifier:
    def __init__(
        self,
        urls: Iterable[str],
        bot_id: str,
        http_client: Optional[DeliveryClient] = None,
        stream_client: Optional[DeliveryClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.urls = list(urls)
        self.bot_id = bot_id
        self.http_client = http_client or HttpDeliveryClient()
        self.stream_client = stream_client or StreamDeliveryClient()
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = get_bot_logger("notifier", bot_id)

    async def send_event_to_server(self, payload: Any) -> Dict[str, DeliveryResult]:
        """Sends ``payload`` to every destination and returns the outcome per URL."""
        results: Dict[str, DeliveryResult] = {}

        for url in self.urls:
            try:
                scheme = urlparse(url).scheme.lower()
                self.logger.info(f'Sending event to server. endpoint="{url}"')

                if scheme in HTTP_SCHEMES:
                    result = await self._send_http(url, payload)
                elif scheme in STREAM_SCHEMES:
                    result = await self._send_stream_with_retry(url, payload)
                else:
                    self.logger.error(f"Unsupported protocol: {scheme}")
                    result = DeliveryResult(success=False, url=url, error_message=f"Unsupported protocol: {scheme}")

            except Exception as e:
                self.logger.error(f"Failed to send event to {url}: {e}")
                result = DeliveryResult(success=False, url=url, error_message=str(e))

            results[url] = result

        return results

    async def _send_http(self, url: str, payload: Any) -> DeliveryResult:
        result = await self.http_client.send(url, payload)
        DELIVERIES_COUNTER.labels(transport="http", outcome="success" if result.success else "failure").inc()
        return result

    async def _send_stream_with_retry(self, url: str, payload: Any, retries: Optional[int] = None) -> DeliveryResult:
        if retries is None:
            retries = self.retry_policy.retries
        # At least one attempt is always made.
        attempt = 0

        while True:
            try:
                result = await self.stream_client.send(url, payload)
                self.logger.info(f"Successfully sent message to {url}")
                DELIVERIES_COUNTER.labels(transport="ws", outcome="success").inc()
                return result

            except DeliveryError as e:
                attempt += 1
                self.logger.warning(f"Attempt {attempt} failed for {url}: {e}")
                if attempt >= retries:
                    self.logger.error(f"All {retries} attempts to deliver to {url} failed.")
                    DELIVERIES_COUNTER.labels(transport="ws", outcome="failure").inc()
                    e.attempts = attempt
                    raise

                backoff = self.retry_policy.delay_for(attempt)
                self.logger.info(f"Retrying in {int(backoff * 1000)}ms...")
                await asyncio.sleep(backoff)

    async def close(self) -> None:
        await self.http_client.close()
        await self.stream_client.close()
