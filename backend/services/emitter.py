"""
Finding Emitters
Delivery sinks for findings: log lines, or a JSON webhook.
"""

import logging
from collections import deque
from typing import Deque, Optional, Sequence

import httpx

from infrastructure.errors import EmitterError
from models import Finding

logger = logging.getLogger("FindingEmitter")


class FindingEmitter:
    """Base sink. Subclasses deliver one batch of findings per unit of work."""

    name = "base"

    async def emit(self, findings: Sequence[Finding], source: str = None):
        raise NotImplementedError

    async def close(self):
        pass


class LogEmitter(FindingEmitter):
    """Writes each finding to the log - the default sink"""

    name = "log"

    def __init__(self, history: int = 100):
        # Most recent findings only
        self.emitted: Deque[Finding] = deque(maxlen=history)

    async def emit(self, findings: Sequence[Finding], source: str = None):
        for finding in findings:
            logger.info(
                f"🚨 [{finding.severity.value}] {finding.alert_id} {finding.name}: "
                f"{finding.description} ({source or 'unknown'})"
            )
            self.emitted.append(finding)


class WebhookEmitter(FindingEmitter):
    """POSTs findings as JSON: {"source": ..., "findings": [...]}"""

    name = "webhook"

    def __init__(self, url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def emit(self, findings: Sequence[Finding], source: str = None):
        if not findings:
            return

        payload = {
            "source": source,
            "findings": [f.to_dict() for f in findings],
        }
        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise EmitterError(self.name, f"Webhook delivery failed: {e}")

        if response.status_code >= 400:
            raise EmitterError(
                self.name,
                f"Webhook rejected {len(findings)} finding(s)",
                status_code=response.status_code,
            )
        logger.debug(f"Delivered {len(findings)} finding(s) to webhook")

    async def close(self):
        await self._client.aclose()


def create_emitter(webhook_url: Optional[str] = None) -> FindingEmitter:
    if webhook_url:
        return WebhookEmitter(webhook_url)
    return LogEmitter()
