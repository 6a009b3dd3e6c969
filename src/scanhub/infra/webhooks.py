from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

import requests

from ..core.domain.models import ScanReport
from .providers.hosted import USER_AGENT

logger = logging.getLogger(__name__)

SCAN_COMPLETED = "scan.completed"
SCAN_FAILED = "scan.failed"
SIGNATURE_HEADER = "X-Webhook-Signature"


@dataclass(frozen=True)
class WebhookDelivery:
    url: str
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


def sign(body: str, secret: str) -> str:
    """HMAC-SHA256 of the request body, in the ``sha256=<hex>`` header form."""
    digest = hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def make_scan_id(repo_url: str, now_ms: int) -> str:
    suffix = hashlib.md5(f"{repo_url}{now_ms}".encode()).hexdigest()[:8]
    return f"scan_{now_ms}_{suffix}"


def _repository_name(repo_url: str) -> str:
    tail = repo_url.rstrip("/").split("/")[-1].split(":")[-1]
    return tail[:-4] if tail.endswith(".git") else tail or "unknown"


class WebhookNotifier:
    """Posts ``scan.completed`` and ``scan.failed`` events to configured URLs.

    Every URL gets its own POST; a failing endpoint is logged and does not
    stop delivery to the others. Nothing here raises into the scan.
    """

    def __init__(
        self,
        *,
        urls: Sequence[str] = (),
        secret: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._urls = tuple(url for url in urls if url)
        self._secret = secret
        self._timeout = timeout
        self._session = session or requests.Session()
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return bool(self._urls)

    def scan_completed(self, report: ScanReport) -> list[WebhookDelivery]:
        if not self.enabled:
            return []
        payload = self._base_payload(SCAN_COMPLETED, report.repo_url)
        payload["repository"]["name"] = report.repository.name or payload["repository"]["name"]
        payload["repository"]["branch"] = report.repository.default_branch or None
        payload["summary"] = {
            "totalSecurityIssues": report.total_findings,
            "scanDuration": report.duration,
            "scanners": [
                {"name": scanner.name, "securityIssuesFound": scanner.total_findings}
                for scanner in report.scanners
            ],
        }
        payload["status"] = "success"
        return self._deliver(SCAN_COMPLETED, payload)

    def scan_failed(self, repo_url: str, error: str, duration: float) -> list[WebhookDelivery]:
        if not self.enabled:
            return []
        payload = self._base_payload(SCAN_FAILED, repo_url)
        payload["summary"] = {"totalSecurityIssues": 0, "scanDuration": duration, "scanners": []}
        payload["status"] = "failed"
        payload["error"] = error
        return self._deliver(SCAN_FAILED, payload)

    def _base_payload(self, event: str, repo_url: str) -> dict[str, Any]:
        now = self._clock()
        return {
            "event": event,
            "timestamp": datetime.fromtimestamp(now, timezone.utc).isoformat(),
            "scanId": make_scan_id(repo_url, int(now * 1000)),
            "repository": {"name": _repository_name(repo_url), "url": repo_url, "branch": None},
        }

    def _deliver(self, event: str, payload: dict[str, Any]) -> list[WebhookDelivery]:
        body = json.dumps(payload, default=str)
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "X-Webhook-Timestamp": payload["timestamp"],
            "X-Webhook-Event": event,
        }
        if self._secret:
            headers[SIGNATURE_HEADER] = sign(body, self._secret)

        deliveries = [self._post(url, body, headers) for url in self._urls]
        for delivery in deliveries:
            if delivery.ok:
                logger.info(
                    "webhook_delivered",
                    extra={"url": delivery.url, "event": event, "status": delivery.status_code},
                )
            else:
                logger.warning(
                    "webhook_delivery_failed",
                    extra={"url": delivery.url, "event": event, "error": delivery.error},
                )
        return deliveries

    def _post(self, url: str, body: str, headers: dict[str, str]) -> WebhookDelivery:
        try:
            response = self._session.post(url, data=body, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            return WebhookDelivery(url=url, ok=False, error=f"Webhook request failed: {str(e)[:200]}")
        if 200 <= response.status_code < 300:
            return WebhookDelivery(url=url, ok=True, status_code=response.status_code)
        return WebhookDelivery(
            url=url,
            ok=False,
            status_code=response.status_code,
            error=f"Webhook returned {response.status_code}: {response.text[:200]}",
        )
