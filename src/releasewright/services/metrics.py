"""Opt-in usage metrics; failures never affect the release."""

import platform
import sys
import uuid
from typing import Any, Dict, Optional

import requests

from releasewright.constants import METRICS_TIMEOUT, METRICS_URL


def _flag(value: Any) -> int:
    return 1 if value else 0


class MetricsBeacon:
    """Sends fire-and-forget session events."""

    def __init__(self, logger, options: Optional[Dict[str, Any]] = None, version: str = "0.0.0", requests_module=requests):
        self.logger = logger
        self.options = options or {}
        self.version = version
        self.requests = requests_module
        self.client_id = uuid.uuid4().hex

    @property
    def enabled(self) -> bool:
        return bool(self.options.get("enabled"))

    def track_event(self, action: str, context=None):
        payload = self._context_payload(context) if context is not None else {}
        payload.update({"t": "event", "ec": "session", "ea": action})
        self._send(payload)

    def track_exception(self, error: BaseException):
        message = str(error).splitlines()[0] if str(error) else type(error).__name__
        self._send({"t": "exception", "exd": message})

    def _context_payload(self, context) -> Dict[str, Any]:
        return {
            "cd1": self.version,
            "cd2": sys.version.split()[0],
            "cd3": platform.system(),
            "cd4": _flag(context.interactive),
            "cd5": _flag(context.dry_run),
            "cd6": _flag(context.verbose),
            "cd8": _flag(context.get("scripts", "before_stage")),
            "cd9": context.options.get("pre_release_id") or "",
            "cd10": _flag(context.get("dist", "repo")),
            "cd12": _flag(context.get("git", "tag")),
            "cd13": _flag(context.get("npm", "publish")),
            "cd14": _flag(context.get("github", "release")),
            "cd15": context.options.get("increment") or "",
        }

    def _send(self, payload: Dict[str, Any]):
        if not self.enabled:
            return
        body = {"v": 1, "cid": self.client_id, "tid": self.options.get("tracking_id") or ""}
        body.update(payload)
        try:
            response = self.requests.post(
                self.options.get("url") or METRICS_URL,
                data=body,
                timeout=METRICS_TIMEOUT,
            )
            self.logger.debug("Metrics %s: %s", payload.get("ea") or payload.get("t"), response.status_code)
        except self.requests.RequestException as exc:
            self.logger.debug("Metrics not sent: %s", exc)
