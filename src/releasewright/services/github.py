"""GitHub release client with retry and idempotency guarantees."""

import glob
import mimetypes
import os
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

import requests

from releasewright.constants import (
    GITHUB_API_URL,
    GITHUB_HOST,
    MAX_UPLOAD_WORKERS,
    NO_RETRY_STATUSES,
    USER_AGENT,
)
from releasewright.errors import GithubClientError, GithubTokenError, ReleaseStateError
from releasewright.models import ReleaseRecord

SCP_REMOTE_RE = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<path>[^/].*)$")


@dataclass(frozen=True)
class RemoteRepository:
    host: str
    owner: str
    project: str

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.project}"


def parse_remote_url(remote_url: Optional[str]) -> RemoteRepository:
    """Extract host, owner and project from an ssh, scp-like or https remote."""
    value = (remote_url or "").strip()
    parsed = urlparse(value)
    if parsed.scheme and parsed.hostname:
        host, path = parsed.hostname, parsed.path
    else:
        match = SCP_REMOTE_RE.match(value)
        host, path = (match.group("host"), match.group("path")) if match else ("", value)

    parts = [part for part in path.strip("/").split("/") if part]
    project = parts[-1] if parts else ""
    if project.endswith(".git"):
        project = project[: -len(".git")]
    owner = parts[-2] if len(parts) > 1 else ""
    return RemoteRepository(host=host, owner=owner, project=project)


class RemoteReleaseClient:
    """Creates one release per instance and uploads its assets."""

    def __init__(
        self,
        logger,
        options: Dict[str, Any],
        remote_url: Optional[str],
        dry_run: bool = False,
        environ: Optional[Mapping[str, str]] = None,
        requests_module=requests,
        sleep=time.sleep,
    ):
        self.logger = logger
        self.options = options
        self.repo = parse_remote_url(remote_url)
        self.dry_run = dry_run
        self.environ = os.environ if environ is None else environ
        self.requests = requests_module
        self.sleep = sleep
        self.record: Optional[ReleaseRecord] = None

    @property
    def token(self) -> Optional[str]:
        return self.environ.get(self.options.get("token_ref") or "GITHUB_TOKEN") or None

    @property
    def host(self) -> str:
        return self.options.get("host") or self.repo.host or GITHUB_HOST

    @property
    def api_url(self) -> str:
        if self.host == GITHUB_HOST:
            return GITHUB_API_URL
        return f"https://{self.host}/api/v3"

    def validate(self):
        if not self.options.get("release"):
            return
        if not self.token:
            raise GithubTokenError(self.options.get("token_ref") or "GITHUB_TOKEN")

    def create_release(
        self,
        tag_name: str,
        release_name: str,
        body: Optional[str] = None,
        is_pre_release: bool = False,
    ) -> ReleaseRecord:
        if self.record is not None:
            raise ReleaseStateError(f"Release {self.record.tag_name} was already created by this client.")

        self.logger.debug("Creating release %s on %s", tag_name, self.repo.repository)
        if self.dry_run:
            self.logger.info("[dry-run] create release %s (%s)", tag_name, release_name)
            self.record = ReleaseRecord(
                tag_name=tag_name,
                release_name=release_name,
                body=body or "",
                is_pre_release=is_pre_release,
                release_url=self.fallback_release_url(tag_name),
                upload_url=None,
            )
            return self.record

        data = self._request_with_retry(
            "POST",
            f"{self.api_url}/repos/{self.repo.owner}/{self.repo.project}/releases",
            "create release",
            json={
                "tag_name": tag_name,
                "name": release_name,
                "body": body or "",
                "prerelease": is_pre_release,
                "draft": bool(self.options.get("draft")),
            },
        )
        self.record = ReleaseRecord(
            tag_name=data.get("tag_name") or tag_name,
            release_name=data.get("name") or release_name,
            body=body or "",
            is_pre_release=is_pre_release,
            release_url=data.get("html_url") or self.fallback_release_url(tag_name),
            upload_url=data.get("upload_url"),
        )
        self.logger.debug("Release created: %s", self.record.release_url)
        return self.record

    def upload_assets(self) -> List[Dict[str, Any]]:
        patterns = self.options.get("assets")
        if not patterns:
            return []
        if isinstance(patterns, str):
            patterns = [patterns]

        if self.dry_run:
            self.logger.info("[dry-run] upload assets %s", ", ".join(patterns))
            return []

        if self.record is None or not self.record.upload_url:
            raise ReleaseStateError("Cannot upload assets before the release is created.")

        files = sorted(
            {
                match
                for pattern in patterns
                for match in glob.glob(pattern, recursive=True)
                if os.path.isfile(match)
            }
        )
        if not files:
            self.logger.warning(
                'Assets not found (glob "%s" relative to %s).', ", ".join(patterns), os.getcwd()
            )
            return []

        with ThreadPoolExecutor(max_workers=min(MAX_UPLOAD_WORKERS, len(files))) as executor:
            return list(executor.map(self.upload_asset, files))

    def upload_asset(self, file_path: str) -> Dict[str, Any]:
        if self.record is None or not self.record.upload_url:
            raise ReleaseStateError("Cannot upload assets before the release is created.")
        url = self.record.upload_url.split("{", 1)[0]
        name = os.path.basename(file_path)
        content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        with open(file_path, "rb") as file_obj:
            content = file_obj.read()

        data = self._request_with_retry(
            "POST",
            url,
            f"upload asset {name}",
            params={"name": name},
            data=content,
            headers={"Content-Type": content_type, "Content-Length": str(len(content))},
        )
        self.logger.debug("Uploaded asset: %s", data.get("browser_download_url", name))
        return data

    def fallback_release_url(self, tag_name: str) -> str:
        return f"https://{self.host}/{self.repo.repository}/releases/tag/{tag_name}"

    def release_url(self) -> Optional[str]:
        if self.record is None:
            return None
        return self.record.release_url or self.fallback_release_url(self.record.tag_name)

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"token {self.token}",
            "User-Agent": USER_AGENT,
        }
        headers.update(extra or {})
        return headers

    def _request_with_retry(self, method: str, url: str, description: str, **kwargs) -> Dict[str, Any]:
        retry_count = int(self.options.get("retry_count") or 0)
        backoff = float(self.options.get("retry_backoff_seconds") or 0.0)
        max_attempts = max(1, retry_count + 1)
        headers = self._headers(kwargs.pop("headers", None))
        proxy = self.options.get("proxy")

        for attempt in range(1, max_attempts + 1):
            status: Optional[int] = None
            try:
                response = self.requests.request(
                    method,
                    url,
                    headers=headers,
                    timeout=self.options.get("timeout") or None,
                    proxies={"http": proxy, "https": proxy} if proxy else None,
                    **kwargs,
                )
            except self.requests.RequestException as exc:
                message = str(exc)
            else:
                if response.status_code < 400:
                    return self._json(response)
                status = response.status_code
                message = self._error_message(response)
                if status in NO_RETRY_STATUSES:
                    raise GithubClientError(message, status=status)

            if attempt < max_attempts:
                delay = backoff * (2 ** (attempt - 1))
                self.logger.warning(
                    "GitHub %s failed on attempt %s/%s (%s). Retrying in %.1fs.",
                    description,
                    attempt,
                    max_attempts,
                    message,
                    delay,
                )
                self.sleep(delay)
                continue

            raise GithubClientError(f"{description} failed after {max_attempts} attempts: {message}", status=status)

        raise GithubClientError(f"{description} failed.")

    @staticmethod
    def _json(response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _error_message(response) -> str:
        try:
            data = response.json()
            message = data.get("message") if isinstance(data, dict) else None
        except ValueError:
            message = None
        message = message or getattr(response, "reason", None) or getattr(response, "text", "") or "request failed"
        return re.sub(r"[\r\n]+", " ", str(message))
