"""Package registry publishing (npm) with one-time passcode handling."""

import re
import time
from typing import Any, Callable, Dict, List, Optional

from releasewright.constants import (
    DEFAULT_DIST_TAG,
    MAX_OTP_PROMPTS,
    NPM_BASE_URL,
    NPM_NO_RETRY_PATTERN,
    OTP_ERROR_PATTERN,
)
from releasewright.errors import CommandError, OtpError
from releasewright.models import PublishRecord
from releasewright.services.version import SemVer


def resolve_dist_tag(version: Optional[str], is_pre_release: bool, tag: Optional[str] = None) -> str:
    """Pick the dist-tag: explicit override, else the pre-release channel, else ``latest``."""
    if tag:
        return tag
    if is_pre_release:
        parsed = SemVer.coerce(version)
        # npm refuses numeric dist-tags, so "1.0.0-0" stays on latest
        if parsed is not None and parsed.channel:
            return parsed.channel
    return DEFAULT_DIST_TAG


class RegistryPublishClient:
    """Publishes a package through the npm CLI."""

    def __init__(
        self,
        runner,
        logger,
        options: Dict[str, Any],
        interactive: bool = False,
        dry_run: bool = False,
        sleep=time.sleep,
    ):
        self.runner = runner
        self.logger = logger
        self.options = options
        self.interactive = interactive
        self.dry_run = dry_run
        self.sleep = sleep
        self.record: Optional[PublishRecord] = None

    @property
    def name(self) -> str:
        return self.options.get("name") or ""

    @property
    def package_url(self) -> str:
        return f"{NPM_BASE_URL}{self.name}"

    def build_command(self, tag: str, otp: Optional[str] = None) -> List[str]:
        command = ["npm", "publish", self.options.get("publish_path") or ".", "--tag", tag]
        access = self.options.get("access")
        if self.name.startswith("@") and access:
            command.extend(["--access", access])
        if otp:
            command.extend(["--otp", otp])
        if self.dry_run:
            command.append("--dry-run")
        return command

    def publish(
        self,
        version: str,
        is_pre_release: bool = False,
        otp_prompt: Optional[Callable[[], Optional[str]]] = None,
    ) -> PublishRecord:
        """Publish ``version``.

        A rejected OTP re-prompts the operator when interactive. Other failures
        are retried with exponential backoff unless npm reports an
        authentication or validation error.
        """
        tag = resolve_dist_tag(version, is_pre_release, self.options.get("tag"))
        otp = self.options.get("otp")
        retry_count = int(self.options.get("retry_count") or 0)
        backoff = float(self.options.get("retry_backoff_seconds") or 0.0)
        max_attempts = max(1, retry_count + 1)
        attempt = 0
        prompts = 0

        while True:
            try:
                self.runner.run(self.build_command(tag, otp), read_only=True)
                break
            except CommandError as exc:
                message = str(exc)
                if re.search(OTP_ERROR_PATTERN, message):
                    otp = self._next_otp(otp, otp_prompt, prompts, exc)
                    prompts += 1
                    continue
                attempt += 1
                if attempt >= max_attempts or re.search(NPM_NO_RETRY_PATTERN, message):
                    raise
                delay = backoff * (2 ** (attempt - 1))
                self.logger.warning(
                    "npm publish failed on attempt %s/%s (%s). Retrying in %.1fs.",
                    attempt,
                    max_attempts,
                    message.splitlines()[0] if message else "unknown error",
                    delay,
                )
                self.sleep(delay)

        self.record = PublishRecord(resolved_dist_tag=tag, package_url=self.package_url)
        self.logger.debug("Published %s@%s with tag %s", self.name, version, tag)
        return self.record

    def _next_otp(self, otp, otp_prompt, prompts: int, exc: CommandError) -> str:
        if otp:
            self.logger.warning("The provided OTP is incorrect or has expired.")
        if not (self.interactive and otp_prompt):
            raise OtpError(f"npm publish requires a valid one-time password. {exc}") from exc
        if prompts >= MAX_OTP_PROMPTS:
            raise OtpError(f"npm publish failed after {prompts} one-time password attempts.") from exc
        otp = otp_prompt()
        if not otp:
            raise OtpError("No one-time password provided; publish aborted.") from exc
        return otp
