"""Domain errors for releasewright."""

from typing import Optional

from releasewright.errors_catalog import actionable_error


class ReleaseError(RuntimeError):
    """Raised when the release cannot continue safely."""


class GitRepoError(ReleaseError):
    def __init__(self):
        super().__init__(actionable_error("not_a_repository"))


class GitRemoteUrlError(ReleaseError):
    def __init__(self):
        super().__init__(actionable_error("no_remote_url"))


class GitCleanWorkingDirError(ReleaseError):
    def __init__(self):
        super().__init__(actionable_error("dirty_working_dir"))


class GitUpstreamError(ReleaseError):
    def __init__(self):
        super().__init__(actionable_error("no_upstream"))


class GithubTokenError(ReleaseError):
    def __init__(self, token_ref: str):
        self.token_ref = token_ref
        super().__init__(actionable_error("missing_token", token_ref=token_ref))


class DistRepoStageDirError(ReleaseError):
    def __init__(self, stage_dir: str):
        self.stage_dir = stage_dir
        super().__init__(actionable_error("invalid_stage_dir", stage_dir=stage_dir))


class InvalidVersionError(ReleaseError):
    def __init__(self, value: Optional[str] = None):
        self.value = value
        super().__init__(actionable_error("invalid_version", value=value or "<none>"))


class GithubClientError(ReleaseError):
    """Raised for non-retryable or exhausted source-host API failures."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(f"{status} ({message})" if status is not None else message)


class CommandError(ReleaseError):
    """Raised when a shell command exits with a non-zero status."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class OtpError(ReleaseError):
    """Raised when the registry rejects the one-time passcode."""


class ReleaseStateError(ReleaseError):
    """Raised when a client is asked to repeat a one-shot transition."""
