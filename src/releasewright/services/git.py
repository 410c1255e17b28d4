"""Git backend used by the release pipeline."""

import os
import re
import shlex
from typing import Any, Dict, Iterable, List, Optional

from releasewright.errors import (
    CommandError,
    GitCleanWorkingDirError,
    GitRemoteUrlError,
    GitRepoError,
    GitUpstreamError,
)

BREAKING_SUBJECT_RE = re.compile(r"^\w+(?:\([^)]*\))?!:")
FEATURE_SUBJECT_RE = re.compile(r"^feat(?:\([^)]*\))?:")
COMMIT_SEPARATOR = "==END=="


class GitService:
    """Runs git commands for one working copy."""

    def __init__(self, runner, logger, options: Optional[Dict[str, Any]] = None):
        self.runner = runner
        self.logger = logger
        self.options = options or {}
        self.remote_url: Optional[str] = None
        self.latest_tag: Optional[str] = None
        self.is_root_dir = False

    def init(self):
        if not self.is_repo():
            raise GitRepoError()
        self.remote_url = self.get_remote_url()
        self.latest_tag = self.get_latest_tag()
        self.is_root_dir = self.check_root_dir()

    def validate(self):
        if not self.remote_url:
            raise GitRemoteUrlError()
        if self.options.get("require_clean_working_dir") and not self.is_working_dir_clean():
            raise GitCleanWorkingDirError()
        if self.options.get("require_upstream") and not self.has_upstream():
            raise GitUpstreamError()

    def is_repo(self) -> bool:
        return self._read(["git", "rev-parse", "--git-dir"]) is not None

    def check_root_dir(self) -> bool:
        top_level = self._read(["git", "rev-parse", "--show-toplevel"])
        if not top_level:
            return False
        return os.path.realpath(top_level) == os.path.realpath(os.getcwd())

    def get_remote_url(self) -> Optional[str]:
        remote = self.options.get("push_repo") or "origin"
        if "/" in remote or ":" in remote:
            return remote
        return self._read(["git", "config", "--get", f"remote.{remote}.url"]) or None

    def has_upstream(self) -> bool:
        return self._read(["git", "rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"]) is not None

    def is_working_dir_clean(self) -> bool:
        try:
            self.runner.run(["git", "diff", "--quiet", "HEAD"], read_only=True)
        except CommandError:
            return False
        return True

    def get_latest_tag(self) -> Optional[str]:
        return self._read(["git", "describe", "--tags", "--abbrev=0"]) or None

    def stage(self, paths: Optional[Iterable[str]]):
        files = [path for path in (paths or []) if path]
        if not files:
            return
        self.runner.run(["git", "add", *files])

    def stage_dir(self, base_dir: str = "."):
        mode = "--all" if self.options.get("add_untracked_files") else "--update"
        self.runner.run(["git", "add", base_dir, mode])

    def status(self) -> Optional[str]:
        return self._read(["git", "status", "--short", "--untracked-files=no"]) or None

    def changelog(self, command: Optional[str]) -> Optional[str]:
        if not command:
            return None
        if not self.latest_tag:
            command = command.replace("${latest_tag}...", "")
        try:
            output = self.runner.run(command, read_only=True, variables={"latest_tag": self.latest_tag or ""})
        except CommandError as exc:
            self.logger.warning("Could not generate changelog: %s", exc)
            return None
        return output or None

    @property
    def tag_name(self) -> str:
        return self.runner.render(self.options.get("tag_name") or "${version}")

    def commit(self):
        message = self.runner.render(self.options.get("commit_message") or "Release ${version}")
        extra = shlex.split(self.options.get("commit_args") or "")
        self.runner.run(["git", "commit", f"--message={message}", *extra])

    def tag(self):
        annotation = self.runner.render(self.options.get("tag_annotation") or "Release ${version}")
        self.runner.run(["git", "tag", "--annotate", f"--message={annotation}", self.tag_name])

    def push(self):
        extra = shlex.split(self.options.get("push_args") or "")
        remote: List[str] = [self.options["push_repo"]] if self.options.get("push_repo") else []
        self.runner.run(["git", "push", "--follow-tags", *extra, *remote])

    def reset(self, paths: Optional[Iterable[str]]):
        files = [path for path in (paths or []) if path]
        if not files:
            return
        self.runner.run(["git", "checkout", "HEAD", "--", *files])

    def clone(self, repo: str, directory: str):
        self.runner.run(["git", "clone", repo, "--depth=1", directory])

    def should_tag(self, other: "GitService") -> bool:
        """Tag unless ``other`` already tags the same remote."""
        if not self.options.get("tag"):
            return False
        if other.options.get("tag") and other.remote_url and other.remote_url == self.remote_url:
            return False
        return True

    def recommended_increment(self, _preset: Optional[str] = None) -> str:
        """Recommend an increment from Conventional Commits since the latest tag."""
        revision = f"{self.latest_tag}..HEAD" if self.latest_tag else "HEAD"
        log = self._read(["git", "log", f"--pretty=format:%s%n%b%n{COMMIT_SEPARATOR}", revision]) or ""

        increment = "patch"
        for entry in log.split(COMMIT_SEPARATOR):
            text = entry.strip()
            if not text:
                continue
            subject = text.splitlines()[0]
            if "BREAKING CHANGE" in text or BREAKING_SUBJECT_RE.match(subject):
                return "major"
            if FEATURE_SUBJECT_RE.match(subject):
                increment = "minor"
        return increment

    def _read(self, command: List[str]) -> Optional[str]:
        try:
            return self.runner.run(command, read_only=True)
        except CommandError as exc:
            self.logger.debug("%s", exc)
            return None
