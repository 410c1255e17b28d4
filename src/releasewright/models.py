"""Shared domain models for releasewright."""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


def deep_merge(base: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a copy of ``base`` with ``override`` merged in recursively."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ReleaseContext:
    """Layered configuration plus the runtime values computed during a release.

    Options are fixed once the context is built. Runtime values (resolved
    version, changelog, ...) are only ever merged in through ``set_runtime``
    and are shared with every context derived through ``for_target``.
    """

    TARGET_KEYS = ("git", "github", "npm", "scripts", "pkg_files")

    def __init__(self, options: Dict[str, Any], runtime: Optional[Dict[str, Any]] = None):
        self.options = options
        self.runtime: Dict[str, Any] = runtime if runtime is not None else {}

    @property
    def interactive(self) -> bool:
        return bool(self.options.get("interactive"))

    @property
    def verbose(self) -> bool:
        return bool(self.options.get("verbose"))

    @property
    def dry_run(self) -> bool:
        return bool(self.options.get("dry_run"))

    @property
    def name(self) -> str:
        return self.options.get("name") or ""

    def section(self, name: str) -> Dict[str, Any]:
        value = self.options.get(name)
        return value if isinstance(value, dict) else {}

    def get(self, section: str, key: str, default: Any = None) -> Any:
        return self.section(section).get(key, default)

    def set_runtime(self, **values: Any):
        self.runtime.update(values)

    def template_vars(self) -> Dict[str, Any]:
        variables = {
            key: value
            for key, value in self.options.items()
            if not isinstance(value, (dict, list))
        }
        variables.update(self.runtime)
        return {key: "" if value is None else value for key, value in variables.items()}

    def for_target(self, overrides: Dict[str, Any]) -> "ReleaseContext":
        """Derive the context of a secondary repository sharing this runtime state."""
        target_overrides = {
            key: overrides[key]
            for key in self.TARGET_KEYS
            if overrides.get(key) is not None
        }
        return ReleaseContext(deep_merge(self.options, target_overrides), runtime=self.runtime)


@dataclass
class VersionDecision:
    """Version resolution state owned by the resolver."""

    previous_version: Optional[str]
    next_version: Optional[str] = None
    is_pre_release: bool = False
    pre_release_channel: Optional[str] = None

    def as_runtime(self) -> Dict[str, Any]:
        return {
            "latest_version": self.previous_version,
            "version": self.next_version,
            "is_pre_release": self.is_pre_release,
            "pre_release_id": self.pre_release_channel,
        }


@dataclass(frozen=True)
class ReleaseRecord:
    """Outcome of a create-release call against the source host."""

    tag_name: str
    release_name: str
    body: str
    is_pre_release: bool
    release_url: Optional[str]
    upload_url: Optional[str]
    is_released: bool = True


@dataclass(frozen=True)
class PublishRecord:
    """Outcome of a registry publish."""

    resolved_dist_tag: str
    package_url: str
    is_published: bool = True


class StepOutcome(Enum):
    RAN = "ran"
    SKIPPED = "skipped"
    SKIPPED_DRY_RUN = "skipped_dry_run"
    FAILED = "failed"


@dataclass
class ReleaseTarget:
    """Clients and context the release step group operates on."""

    label: str
    context: ReleaseContext
    git: Any
    github: Any
    registry: Any


@dataclass
class TargetResult:
    label: str
    release: Optional[ReleaseRecord] = None
    publish: Optional[PublishRecord] = None
    outcomes: Dict[str, StepOutcome] = field(default_factory=dict)


@dataclass
class ReleaseResult:
    latest_version: Optional[str] = None
    version: Optional[str] = None
    changelog: Optional[str] = None
    targets: List[TargetResult] = field(default_factory=list)
