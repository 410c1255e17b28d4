"""Semantic version model and next-version resolution."""

import functools
import re
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple, Union

from releasewright.constants import INCREMENTS, RECOMMENDATION_PREFIX, RELEASE_INCREMENTS
from releasewright.errors import InvalidVersionError
from releasewright.models import VersionDecision

_NUM = r"0|[1-9]\d*"
_IDENT = r"(?:0|[1-9]\d*|\d*[A-Za-z-][0-9A-Za-z-]*)"
SEMVER_RE = re.compile(
    rf"^[v=]?\s*(?P<major>{_NUM})\.(?P<minor>{_NUM})\.(?P<patch>{_NUM})"
    rf"(?:-(?P<pre>{_IDENT}(?:\.{_IDENT})*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

Identifier = Union[int, str]


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class SemVer:
    """Semantic version with pre-release identifiers and build metadata."""

    major: int
    minor: int
    patch: int
    prerelease: Tuple[Identifier, ...] = ()
    build: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> "SemVer":
        """Parse ``text``; raise ValueError on invalid input. A leading ``v`` is accepted."""
        match = SEMVER_RE.match(text.strip()) if isinstance(text, str) else None
        if not match:
            raise ValueError(f"Invalid version {text!r}.")
        groups = match.groupdict()
        prerelease = tuple(
            int(part) if part.isdigit() else part for part in (groups["pre"] or "").split(".") if part
        )
        build = tuple((groups["build"] or "").split(".")) if groups["build"] else ()
        return cls(int(groups["major"]), int(groups["minor"]), int(groups["patch"]), prerelease, build)

    @classmethod
    def coerce(cls, text: Optional[str]) -> Optional["SemVer"]:
        if not text:
            return None
        try:
            return cls.parse(text)
        except ValueError:
            return None

    def __str__(self) -> str:
        value = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            value += "-" + ".".join(str(part) for part in self.prerelease)
        if self.build:
            value += "+" + ".".join(self.build)
        return value

    def _precedence(self):
        if not self.prerelease:
            pre_key: tuple = (1,)
        else:
            pre_key = (0,) + tuple(
                (0, part, "") if isinstance(part, int) else (1, 0, part) for part in self.prerelease
            )
        return (self.major, self.minor, self.patch, pre_key)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._precedence() == other._precedence()

    def __lt__(self, other) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._precedence() < other._precedence()

    def __hash__(self) -> int:
        return hash(self._precedence())

    @property
    def channel(self) -> Optional[str]:
        if self.prerelease and isinstance(self.prerelease[0], str):
            return self.prerelease[0]
        return None

    def bumped(self, increment: str, identifier: Optional[str] = None) -> "SemVer":
        """Return the version after applying ``increment`` (node-semver semantics)."""
        base = replace(self, build=())
        if increment == "premajor":
            return replace(base, major=self.major + 1, minor=0, patch=0, prerelease=())._pre(identifier)
        if increment == "preminor":
            return replace(base, minor=self.minor + 1, patch=0, prerelease=())._pre(identifier)
        if increment == "prepatch":
            return replace(base, patch=self.patch + 1, prerelease=())._pre(identifier)
        if increment == "prerelease":
            start = base if self.prerelease else base.bumped("patch")
            candidate = start._pre(identifier)
            if candidate <= self:
                candidate = base.bumped("prepatch", identifier)
            return candidate
        if increment == "major":
            if self.minor or self.patch or not self.prerelease:
                return replace(base, major=self.major + 1, minor=0, patch=0, prerelease=())
            return replace(base, prerelease=())
        if increment == "minor":
            if self.patch or not self.prerelease:
                return replace(base, minor=self.minor + 1, patch=0, prerelease=())
            return replace(base, prerelease=())
        if increment == "patch":
            if not self.prerelease:
                return replace(base, patch=self.patch + 1, prerelease=())
            return replace(base, prerelease=())
        raise ValueError(f"Unknown increment: {increment}")

    def _pre(self, identifier: Optional[str]) -> "SemVer":
        parts = list(self.prerelease)
        if not parts:
            parts = [0]
        else:
            for index in range(len(parts) - 1, -1, -1):
                if isinstance(parts[index], int):
                    parts[index] += 1
                    break
            else:
                parts.append(0)

        if identifier:
            if parts[0] != identifier or len(parts) < 2 or not isinstance(parts[1], int):
                parts = [identifier, 0]
        return replace(self, prerelease=tuple(parts))


class VersionResolver:
    """Determines the next release version from a baseline and an increment."""

    def __init__(self, logger, recommend: Optional[Callable[[str], Optional[str]]] = None):
        self.logger = logger
        self.recommend = recommend
        self.decision: Optional[VersionDecision] = None

    @staticmethod
    def is_recommendation(increment: Optional[str]) -> bool:
        if not isinstance(increment, str):
            return False
        value = increment.strip().lower()
        return value == RECOMMENDATION_PREFIX or value.startswith(f"{RECOMMENDATION_PREFIX}:")

    @staticmethod
    def is_valid(value: Optional[str]) -> bool:
        return SemVer.coerce(value) is not None

    def show_warnings(self, latest_tag: Optional[str], registry_version: Optional[str], use_tag: bool):
        if latest_tag and not use_tag and not self.is_valid(latest_tag):
            self.logger.warning(
                "Latest git tag (%s) is not a valid version, using package.json version (%s).",
                latest_tag,
                registry_version or "0.0.0",
            )
        if use_tag and registry_version and SemVer.coerce(latest_tag) != SemVer.coerce(registry_version):
            self.logger.warning(
                "Latest git tag (%s) doesn't match package.json#version (%s), using the tag.",
                latest_tag,
                registry_version,
            )

    def bump(
        self,
        current_version: Optional[str],
        increment: Optional[str] = None,
        pre_release_channel: Optional[str] = None,
    ) -> VersionDecision:
        if self.decision is None or self.decision.previous_version != current_version:
            self.decision = VersionDecision(
                previous_version=current_version,
                pre_release_channel=pre_release_channel,
            )
        decision = self.decision
        channel = pre_release_channel or decision.pre_release_channel
        base = SemVer.coerce(current_version) or SemVer(0, 0, 0)

        value = (increment or "").strip()
        if not value:
            if not channel:
                return decision
            keyword = "prerelease" if base.prerelease else "prepatch"
        elif self.is_recommendation(value):
            keyword = (self.recommend(value) if self.recommend else None) or "patch"
            self.logger.info("Recommended increment: %s", keyword)
            keyword = self._with_channel(keyword, base, channel)
        elif value.lower() in INCREMENTS:
            keyword = self._with_channel(value.lower(), base, channel)
        else:
            literal = SemVer.coerce(value)
            if literal is None:
                raise InvalidVersionError(value)
            return self._decide(literal)

        return self._decide(base.bumped(keyword, channel))

    def set_version(self, value: Optional[str]) -> VersionDecision:
        """Accept a literal version typed by the operator."""
        literal = SemVer.coerce(value)
        if literal is None:
            raise InvalidVersionError(value)
        if self.decision is None:
            self.decision = VersionDecision(previous_version=None)
        return self._decide(literal)

    def preview(self, current_version: Optional[str], increment: str, channel: Optional[str] = None) -> str:
        base = SemVer.coerce(current_version) or SemVer(0, 0, 0)
        return str(base.bumped(self._with_channel(increment, base, channel), channel))

    def validate(self):
        if self.decision is None or not self.decision.next_version:
            raise InvalidVersionError(None)

    @property
    def version(self) -> Optional[str]:
        return self.decision.next_version if self.decision else None

    def _decide(self, version: SemVer) -> VersionDecision:
        self.decision.next_version = str(version)
        self.decision.is_pre_release = bool(version.prerelease)
        self.decision.pre_release_channel = version.channel or self.decision.pre_release_channel
        return self.decision

    @staticmethod
    def _with_channel(keyword: str, base: SemVer, channel: Optional[str]) -> str:
        if not channel or keyword not in RELEASE_INCREMENTS:
            return keyword
        if base.prerelease and base.channel == channel:
            return "prerelease"
        return f"pre{keyword}"
