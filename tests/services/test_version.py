import pytest

from releasewright.errors import InvalidVersionError
from releasewright.services.version import SemVer, VersionResolver


class DummyLogger:
    def __init__(self):
        self.warnings = []

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, message, *args, **_kwargs):
        self.warnings.append(message % args if args else message)


def test_semver_parses_prerelease_and_build():
    version = SemVer.parse("v1.2.3-beta.4+build.7")

    assert (version.major, version.minor, version.patch) == (1, 2, 3)
    assert version.prerelease == ("beta", 4)
    assert version.build == ("build", "7")
    assert version.channel == "beta"
    assert str(version) == "1.2.3-beta.4+build.7"


def test_semver_rejects_invalid_input():
    with pytest.raises(ValueError):
        SemVer.parse("1.2")
    assert SemVer.coerce("not-a-version") is None
    assert SemVer.coerce(None) is None


def test_semver_precedence():
    ordered = [
        "1.0.0-alpha",
        "1.0.0-alpha.1",
        "1.0.0-alpha.beta",
        "1.0.0-beta",
        "1.0.0-beta.2",
        "1.0.0-beta.11",
        "1.0.0-rc.1",
        "1.0.0",
        "1.0.1",
    ]
    versions = [SemVer.parse(value) for value in ordered]

    assert sorted(reversed(versions)) == versions
    assert SemVer.parse("1.0.0+build") == SemVer.parse("1.0.0")


@pytest.mark.parametrize(
    "current, increment, channel, expected",
    [
        ("1.0.0", "patch", None, "1.0.1"),
        ("1.0.0", "minor", None, "1.1.0"),
        ("1.0.0", "major", None, "2.0.0"),
        ("1.1.0", "minor", "beta", "1.2.0-beta.0"),
        ("1.0.0", "premajor", "alpha", "2.0.0-alpha.0"),
        ("1.2.0-beta.0", "prerelease", "beta", "1.2.0-beta.1"),
        ("1.2.0-beta.1", None, "beta", "1.2.0-beta.2"),
        ("1.2.0", None, "beta", "1.2.1-beta.0"),
        ("1.2.0-alpha.3", "prerelease", "beta", "1.2.0-beta.0"),
        ("1.0.0-beta.2", "major", None, "1.0.0"),
        ("1.0.0", "prerelease", None, "1.0.1-0"),
        ("1.0.0", "v3.1.4", None, "3.1.4"),
    ],
)
def test_resolver_bump(current, increment, channel, expected):
    decision = VersionResolver(DummyLogger()).bump(current, increment, channel)

    assert decision.next_version == expected
    assert decision.previous_version == current
    assert decision.is_pre_release is bool(SemVer.parse(expected).prerelease)


def test_bump_always_increases_for_keywords():
    for current in ("0.0.0", "1.2.3", "1.2.3-rc.1", "2.0.0-beta.0"):
        for increment in ("patch", "minor", "major", "prepatch", "preminor", "premajor", "prerelease"):
            for channel in (None, "beta", "alpha"):
                decision = VersionResolver(DummyLogger()).bump(current, increment, channel)
                assert SemVer.parse(decision.next_version) > SemVer.parse(current), (current, increment, channel)


def test_switching_to_an_earlier_channel_still_increases():
    decision = VersionResolver(DummyLogger()).bump("1.2.0-beta.3", "prerelease", "alpha")

    assert SemVer.parse(decision.next_version) > SemVer.parse("1.2.0-beta.3")
    assert decision.pre_release_channel == "alpha"


def test_unknown_increment_fails():
    with pytest.raises(InvalidVersionError):
        VersionResolver(DummyLogger()).bump("1.0.0", "gigantic")


def test_empty_increment_leaves_version_unresolved():
    resolver = VersionResolver(DummyLogger())

    decision = resolver.bump("1.0.0", None)

    assert decision.next_version is None
    with pytest.raises(InvalidVersionError):
        resolver.validate()


def test_validate_is_noop_once_resolved():
    resolver = VersionResolver(DummyLogger())
    resolver.bump("1.0.0", "patch")

    resolver.validate()

    assert resolver.version == "1.0.1"


def test_missing_baseline_starts_from_zero():
    assert VersionResolver(DummyLogger()).bump(None, "minor").next_version == "0.1.0"


def test_recommendation_uses_callback():
    asked = []

    def recommend(value):
        asked.append(value)
        return "minor"

    resolver = VersionResolver(DummyLogger(), recommend=recommend)

    assert resolver.is_recommendation("conventional:angular") is True
    assert resolver.is_recommendation("minor") is False
    assert resolver.bump("1.0.0", "conventional:angular").next_version == "1.1.0"
    assert asked == ["conventional:angular"]


def test_set_version_accepts_literal_and_rejects_garbage():
    resolver = VersionResolver(DummyLogger())

    assert resolver.set_version("2.0.0-rc.1").is_pre_release is True
    with pytest.raises(InvalidVersionError):
        resolver.set_version("two")


def test_preview_applies_channel():
    resolver = VersionResolver(DummyLogger())

    assert resolver.preview("1.0.0", "minor", "beta") == "1.1.0-beta.0"
    assert resolver.preview("1.0.0", "patch") == "1.0.1"


def test_show_warnings_reports_mismatched_baselines():
    logger = DummyLogger()
    resolver = VersionResolver(logger)

    resolver.show_warnings("1.2.0", "1.1.0", use_tag=True)
    resolver.show_warnings("release-7", "1.1.0", use_tag=False)
    resolver.show_warnings("1.1.0", "1.1.0", use_tag=True)

    assert len(logger.warnings) == 2
    assert "doesn't match" in logger.warnings[0]
    assert "not a valid version" in logger.warnings[1]
