import pytest

from releasewright.errors import (
    CommandError,
    GitCleanWorkingDirError,
    GitRemoteUrlError,
    GitRepoError,
    GitUpstreamError,
)
from releasewright.models import ReleaseContext
from releasewright.services.command_runner import CommandRunner
from releasewright.services.git import GitService


class DummyLogger:
    def __init__(self):
        self.warnings = []

    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, message, *args, **_kwargs):
        self.warnings.append(message % args if args else message)


class FakeRunner:
    """Answers read commands from a table; records every call."""

    def __init__(self, answers=None, context=None):
        self.answers = answers or {}
        self.calls = []
        self.real = CommandRunner(logger=DummyLogger(), context=context or ReleaseContext({}))

    def render(self, template, variables=None):
        return self.real.render(template, variables)

    def run(self, command, read_only=False, variables=None, **_kwargs):
        key = command if isinstance(command, str) else " ".join(command)
        self.calls.append((key, read_only, variables))
        answer = self.answers.get(key, "")
        if isinstance(answer, Exception):
            raise answer
        return answer


GIT_DEFAULTS = {
    "require_clean_working_dir": True,
    "require_upstream": True,
    "commit_message": "Release ${version}",
    "tag_name": "v${version}",
    "tag_annotation": "Release ${version}",
    "push_repo": "origin",
}


def build_git(answers=None, runtime=None, **options):
    settings = dict(GIT_DEFAULTS)
    settings.update(options)
    runner = FakeRunner(answers, context=ReleaseContext({}, runtime=runtime or {"version": "1.0.1"}))
    return GitService(runner, DummyLogger(), settings), runner


def test_init_requires_a_repository():
    git, _runner = build_git({"git rev-parse --git-dir": CommandError("not a git repository")})

    with pytest.raises(GitRepoError):
        git.init()


def test_init_reads_remote_and_latest_tag():
    git, _runner = build_git(
        {
            "git rev-parse --git-dir": ".git",
            "git config --get remote.origin.url": "git@github.com:owner/repo.git",
            "git describe --tags --abbrev=0": "v1.0.0",
        }
    )

    git.init()

    assert git.remote_url == "git@github.com:owner/repo.git"
    assert git.latest_tag == "v1.0.0"


def test_push_repo_url_is_used_as_remote():
    git, _runner = build_git(push_repo="https://github.com/owner/repo.git")

    assert git.get_remote_url() == "https://github.com/owner/repo.git"


def test_validate_checks_in_order():
    git, _runner = build_git()
    with pytest.raises(GitRemoteUrlError):
        git.validate()

    git, _runner = build_git({"git diff --quiet HEAD": CommandError("dirty", returncode=1)})
    git.remote_url = "origin-url"
    with pytest.raises(GitCleanWorkingDirError):
        git.validate()

    git, _runner = build_git(
        {"git rev-parse --abbrev-ref --symbolic-full-name @{u}": CommandError("no upstream", returncode=128)}
    )
    git.remote_url = "origin-url"
    with pytest.raises(GitUpstreamError):
        git.validate()


def test_validate_respects_disabled_checks():
    git, _runner = build_git(
        {
            "git diff --quiet HEAD": CommandError("dirty", returncode=1),
            "git rev-parse --abbrev-ref --symbolic-full-name @{u}": CommandError("no upstream"),
        },
        require_clean_working_dir=False,
        require_upstream=False,
    )
    git.remote_url = "origin-url"

    git.validate()


def test_commit_tag_push_commands():
    git, runner = build_git(commit_args="--no-verify", push_args="--atomic")

    git.commit()
    git.tag()
    git.push()

    commands = [call[0] for call in runner.calls]
    assert commands == [
        "git commit --message=Release 1.0.1 --no-verify",
        "git tag --annotate --message=Release 1.0.1 v1.0.1",
        "git push --follow-tags --atomic origin",
    ]
    assert git.tag_name == "v1.0.1"


def test_stage_and_stage_dir():
    git, runner = build_git()

    git.stage(["package.json", None, ""])
    git.stage([])
    git.stage_dir()
    git.options["add_untracked_files"] = True
    git.stage_dir("dist")

    assert [call[0] for call in runner.calls] == [
        "git add package.json",
        "git add . --update",
        "git add dist --all",
    ]


def test_reset_checks_out_files_from_head():
    git, runner = build_git()

    git.reset(["package.json"])

    assert runner.calls[0][0] == "git checkout HEAD -- package.json"


def test_changelog_without_tag_drops_range():
    git, runner = build_git()

    git.changelog('git log --pretty=format:"* %s (%h)" ${latest_tag}...HEAD')

    command, read_only, _variables = runner.calls[0]
    assert command == 'git log --pretty=format:"* %s (%h)" HEAD'
    assert read_only is True


def test_changelog_failure_is_a_warning():
    command = "git log ${latest_tag}...HEAD"
    git, _runner = build_git({command: CommandError("bad revision")})
    git.latest_tag = "1.0.0"

    assert git.changelog(command) is None
    assert "Could not generate changelog" in git.logger.warnings[0]


def test_should_tag_skips_when_other_client_tags_same_remote():
    primary, _runner = build_git(tag=True)
    dist, _runner = build_git(tag=True)
    primary.remote_url = dist.remote_url = "git@github.com:owner/repo.git"

    assert dist.should_tag(primary) is False

    dist.remote_url = "git@github.com:owner/repo-dist.git"
    assert dist.should_tag(primary) is True

    dist.options["tag"] = False
    assert dist.should_tag(primary) is False


@pytest.mark.parametrize(
    "log, expected",
    [
        ("fix: a bug\n\n==END==\nchore: deps\n\n==END==", "patch"),
        ("feat(cli): new flag\n\n==END==\nfix: typo\n\n==END==", "minor"),
        ("feat!: drop node 8\n\n==END==", "major"),
        ("refactor: core\nBREAKING CHANGE: renamed option\n==END==", "major"),
    ],
)
def test_recommended_increment_follows_conventional_commits(log, expected):
    git, _runner = build_git()
    git.runner.answers = {"git log --pretty=format:%s%n%b%n==END== HEAD": log}

    assert git.recommended_increment() == expected
