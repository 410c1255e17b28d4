import logging
import os
import time
from typing import Callable, List, Optional, Tuple

from rich.console import Console
from rich.markup import escape

from . import __version__
from .constants import PRE_RELEASE_INCREMENTS, RELEASE_INCREMENTS
from .errors import InvalidVersionError, ReleaseError
from .models import ReleaseContext, ReleaseResult, ReleaseTarget, StepOutcome, TargetResult
from .services.command_runner import CommandRunner
from .services.filesystem import FileSystemService
from .services.git import GitService
from .services.github import RemoteReleaseClient
from .services.interrupt import InterruptGuard
from .services.metrics import MetricsBeacon
from .services.prompt import Prompter
from .services.registry import RegistryPublishClient
from .services.spinner import Spinner
from .services.validation import ValidationService
from .services.version import SemVer, VersionResolver

console = Console()
logger = logging.getLogger("releasewright")

MAX_PREVIEW_LINES = 10


def truncate_lines(text: str, max_lines: int = MAX_PREVIEW_LINES) -> str:
    lines = text.splitlines()
    if len(lines) <= max_lines:
        return text
    return "\n".join(lines[:max_lines] + [f"...and {len(lines) - max_lines} more"])


class ReleasePipeline:
    """Drives one release from version resolution to publishing.

    Collaborators can be injected; anything left out is built from the
    context. Clients that need the remote URL are created after the
    repository was inspected.
    """

    DRY_RUN_STEPS = frozenset({"commit", "tag", "push", "release", "upload_assets"})

    def __init__(
        self,
        context: ReleaseContext,
        runner=None,
        filesystem=None,
        git=None,
        dist_git=None,
        github=None,
        dist_github=None,
        registry=None,
        dist_registry=None,
        prompter=None,
        spinner=None,
        metrics=None,
        validation=None,
        guard_factory=InterruptGuard,
        environ=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.context = context
        self.dist_context = context.for_target(context.section("dist"))
        self.environ = environ
        self.clock = clock
        self.guard_factory = guard_factory

        self.runner = runner or CommandRunner(logger=logger, context=context, dry_run=context.dry_run)
        self.filesystem = filesystem or FileSystemService(logger=logger, console=console, dry_run=context.dry_run)
        self.git = git or GitService(self.runner, logger, context.section("git"))
        self.dist_git = dist_git or GitService(self.runner, logger, self.dist_context.section("git"))
        self.github = github
        self.dist_github = dist_github
        self.registry = registry or RegistryPublishClient(
            self.runner,
            logger,
            context.section("npm"),
            interactive=context.interactive,
            dry_run=context.dry_run,
        )
        self.dist_registry = dist_registry or RegistryPublishClient(
            self.runner,
            logger,
            self.dist_context.section("npm"),
            interactive=context.interactive,
            dry_run=context.dry_run,
        )
        self.prompter = prompter or Prompter(logger)
        self.spinner = spinner or Spinner(
            console,
            interactive=context.interactive,
            verbose=context.verbose,
            dry_run=context.dry_run,
        )
        self.metrics = metrics or MetricsBeacon(logger, context.section("metrics"), version=__version__)
        self.validation = validation or ValidationService(logger)
        self.resolver = VersionResolver(logger, recommend=self.git.recommended_increment)

        self.latest_version: Optional[str] = None
        self.started_at: Optional[float] = None
        self._guard: Optional[InterruptGuard] = None

    @property
    def has_dist(self) -> bool:
        return bool(self.context.get("dist", "repo"))

    def _initialize(self):
        self.validation.validate_repository(self.git)
        self.validation.validate_stage_dir(self.context.get("dist", "stage_dir"))

        if self.github is None:
            self.github = RemoteReleaseClient(
                logger,
                self.context.section("github"),
                remote_url=self.git.remote_url,
                dry_run=self.context.dry_run,
                environ=self.environ,
            )
        if self.dist_github is None:
            self.dist_github = RemoteReleaseClient(
                logger,
                self.dist_context.section("github"),
                remote_url=self.context.get("dist", "repo") or self.git.remote_url,
                dry_run=self.context.dry_run,
                environ=self.environ,
            )

        clients = [self.github] + ([self.dist_github] if self.has_dist else [])
        self.validation.validate_clients(clients)

    def _run_hook(self, command: Optional[str]):
        return self.spinner.show(command, lambda: self.runner.run(command), command)

    def _changelog(self) -> Optional[str]:
        changelog = self.git.changelog(self.context.get("scripts", "changelog"))
        if changelog:
            console.print(f"Changelog:\n{escape(truncate_lines(changelog))}\n")
        else:
            logger.warning("Empty changelog")
        self.context.set_runtime(changelog=changelog)
        return changelog

    def _resolve_baseline(self) -> Optional[str]:
        latest_tag = self.git.latest_tag
        registry_version = self.context.get("npm", "version")
        use_tag = bool(self.git.is_root_dir and self.resolver.is_valid(latest_tag))
        self.resolver.show_warnings(latest_tag, registry_version, use_tag)
        self.context.set_runtime(latest_tag=latest_tag)
        return latest_tag if use_tag else registry_version

    def _increment_choices(self) -> List[Tuple[str, Optional[str]]]:
        channel = self.context.options.get("pre_release_id")
        baseline = SemVer.coerce(self.latest_version)
        increments = list(RELEASE_INCREMENTS)
        if baseline is not None and baseline.prerelease:
            increments.append("prerelease")
        increments.extend(inc for inc in PRE_RELEASE_INCREMENTS if inc != "prerelease")

        choices: List[Tuple[str, Optional[str]]] = [
            (f"{increment} ({self.resolver.preview(self.latest_version, increment, channel)})", increment)
            for increment in increments
        ]
        choices.append(("Other, please specify...", None))
        return choices

    def _prompt_version(self):
        channel = self.context.options.get("pre_release_id")

        def set_literal(value):
            try:
                self.resolver.set_version(value)
            except InvalidVersionError as exc:
                logger.warning("%s", exc)

        def choose(increment):
            if increment:
                self.resolver.bump(self.latest_version, increment, channel)
                return
            while not self.resolver.version:
                self.prompter.ask(True, self.context, "version", set_literal)

        while not self.resolver.version:
            self.prompter.ask(True, self.context, "increment_list", choose, choices=self._increment_choices())

    def _prompt_otp(self, context: ReleaseContext) -> Optional[str]:
        return self.prompter.ask(True, context, "otp", lambda otp: otp)

    def _run_step(
        self,
        result: TargetResult,
        context: ReleaseContext,
        name: str,
        enabled,
        task: Callable,
        label: str,
        interactive: bool = True,
    ):
        ran = []

        def tracked():
            ran.append(name)
            return task()

        try:
            if context.interactive and interactive:
                value = self.prompter.ask(enabled, context, name, tracked)
            else:
                value = self.spinner.show(enabled, tracked, label)
        except Exception:
            result.outcomes[name] = StepOutcome.FAILED
            raise

        if not ran:
            result.outcomes[name] = StepOutcome.SKIPPED
        elif context.dry_run and name in self.DRY_RUN_STEPS:
            result.outcomes[name] = StepOutcome.SKIPPED_DRY_RUN
        else:
            result.outcomes[name] = StepOutcome.RAN
        return value

    def _release_step_group(self, target: ReleaseTarget) -> TargetResult:
        """Commit, tag, push, release and publish one repository."""
        context = target.context
        result = TargetResult(label=target.label)
        git_options = context.section("git")
        github_options = context.section("github")
        npm_options = context.section("npm")
        version = context.runtime.get("version")
        is_pre_release = bool(context.runtime.get("is_pre_release"))

        def release():
            result.release = target.github.create_release(
                tag_name=target.git.tag_name,
                release_name=self.runner.render(github_options.get("release_name") or "Release ${version}"),
                body=context.runtime.get("changelog"),
                is_pre_release=is_pre_release,
            )
            return result.release

        def release_and_upload_assets():
            release()
            return target.github.upload_assets()

        def publish():
            result.publish = target.registry.publish(
                version,
                is_pre_release=is_pre_release,
                otp_prompt=lambda: self._prompt_otp(context),
            )
            return result.publish

        self._run_step(result, context, "commit", git_options.get("commit"), target.git.commit, "Git commit")
        if self._guard is not None and result.outcomes["commit"] is not StepOutcome.SKIPPED:
            self._guard.disarm()
        self._run_step(result, context, "tag", git_options.get("tag"), target.git.tag, "Git tag")
        self._run_step(result, context, "push", git_options.get("push"), target.git.push, "Git push")

        if context.interactive:
            self._run_step(
                result, context, "release", github_options.get("release"), release_and_upload_assets, "GitHub release"
            )
        else:
            self._run_step(result, context, "release", github_options.get("release"), release, "GitHub release")
            self._run_step(
                result,
                context,
                "upload_assets",
                github_options.get("release") and github_options.get("assets"),
                target.github.upload_assets,
                "GitHub upload assets",
                interactive=False,
            )

        publishable = npm_options.get("publish") and not npm_options.get("private")
        self._run_step(result, context, "publish", publishable, publish, "npm publish")

        self._run_hook(context.get("scripts", "after_release"))
        return result

    def _prepare_dist(self, version: str):
        dist = self.context.section("dist")
        stage_dir = dist.get("stage_dir")

        self.spinner.show(True, lambda: self.dist_git.clone(dist["repo"], stage_dir), "Clone")
        self.filesystem.copy(dist.get("files") or [], dist.get("base_dir") or ".", stage_dir)
        self.filesystem.pushd(stage_dir)
        try:
            self.filesystem.bump(dist.get("pkg_files"), version)
            self._run_hook(self.dist_context.get("scripts", "before_stage"))
            self.dist_git.stage_dir()
        finally:
            self.filesystem.popd()

    def _release_dist(self) -> TargetResult:
        stage_dir = self.context.get("dist", "stage_dir")
        console.print(f"\n🚀 Let's release the distribution repo for {escape(self.context.name)}\n")

        self.filesystem.pushd(stage_dir)
        try:
            self.dist_git.init()
            self.dist_context.options["git"]["tag"] = self.dist_git.should_tag(self.git)
            changeset = self.dist_git.status()
            if self.context.interactive:
                console.print(f"Changeset:\n{escape(changeset or '')}\n")
            target = ReleaseTarget(
                label="dist",
                context=self.dist_context,
                git=self.dist_git,
                github=self.dist_github,
                registry=self.dist_registry,
            )
            result = self._release_step_group(target)
        finally:
            self.filesystem.popd()

        self.filesystem.cleanup_dir(stage_dir)
        return result

    def _summary(self, result: ReleaseResult):
        for target in result.targets:
            if target.release is not None and target.release.is_released:
                console.print(f"🔗 {target.release.release_url}")
        for target in result.targets:
            if target.publish is not None and target.publish.is_published:
                console.print(f"🔗 {target.publish.package_url}")

        self.metrics.track_event("end")
        elapsed = int(self.clock() - self.started_at) if self.started_at is not None else 0
        console.print(f"🏁 Done (in {elapsed}s.)")

    def execute(self) -> ReleaseResult:
        """Run the release; errors propagate to the caller."""
        self.started_at = self.clock()
        context = self.context
        scripts = context.section("scripts")
        increment = context.options.get("increment")
        channel = context.options.get("pre_release_id")

        self.metrics.track_event("start", context)
        self._initialize()

        self._run_hook(scripts.get("before_start"))

        self.latest_version = self._resolve_baseline()
        decision = self.resolver.bump(self.latest_version, increment, channel)
        context.set_runtime(**decision.as_runtime())

        if decision.next_version:
            suffix = f"{self.latest_version}...{decision.next_version}"
        else:
            suffix = f"currently at {self.latest_version}"
        console.print(f"\n🚀 Let's release {escape(context.name)} ({escape(suffix)})\n")

        late_changelog = self.resolver.is_recommendation(increment)
        if not late_changelog:
            self._changelog()

        if context.interactive and not self.resolver.version:
            self._prompt_version()

        self.resolver.validate()
        context.set_runtime(**self.resolver.decision.as_runtime())
        version = self.resolver.version
        logger.debug("Resolved version %s (from %s)", version, self.latest_version or "<none>")

        pkg_files = context.options.get("pkg_files") or []
        guard = self.guard_factory(
            self.git,
            pkg_files,
            logger,
            enabled=bool(context.interactive and pkg_files and context.get("git", "require_clean_working_dir")),
        )
        result = ReleaseResult(latest_version=self.latest_version, version=version)

        with guard:
            self._guard = guard
            try:
                self._run_hook(scripts.get("before_bump"))
                self.spinner.show(True, lambda: self.filesystem.bump(pkg_files, version), "Bump version")
                self._run_hook(scripts.get("after_bump"))

                if late_changelog:
                    self._changelog()

                self._run_hook(scripts.get("before_stage"))
                self.git.stage(pkg_files)
                self.git.stage_dir()

                changeset = self.git.status()
                if changeset:
                    console.print(f"Changeset:\n{escape(truncate_lines(changeset))}\n")
                else:
                    logger.warning("Empty changeset")

                if self.has_dist:
                    self._prepare_dist(version)

                primary = ReleaseTarget(
                    label="primary",
                    context=context,
                    git=self.git,
                    github=self.github,
                    registry=self.registry,
                )
                result.targets.append(self._release_step_group(primary))
            finally:
                self._guard = None

        if self.has_dist:
            result.targets.append(self._release_dist())

        result.changelog = context.runtime.get("changelog")
        self._summary(result)
        return result

    def run(self) -> int:
        try:
            logger.debug("Starting releasewright %s in %s", __version__, os.getcwd())
            self.execute()
            return 0
        except KeyboardInterrupt:
            console.print("[bold red]Release cancelled by user.[/bold red]")
            logger.info("Release cancelled by user")
            return 130
        except ReleaseError as exc:
            self.metrics.track_exception(exc)
            console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
            logger.debug("Release failed", exc_info=True)
            return 1
        except Exception as exc:
            self.metrics.track_exception(exc)
            console.print(f"[bold red]Unexpected error:[/bold red] {escape(str(exc))}")
            logger.exception("Unexpected error")
            return 1
