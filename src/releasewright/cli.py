import logging
import os
from typing import Any, Dict

import click
from rich.logging import RichHandler

from . import __version__
from .constants import DEFAULT_CONFIG_FILE
from .core import ReleasePipeline
from .errors import ReleaseError
from .services.config_loader import ConfigLoader


def _set_option(options: Dict[str, Any], path: str, cli_value):
    """Set a dotted option path only when the flag was given on the command line."""
    if cli_value is None:
        return
    keys = path.split(".")
    target = options
    for key in keys[:-1]:
        target = target.setdefault(key, {})
    target[keys[-1]] = cli_value


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.argument("increment", required=False)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--dry-run", is_flag=True, default=None, help="Log mutating commands instead of running them.")
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option(
    "--non-interactive",
    "-n",
    "non_interactive",
    is_flag=True,
    default=None,
    help="Run every enabled step without confirmation prompts.",
)
@click.option("--ci", is_flag=True, default=None, help="Same as --non-interactive.")
@click.option(
    "--pre-release-id",
    required=False,
    help="Pre-release channel, e.g. beta (turns the increment into its pre* variant).",
)
@click.option(
    "--github-release/--no-github-release",
    default=None,
    help="Create a GitHub release for the new tag.",
)
@click.option(
    "--npm-publish/--no-npm-publish",
    default=None,
    help="Publish the package to npm.",
)
@click.option("--npm-tag", required=False, help="npm dist-tag to publish under.")
@click.option("--otp", required=False, help="One-time password for npm publish.")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option("--disable-metrics", is_flag=True, default=None, help="Never send usage metrics.")
@click.version_option(__version__, "--version", prog_name="releasewright")
def main(
    increment,
    config,
    dry_run,
    verbose,
    non_interactive,
    ci,
    pre_release_id,
    github_release,
    npm_publish,
    npm_tag,
    otp,
    log_file,
    disable_metrics,
):
    """Release a git repository: bump, commit, tag, push, GitHub release and npm publish."""
    logger = logging.getLogger("releasewright")

    config_loader = ConfigLoader()
    resolved_config = config
    if resolved_config is None:
        default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
        if os.path.exists(default_config_path):
            resolved_config = default_config_path

    cli_options: Dict[str, Any] = {}
    _set_option(cli_options, "increment", increment)
    _set_option(cli_options, "dry_run", dry_run)
    _set_option(cli_options, "verbose", verbose)
    _set_option(cli_options, "interactive", False if (non_interactive or ci) else None)
    _set_option(cli_options, "pre_release_id", pre_release_id)
    _set_option(cli_options, "github.release", github_release)
    _set_option(cli_options, "npm.publish", npm_publish)
    _set_option(cli_options, "npm.tag", npm_tag)
    _set_option(cli_options, "npm.otp", otp)
    _set_option(cli_options, "metrics.enabled", False if disable_metrics else None)

    try:
        file_options = config_loader.load(resolved_config)
        context = config_loader.build_context(file_options, cli_options)
    except ReleaseError as exc:
        raise click.ClickException(str(exc)) from exc

    if context.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if context.verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    raise SystemExit(ReleasePipeline(context).run())


if __name__ == "__main__":
    main()
