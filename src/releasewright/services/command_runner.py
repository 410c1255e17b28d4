"""Subprocess execution service for releasewright."""

import shlex
import subprocess
from string import Template
from typing import Any, Dict, List, Optional, Union

from releasewright.errors import CommandError


class CommandRunner:
    """Runs templated commands with consistent error handling and dry-run support."""

    def __init__(
        self,
        logger,
        context=None,
        dry_run: bool = False,
        default_timeout: Optional[float] = None,
        subprocess_module=subprocess,
    ):
        self.logger = logger
        self.context = context
        self.dry_run = dry_run
        self.default_timeout = default_timeout
        self.subprocess = subprocess_module

    def render(self, template: str, variables: Optional[Dict[str, Any]] = None) -> str:
        values: Dict[str, Any] = self.context.template_vars() if self.context is not None else {}
        values.update(variables or {})
        return Template(template).safe_substitute({key: str(value) for key, value in values.items()})

    def run(
        self,
        command: Union[str, List[str]],
        read_only: bool = False,
        variables: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Run ``command`` and return its stripped stdout.

        String commands go through the shell so hooks may use pipes and ``&&``.
        Commands that are not ``read_only`` are only logged in dry-run mode.
        """
        if isinstance(command, str):
            args: Union[str, List[str]] = self.render(command, variables)
            cmd_str = args
            use_shell = True
        else:
            args = [self.render(part, variables) for part in command]
            cmd_str = shlex.join(args)
            use_shell = False

        if self.dry_run and not read_only:
            self.logger.info("[dry-run] $ %s", cmd_str)
            return ""

        self.logger.debug("$ %s", cmd_str)
        effective_timeout = timeout if timeout is not None else self.default_timeout

        try:
            result = self.subprocess.run(
                args,
                shell=use_shell,
                text=True,
                capture_output=True,
                timeout=effective_timeout,
            )
        except FileNotFoundError as exc:
            raise CommandError(
                f"Required command not found: {cmd_str}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise CommandError(f"Command timed out after {effective_timeout}s: {cmd_str}") from exc

        stdout = (result.stdout or "").strip()
        if stdout:
            self.logger.debug("Command output: %s", stdout)

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            message = f"Command failed ({result.returncode}): {cmd_str}"
            details = stderr or stdout
            if details:
                message = f"{message}\n{details}"
            raise CommandError(message, returncode=result.returncode, stderr=stderr)

        return stdout
