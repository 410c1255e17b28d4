"""Filesystem helpers for releasewright."""

import glob
import json
import logging
import os
import re
import shutil
from typing import Iterable, List, Optional

from rich.console import Console

from releasewright.errors import ReleaseError


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console, dry_run: bool = False):
        self.logger = logger
        self.console = console
        self.dry_run = dry_run
        self._dir_stack: List[str] = []

    def pushd(self, path: str):
        self._dir_stack.append(os.getcwd())
        if self.dry_run and not os.path.isdir(path):
            self.logger.info("[dry-run] pushd %s", path)
            return
        os.chdir(path)
        self.logger.debug("pushd %s", os.getcwd())

    def popd(self):
        if not self._dir_stack:
            raise ReleaseError("Directory stack is empty.")
        previous = self._dir_stack.pop()
        os.chdir(previous)
        self.logger.debug("popd %s", previous)

    def copy(self, patterns: Iterable[str], cwd: str, target: str) -> List[str]:
        """Copy files matching ``patterns`` (relative to ``cwd``) into ``target``."""
        copied = []
        for pattern in patterns:
            for match in sorted(glob.glob(os.path.join(cwd, pattern), recursive=True)):
                if not os.path.isfile(match):
                    continue
                relative = os.path.relpath(match, cwd)
                destination = os.path.join(target, relative)
                if self.dry_run:
                    self.logger.info("[dry-run] copy %s -> %s", match, destination)
                    copied.append(relative)
                    continue
                os.makedirs(os.path.dirname(destination) or ".", exist_ok=True)
                shutil.copy2(match, destination)
                copied.append(relative)

        if not copied:
            self.logger.warning("No files matched %s in %s", ", ".join(patterns), cwd)
        return copied

    def bump(self, files: Optional[Iterable[str]], version: str) -> List[str]:
        """Write ``version`` into the ``version`` field of each JSON manifest."""
        bumped = []
        for file_name in files or []:
            if not os.path.isfile(file_name):
                self.logger.warning("Could not bump %s: file not found.", file_name)
                continue

            try:
                with open(file_name, "r", encoding="utf-8") as file_obj:
                    raw = file_obj.read()
                data = json.loads(raw)
            except (OSError, json.JSONDecodeError) as exc:
                raise ReleaseError(f"Could not read manifest file '{file_name}': {exc}") from exc

            if not isinstance(data, dict):
                raise ReleaseError(f"Manifest file '{file_name}' must contain a JSON object.")

            if self.dry_run:
                self.logger.info("[dry-run] bump %s to %s", file_name, version)
                bumped.append(file_name)
                continue

            data["version"] = version
            with open(file_name, "w", encoding="utf-8") as file_obj:
                json.dump(data, file_obj, indent=self._detect_indent(raw), ensure_ascii=False)
                file_obj.write("\n")
            self.logger.debug("Bumped %s to %s", file_name, version)
            bumped.append(file_name)
        return bumped

    def cleanup_dir(self, path: str):
        if self.dry_run:
            self.logger.info("[dry-run] remove %s", path)
            return
        if os.path.exists(path):
            try:
                shutil.rmtree(path)
                self.logger.debug("Removed directory: %s", path)
            except Exception as exc:
                message = f"Warning: Could not remove {path}: {exc}"
                self.console.print(f"[yellow]{message}[/yellow]")
                self.logger.warning(message)

    @staticmethod
    def _detect_indent(raw: str):
        match = re.search(r"^([ \t]+)\S", raw, re.MULTILINE)
        if not match:
            return 2
        indent = match.group(1)
        return "\t" if "\t" in indent else len(indent)
