"""Configuration loading and layering for releasewright."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from releasewright.constants import DEFAULT_OPTIONS, MANIFEST_FILE
from releasewright.errors import ReleaseError
from releasewright.models import ReleaseContext, deep_merge


class ConfigLoader:
    """Loads YAML configuration files and layers them over the built-in defaults."""

    SUPPORTED_KEYS = set(DEFAULT_OPTIONS)

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise ReleaseError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ReleaseError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ReleaseError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise ReleaseError(f"Unknown configuration keys: {unknown_list}")

        for key, value in parsed.items():
            if isinstance(DEFAULT_OPTIONS[key], dict) and value is not None and not isinstance(value, dict):
                raise ReleaseError(f"Configuration key '{key}' must be a mapping.")

        return parsed

    def read_manifest(self, manifest_path: str = MANIFEST_FILE) -> Dict[str, Any]:
        """Return the options a ``package.json`` contributes (name, version, private)."""
        path = Path(manifest_path)
        if not path.is_file():
            return {}

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ReleaseError(f"Could not read {manifest_path}: {exc}") from exc

        if not isinstance(data, dict):
            return {}

        layer: Dict[str, Any] = {"npm": {}}
        if data.get("name"):
            layer["name"] = data["name"]
            layer["npm"]["name"] = data["name"]
        if data.get("version"):
            layer["npm"]["version"] = data["version"]
        if "private" in data:
            layer["npm"]["private"] = bool(data["private"])
        return layer

    def build_context(
        self,
        file_options: Optional[Dict[str, Any]] = None,
        cli_options: Optional[Dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
    ) -> ReleaseContext:
        environ = os.environ if environ is None else environ
        cwd = cwd or os.getcwd()

        options = deep_merge(DEFAULT_OPTIONS, self.read_manifest(os.path.join(cwd, MANIFEST_FILE)))
        options = deep_merge(options, file_options)
        options = deep_merge(options, cli_options)

        if not options.get("name"):
            options["name"] = os.path.basename(os.path.abspath(cwd))
        if not options["npm"].get("name"):
            options["npm"]["name"] = options["name"]

        if environ.get("CI"):
            options["interactive"] = False

        if not options["interactive"] and not options.get("increment") and not options.get("pre_release_id"):
            options["increment"] = "patch"

        return ReleaseContext(options)
