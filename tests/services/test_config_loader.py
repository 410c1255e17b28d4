import json

import pytest

from releasewright.errors import ReleaseError
from releasewright.services.config_loader import ConfigLoader


def test_config_loader_loads_yaml_mapping(tmp_path):
    config_file = tmp_path / ".releasewright.yml"
    config_file.write_text(
        "increment: minor\ngit:\n  push: false\ngithub:\n  release: true\n",
        encoding="utf-8",
    )

    loaded = ConfigLoader().load(str(config_file))

    assert loaded["increment"] == "minor"
    assert loaded["git"] == {"push": False}
    assert loaded["github"] == {"release": True}


def test_config_loader_rejects_unknown_keys(tmp_path):
    config_file = tmp_path / ".releasewright.yml"
    config_file.write_text("unknown_key: true\n", encoding="utf-8")

    with pytest.raises(ReleaseError, match="Unknown configuration keys"):
        ConfigLoader().load(str(config_file))


def test_config_loader_requires_mapping_sections(tmp_path):
    config_file = tmp_path / ".releasewright.yml"
    config_file.write_text("git: yes\n", encoding="utf-8")

    with pytest.raises(ReleaseError, match="must be a mapping"):
        ConfigLoader().load(str(config_file))


def test_config_loader_reports_missing_file(tmp_path):
    with pytest.raises(ReleaseError, match="Config file not found"):
        ConfigLoader().load(str(tmp_path / "missing.yml"))


def test_build_context_layers_manifest_file_and_cli(tmp_path):
    (tmp_path / "package.json").write_text(
        json.dumps({"name": "my-pkg", "version": "1.4.0", "private": True}),
        encoding="utf-8",
    )

    context = ConfigLoader().build_context(
        file_options={"git": {"push": False}, "npm": {"tag": "next"}},
        cli_options={"npm": {"tag": "beta"}, "increment": "minor"},
        environ={},
        cwd=str(tmp_path),
    )

    assert context.name == "my-pkg"
    assert context.get("npm", "name") == "my-pkg"
    assert context.get("npm", "version") == "1.4.0"
    assert context.get("npm", "private") is True
    assert context.get("npm", "tag") == "beta"
    assert context.get("git", "push") is False
    assert context.get("git", "commit") is True
    assert context.options["increment"] == "minor"
    assert context.interactive is True


def test_build_context_defaults_name_to_directory(tmp_path):
    context = ConfigLoader().build_context(environ={}, cwd=str(tmp_path))

    assert context.name == tmp_path.name
    assert context.get("npm", "name") == tmp_path.name


def test_build_context_ci_forces_non_interactive_patch(tmp_path):
    context = ConfigLoader().build_context(environ={"CI": "true"}, cwd=str(tmp_path))

    assert context.interactive is False
    assert context.options["increment"] == "patch"


def test_build_context_keeps_channel_without_increment(tmp_path):
    context = ConfigLoader().build_context(
        cli_options={"interactive": False, "pre_release_id": "beta"},
        environ={},
        cwd=str(tmp_path),
    )

    assert context.options["increment"] is None
    assert context.options["pre_release_id"] == "beta"
