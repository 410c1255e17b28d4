"""Actionable error catalog for releasewright."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "not_a_repository": {
        "what": "Not a git repository.",
        "next": "Run the release from inside a git working copy.",
    },
    "no_remote_url": {
        "what": "Could not get remote Git url.",
        "next": "Add a remote with `git remote add origin <url>`.",
    },
    "dirty_working_dir": {
        "what": "Working dir must be clean.",
        "next": "Commit or stash your changes, or set `git.require_clean_working_dir: false`.",
    },
    "no_upstream": {
        "what": "No upstream configured for current branch.",
        "next": "Push once with `git push -u`, or set `git.require_upstream: false`.",
    },
    "missing_token": {
        "what": 'Environment variable "{token_ref}" is required for GitHub releases.',
        "next": "Export a personal access token in that variable or disable `github.release`.",
    },
    "invalid_stage_dir": {
        "what": '`dist.stage_dir` ("{stage_dir}") must resolve to a sub directory.',
        "next": "Point `dist.stage_dir` at a directory inside the repository.",
    },
    "invalid_version": {
        "what": "An invalid version was provided ({value}).",
        "next": "Use patch, minor, major, prepatch, preminor, premajor, prerelease or a valid version.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
