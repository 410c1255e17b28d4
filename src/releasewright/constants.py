"""Shared constants and built-in configuration defaults."""

DEFAULT_CONFIG_FILE = ".releasewright.yml"
MANIFEST_FILE = "package.json"

RELEASE_INCREMENTS = ("patch", "minor", "major")
PRE_RELEASE_INCREMENTS = ("prepatch", "preminor", "premajor", "prerelease")
INCREMENTS = RELEASE_INCREMENTS + PRE_RELEASE_INCREMENTS
RECOMMENDATION_PREFIX = "conventional"

NO_RETRY_STATUSES = frozenset({400, 401, 404, 422})
DEFAULT_DIST_TAG = "latest"
NPM_BASE_URL = "https://www.npmjs.com/package/"
GITHUB_HOST = "github.com"
GITHUB_API_URL = "https://api.github.com"
USER_AGENT = "releasewright"
OTP_ERROR_PATTERN = r"one-time pass"
NPM_NO_RETRY_PATTERN = r"(?:\bE|\s)(?:400|401|403|404|422)\b|EPUBLISHCONFLICT|Required command not found"
MAX_OTP_PROMPTS = 5
MAX_UPLOAD_WORKERS = 4

METRICS_URL = "https://www.google-analytics.com/collect"
METRICS_TIMEOUT = 0.3

DEFAULT_OPTIONS = {
    "name": None,
    "increment": None,
    "pre_release_id": None,
    "interactive": True,
    "verbose": False,
    "dry_run": False,
    "pkg_files": ["package.json"],
    "scripts": {
        "before_start": None,
        "before_bump": None,
        "after_bump": None,
        "before_stage": None,
        "after_release": None,
        "changelog": 'git log --pretty=format:"* %s (%h)" ${latest_tag}...HEAD',
    },
    "git": {
        "require_clean_working_dir": True,
        "require_upstream": True,
        "add_untracked_files": False,
        "commit": True,
        "commit_message": "Release ${version}",
        "commit_args": "",
        "tag": True,
        "tag_name": "${version}",
        "tag_annotation": "Release ${version}",
        "push": True,
        "push_args": "",
        "push_repo": "origin",
    },
    "github": {
        "release": False,
        "release_name": "Release ${version}",
        "draft": False,
        "token_ref": "GITHUB_TOKEN",
        "assets": None,
        "host": None,
        "timeout": 30.0,
        "proxy": None,
        "retry_count": 2,
        "retry_backoff_seconds": 1.0,
    },
    "npm": {
        "name": None,
        "publish": False,
        "publish_path": ".",
        "tag": None,
        "access": None,
        "otp": None,
        "private": False,
        "version": None,
        "retry_count": 2,
        "retry_backoff_seconds": 1.0,
    },
    "dist": {
        "repo": None,
        "stage_dir": ".stage",
        "base_dir": "dist",
        "files": ["**/*"],
        "pkg_files": None,
        "scripts": {
            "before_stage": None,
            "after_release": None,
        },
        "git": {},
        "github": {},
        "npm": {
            "publish": False,
        },
    },
    "metrics": {
        "enabled": False,
        "url": METRICS_URL,
        "tracking_id": None,
    },
}
