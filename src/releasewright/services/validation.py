"""Release preconditions checked before anything is modified."""

import os
from typing import Iterable, Optional

from releasewright.errors import DistRepoStageDirError


class ValidationService:
    """Checks the repository, the dist stage dir and the release clients."""

    def __init__(self, logger):
        self.logger = logger

    def is_sub_dir(self, path: str, cwd: Optional[str] = None) -> bool:
        base = os.path.realpath(cwd or os.getcwd())
        target = os.path.realpath(os.path.join(base, path))
        try:
            relative = os.path.relpath(target, base)
        except ValueError:
            return False
        return relative != "." and not relative.startswith("..") and not os.path.isabs(relative)

    def validate_stage_dir(self, stage_dir: Optional[str], cwd: Optional[str] = None):
        if not stage_dir:
            return
        if not self.is_sub_dir(stage_dir, cwd):
            raise DistRepoStageDirError(stage_dir)

    def validate_repository(self, git):
        git.init()
        git.validate()
        self.logger.debug(
            "Repository ok (remote: %s, latest tag: %s, root: %s)",
            git.remote_url,
            git.latest_tag or "<none>",
            git.is_root_dir,
        )

    def validate_clients(self, clients: Iterable):
        for client in clients:
            client.validate()
