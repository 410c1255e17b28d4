"""
releasewright - Release automation for git repositories and npm packages
"""

__version__ = "0.1.0"

from .core import ReleasePipeline
from .errors import ReleaseError

__all__ = ["ReleasePipeline", "ReleaseError"]
