"""
RepoPush: push folders, archives and repositories into GitHub.
"""

from .interfaces.api import RepoPush
from .models import (
    BranchRef,
    FileEntry,
    GitHubIdentity,
    ImportMode,
    PushConfig,
    PushRequest,
    RepositoryRef,
    SyncRequest,
)
from .infrastructure.error_handler import RepoPushError

__version__ = "0.1.0"

__all__ = [
    "RepoPush",
    "BranchRef",
    "FileEntry",
    "GitHubIdentity",
    "ImportMode",
    "PushConfig",
    "PushRequest",
    "RepositoryRef",
    "SyncRequest",
    "RepoPushError",
]
