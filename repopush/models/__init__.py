"""
Core data models API surface for RepoPush.

This file re-exports model classes from domain-specific modules so that
imports like `from repopush.models import X` work.
"""

from .github import (
    GitHubIdentity,
    RepositoryRef,
    BranchRef,
    RepositoryInfo,
    TreeEntry,
    RemoteFileHandle,
    FileContent,
    FileWriteResult,
    ContentEntry,
    PullRequestInfo,
)
from .transfer import (
    ImportMode,
    ContentEncoding,
    validate_path,
    FileEntry,
    TransferOutcome,
    TransferSummary,
    BatchResult,
    EnumerationResult,
    ProvisionResult,
    PushRequest,
    PushResult,
    SyncRequest,
    SyncResult,
    NameAvailability,
)
from .config import PushConfig

__all__ = [
    # GitHub models
    "GitHubIdentity",
    "RepositoryRef",
    "BranchRef",
    "RepositoryInfo",
    "TreeEntry",
    "RemoteFileHandle",
    "FileContent",
    "FileWriteResult",
    "ContentEntry",
    "PullRequestInfo",
    # Transfer models
    "ImportMode",
    "ContentEncoding",
    "validate_path",
    "FileEntry",
    "TransferOutcome",
    "TransferSummary",
    "BatchResult",
    "EnumerationResult",
    "ProvisionResult",
    "PushRequest",
    "PushResult",
    "SyncRequest",
    "SyncResult",
    "NameAvailability",
    # Config models
    "PushConfig",
]
