"""
GitHub domain models for RepoPush.

This module contains strongly typed data classes representing GitHub
repositories, refs, tree entries and file revisions.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Optional

from ..infrastructure.error_handler import InvalidInputError


@dataclass(frozen=True)
class GitHubIdentity:
    """Opaque authenticated identity handed in by the auth layer."""

    access_token: str
    account_name: str

    def __post_init__(self) -> None:
        if not self.access_token or not self.account_name:
            raise InvalidInputError("Access token and account name are required")

    def __repr__(self) -> str:
        return f"GitHubIdentity(account_name={self.account_name!r})"


@dataclass(frozen=True)
class RepositoryRef:
    """Immutable owner/name pair identifying a repository."""

    owner: str
    name: str

    def __post_init__(self) -> None:
        if not self.owner or not self.name:
            raise InvalidInputError("Repository owner and name are required")

    @property
    def full_name(self) -> str:
        return f'{self.owner}/{self.name}'

    def branch(self, name: str) -> BranchRef:
        return BranchRef(repository=self, name=name)


@dataclass(frozen=True)
class BranchRef:
    """A named branch within a repository."""

    repository: RepositoryRef
    name: str
    base_sha: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidInputError("Branch name is required")

    @property
    def display_name(self) -> str:
        return f'{self.repository.full_name}:{self.name}'


@dataclass(frozen=True)
class RepositoryInfo:
    """Result of a repository existence check."""

    ref: RepositoryRef
    exists: bool
    default_branch: Optional[str] = None
    html_url: Optional[str] = None
    private: bool = False


@dataclass(frozen=True)
class TreeEntry:
    """Represents an entry of a recursive git tree listing."""

    path: str
    type: str  # 'blob', 'tree', 'commit'
    sha: Optional[str] = None
    size: Optional[int] = None

    @property
    def is_blob(self) -> bool:
        return self.type == 'blob'


@dataclass(frozen=True)
class RemoteFileHandle:
    """Current revision of a path on a branch; required to update it."""

    path: str
    revision_token: str


@dataclass(frozen=True)
class FileContent:
    """File payload as returned by the contents API."""

    path: str
    content_b64: str
    revision_token: str
    size: Optional[int] = None

    @property
    def decoded(self) -> bytes:
        # The contents API wraps base64 at 60 columns
        return base64.b64decode("".join(self.content_b64.split()))

    @property
    def handle(self) -> RemoteFileHandle:
        return RemoteFileHandle(path=self.path, revision_token=self.revision_token)


@dataclass(frozen=True)
class FileWriteResult:
    """Outcome of a successful create or update."""

    path: str
    revision_token: Optional[str] = None
    commit_sha: Optional[str] = None


@dataclass(frozen=True)
class ContentEntry:
    """One item of a directory listing."""

    name: str
    path: str
    type: str  # 'file', 'dir', 'symlink', 'submodule'
    sha: Optional[str] = None
    size: Optional[int] = None

    @property
    def is_dir(self) -> bool:
        return self.type == 'dir'


@dataclass(frozen=True)
class PullRequestInfo:
    """A pull request opened between two branches."""

    number: int
    html_url: str
    head: str
    base: str


__all__ = [
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
]
