"""
Orchestration core: branch resolution, enumeration, transfer,
provisioning and sync.
"""

from .branch_resolver import BranchResolver
from .tree_enumerator import TreeEnumerator
from .transfer import TransferEngine, CommitMessagePolicy, add_message, upload_message
from .provisioner import RepositoryProvisioner
from .sync import SyncOrchestrator
from .sources import (
    files_from_mapping,
    files_from_directory,
    files_from_archive,
    parse_repository_url,
)

__all__ = [
    "BranchResolver",
    "TreeEnumerator",
    "TransferEngine",
    "CommitMessagePolicy",
    "add_message",
    "upload_message",
    "RepositoryProvisioner",
    "SyncOrchestrator",
    "files_from_mapping",
    "files_from_directory",
    "files_from_archive",
    "parse_repository_url",
]
