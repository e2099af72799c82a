"""
Configuration models for RepoPush.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PushConfig:
    """
    Unified configuration for pushes and syncs.

    Ceilings keep the total duration of one request under the timeout
    imposed by whatever hosts the call.
    """

    # API settings
    api_url: str = "https://api.github.com"
    user_agent: str = "RepoPush"
    timeout: float = 30.0

    # Branch conventions
    default_branch: str = "main"
    fallback_branch: str = "master"

    # Size ceilings
    max_import_files: int = 500
    max_sync_files: int = 100
    max_batch_files: int = 100

    # Concurrency: lookups and source reads run in parallel; Contents API
    # writes to one branch must not overlap
    max_concurrent_transfers: int = 5
    max_concurrent_writes: int = 1

    # Repository provisioning
    private_repositories: bool = False
    deletion_settle_attempts: int = 5
    deletion_settle_delay: float = 1.0

    def __post_init__(self) -> None:
        for name in ("max_import_files", "max_sync_files", "max_batch_files",
                     "max_concurrent_transfers", "max_concurrent_writes"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.deletion_settle_attempts < 0:
            raise ValueError("deletion_settle_attempts cannot be negative")


__all__ = [
    "PushConfig",
]
