"""
Guarantees that a branch exists before anything is written to it.
"""

from ..infrastructure.error_handler import (
    BranchError,
    ConflictError,
    NotFoundError,
    RepoPushError,
)
from ..infrastructure.logger import logger
from ..models import RepositoryRef
from ..services import GitHubContentStore


class BranchResolver:
    """Resolves a branch, creating it from the default branch tip if absent."""

    def __init__(self, store: GitHubContentStore):
        self.store = store

    async def ensure_branch(self, ref: RepositoryRef, name: str) -> bool:
        """
        Make sure ``name`` exists in ``ref``.

        Args:
            ref: Repository to inspect
            name: Branch that must exist

        Returns:
            True if the branch was created by this call, False if it existed

        Raises:
            BranchError: If the branch is absent and could not be created
        """
        try:
            if await self.store.get_branch(ref, name):
                logger.debug(f"Branch {name} already exists in {ref.full_name}")
                return False
        except RepoPushError as e:
            raise BranchError(name, e)

        logger.info(f"Creating new branch: {name} in {ref.full_name}")

        try:
            repository = await self.store.get_repository(ref)
            if not repository.exists or not repository.default_branch:
                raise NotFoundError(f"Repository {ref.full_name} not found")

            sha = await self.store.get_ref_tip(ref, repository.default_branch)
            try:
                await self.store.create_branch(ref, name, sha)
            except ConflictError:
                # 409/422 also covers invalid names and failed ref updates;
                # only a branch that now exists means another creator won
                if not await self.store.get_branch(ref, name):
                    raise
                logger.debug(f"Branch {name} was created concurrently")
                return False
        except RepoPushError as e:
            logger.error(f"Failed to create branch {name}: {e}")
            raise BranchError(name, e)

        logger.info(f"Successfully created branch: {name}")
        return True


__all__ = ["BranchResolver"]
