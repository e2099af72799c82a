"""
Decides whether a destination repository is created, reused, or
destroyed and recreated, then makes the target branch available.
"""

from typing import Optional

from ..infrastructure.error_handler import (
    InsufficientScopeError,
    RepoPushError,
    UpstreamUnavailableError,
)
from ..infrastructure.logger import logger
from ..infrastructure.retry_manager import RetryManager
from ..models import ImportMode, ProvisionResult, PushConfig, RepositoryInfo, RepositoryRef
from ..services import GitHubContentStore
from .branch_resolver import BranchResolver


class RepositoryProvisioner:
    """
    State machine over import mode and repository existence.

    ==========  ======  ==============================================
    Mode        Exists  Action
    ==========  ======  ==============================================
    add         no      create, ensure branch unless it is the default
    add         yes     reuse, ensure branch
    overwrite   no      create, ensure branch unless it is the default
    overwrite   yes     delete, await absence, create, ensure branch
    ==========  ======  ==============================================
    """

    def __init__(
        self,
        store: GitHubContentStore,
        branch_resolver: Optional[BranchResolver] = None,
        config: Optional[PushConfig] = None,
        settle_retry: Optional[RetryManager] = None,
    ):
        self.store = store
        self.branch_resolver = branch_resolver or BranchResolver(store)
        self.config = config or store.config
        self.settle_retry = settle_retry or RetryManager(
            max_retries=self.config.deletion_settle_attempts,
            base_delay=self.config.deletion_settle_delay,
            max_delay=self.config.deletion_settle_delay * 4,
            jitter=False,
        )

    async def provision(
        self,
        owner: str,
        name: str,
        branch: Optional[str],
        mode: ImportMode,
    ) -> ProvisionResult:
        """
        Make ``owner/name`` exist with ``branch`` ready for writes.

        Args:
            owner: Account that owns the destination
            name: Destination repository name
            branch: Target branch; the repository default when None
            mode: ADD reuses, OVERWRITE deletes and recreates

        Returns:
            ProvisionResult describing what was done

        Raises:
            InsufficientScopeError: If overwrite deletion is not permitted
            BranchError: If the target branch cannot be created
            RepoPushError: For any other remote failure
        """
        ref = RepositoryRef(owner=owner, name=name)
        logger.info(f"Processing repository: {ref.full_name}, mode: {mode.value}, branch: {branch}")

        existing = await self.store.get_repository(ref)
        deleted = False

        if existing.exists and mode is ImportMode.ADD:
            logger.info(f"Add mode: using existing repository {ref.full_name}")
            target = branch or existing.default_branch or self.config.default_branch
            branch_created = await self.branch_resolver.ensure_branch(ref, target)
            return ProvisionResult(
                repository=existing,
                branch=ref.branch(target),
                branch_created=branch_created,
            )

        if existing.exists:
            await self._delete(ref)
            deleted = True

        repository = await self._create(name)
        target = branch or repository.default_branch or self.config.default_branch
        branch_created = False
        if target != repository.default_branch:
            branch_created = await self.branch_resolver.ensure_branch(repository.ref, target)

        return ProvisionResult(
            repository=repository,
            branch=repository.ref.branch(target),
            created=True,
            deleted=deleted,
            branch_created=branch_created,
        )

    async def _delete(self, ref: RepositoryRef) -> None:
        logger.info(f"Overwrite mode: attempting to delete {ref.full_name}...")
        try:
            await self.store.delete_repository(ref)
        except InsufficientScopeError as e:
            logger.error(f"Permission denied to delete repository: {e}")
            raise InsufficientScopeError(
                "Cannot overwrite: missing permissions. Reconnect to grant the "
                "\"delete_repo\" permission, or delete the repository on GitHub first.",
                e,
                status_code=e.status_code,
            )
        logger.info("Repository deleted successfully")

        # Deletion is eventually consistent; wait until the name is free
        async def _gone() -> bool:
            return not (await self.store.get_repository(ref)).exists

        if not await self.settle_retry.poll(_gone):
            raise UpstreamUnavailableError(
                f"Repository {ref.full_name} still exists after deletion"
            )

    async def _create(self, name: str) -> RepositoryInfo:
        logger.info(f"Creating new repository: {name}")
        try:
            return await self.store.create_repository(name)
        except RepoPushError as e:
            logger.error(f"Failed to create repository: {e}")
            raise


__all__ = ["RepositoryProvisioner"]
