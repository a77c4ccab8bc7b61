"""
Repository acquisition service for gitpipeline.

Drives git through clone, ref checkout, signature verification, LFS,
clean, submodules and extra-ref fetches. The steps run strictly in that
order and the first failure aborts the whole acquisition.
"""

import logging
from pathlib import Path
from typing import Optional

from ..domain.request import FetchRequest, HEAD, SUBMODULES_ALL, SUBMODULES_NONE
from ..domain.snapshot import RepositorySnapshot
from ..exit_codes import CommitNotSignedError
from ..infra.git_client import GitClient
from ..infra.gpg_client import GpgClient

logger = logging.getLogger(__name__)


class AcquireService:
    """
    Service materializing a repository's working tree at a destination.

    Example:
        service = AcquireService(git_client=GitClient(env=env))
        snapshot = service.acquire(request, Path("/tmp/build/repo"))
        print(snapshot.current_branch)
    """

    def __init__(
        self,
        git_client: Optional[GitClient] = None,
        gpg_client: Optional[GpgClient] = None
    ):
        """
        Initialize AcquireService.

        Args:
            git_client: GitClient instance (creates new if None)
            gpg_client: GpgClient instance (creates new if None)
        """
        self.git = git_client or GitClient()
        self.gpg = gpg_client or GpgClient()

    def acquire(self, request: FetchRequest, destination: Path) -> RepositorySnapshot:
        """
        Clone and prepare the repository described by request.

        Args:
            request: Parsed fetch request
            destination: Directory to clone into

        Returns:
            RepositorySnapshot with the branch captured right after clone

        Raises:
            GitCommandError, InvalidKeyError, KeyserverError,
            CommitNotSignedError
        """
        logger.info(f"Cloning {request.uri}" + (f" ({request.branch})" if request.branch else ""))
        self.git.clone(request.uri, destination, branch=request.branch, depth=request.depth)

        # Must precede checkout: a tag or commit checkout detaches HEAD.
        current_branch = self.git.current_branch(destination)
        snapshot = RepositorySnapshot(path=destination, current_branch=current_branch)
        logger.debug(f"Cloned branch is {current_branch}")

        self.git.checkout(destination, request.ref, depth=request.depth)

        if request.verification_enabled:
            self.verify(request, destination)
        else:
            logger.debug("No verification keys configured, skipping signature check")

        if request.lfs_enabled:
            self.git.lfs_pull(destination)

        self.git.clean(destination)

        submodules_updated = self.update_submodules(request, destination)
        if submodules_updated and request.lfs_enabled:
            self.git.lfs_pull_submodules(destination)

        self.fetch_extra_refs(request, snapshot)

        return snapshot

    def verify(self, request: FetchRequest, destination: Path) -> str:
        """
        Import verification keys and check the signature on the checked-out commit.

        request.ref may only have been reachable through FETCH_HEAD, so the
        commit is resolved from HEAD rather than by name.

        Returns:
            The verified commit id
        """
        for key in request.verification_keys:
            self.gpg.import_key(key)
        for key_id in request.verification_key_ids:
            self.gpg.recv_key(key_id, request.keyserver)

        commit = self.git.resolve_commit(destination, HEAD)
        if not self.git.verify_commit(destination, commit):
            logger.error(f"Commit {commit} is not signed")
            raise CommitNotSignedError(commit)

        logger.info(f"Commit {commit} has a valid signature")
        return commit

    def update_submodules(self, request: FetchRequest, destination: Path) -> bool:
        """
        Apply the submodule policy.

        Returns:
            True if any submodules were updated
        """
        policy = request.submodules
        if policy == SUBMODULES_NONE:
            return False
        if policy == SUBMODULES_ALL:
            logger.info("Updating all submodules")
            self.git.update_submodules(destination, depth=request.depth)
        else:
            logger.info(f"Updating submodules: {', '.join(policy)}")
            self.git.update_submodules(destination, paths=list(policy), depth=request.depth)
        return True

    def fetch_extra_refs(self, request: FetchRequest, snapshot: RepositorySnapshot) -> None:
        """Fetch each extra branch into a local branch of the same name."""
        for name in request.extra_refs:
            logger.info(f"Fetching branch {name}")
            self.git.fetch(snapshot.path, f"refs/heads/{name}", depth=request.depth)
            if name == snapshot.current_branch:
                # git refuses to move the branch checked out in the worktree
                logger.debug(f"{name} is the cloned branch, not recreating it")
                continue
            self.git.create_branch(snapshot.path, name)
