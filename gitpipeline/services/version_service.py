"""
Version resolution for gitpipeline.
"""

import logging
from typing import Optional

from ..domain.request import HEAD
from ..domain.snapshot import RepositorySnapshot, ResolvedVersion
from ..infra.git_client import GitClient

logger = logging.getLogger(__name__)


class VersionService:
    """Turns the requested ref into the version reported to the CI host."""

    def __init__(self, git_client: Optional[GitClient] = None):
        self.git = git_client or GitClient()

    def resolve(self, ref: str, snapshot: RepositorySnapshot) -> ResolvedVersion:
        """
        Resolve the version for output payload #1.

        "HEAD" becomes the concrete commit id at the checked-out tree; any
        other ref is echoed unchanged. Metadata describes the checked-out
        commit.
        """
        if ref == HEAD:
            resolved = self.git.resolve_commit(snapshot.path, HEAD)
        else:
            resolved = ref

        metadata = self.git.commit_metadata(
            snapshot.path, HEAD, branch=snapshot.current_branch
        )
        logger.debug(f"Resolved {ref} to {resolved}")
        return ResolvedVersion(ref=resolved, metadata=metadata)
