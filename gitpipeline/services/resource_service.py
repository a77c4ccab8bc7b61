"""
The `in` resource flow for gitpipeline.

Stage (a): credentials -> acquisition -> version resolution.
Stage (b): discovery -> materialization over the destination.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..config import load_config
from ..domain.request import FetchRequest
from ..domain.snapshot import RepositorySnapshot, ResolvedVersion
from ..infra.credentials import CredentialProvisioner
from ..infra.git_client import GitClient
from ..infra.gpg_client import GpgClient
from .acquire_service import AcquireService
from .discovery_service import DiscoveryResult, DiscoveryService
from .materialize_service import MaterializeService
from .version_service import VersionService

logger = logging.getLogger(__name__)


class ResourceService:
    """
    Runs both stages of the resource for one request.

    Example:
        service = ResourceService()
        snapshot, version = service.fetch(request, destination)
        print(json.dumps(version.to_dict()))
        service.publish(request, snapshot)
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        git_client: Optional[GitClient] = None,
        gpg_client: Optional[GpgClient] = None
    ):
        """
        Initialize ResourceService.

        Args:
            config: Configuration dict (loads default if None)
            git_client: GitClient to use instead of one built per request
            gpg_client: GpgClient instance (built from config if None)
        """
        self.config = config or load_config()
        self.git = git_client

        gpg_config = self.config.get("gpg", {})
        self.gpg = gpg_client or GpgClient(
            executable=gpg_config.get("executable", "gpg"),
            home=gpg_config.get("home") or None,
            timeout=gpg_config.get("timeout_seconds", 30),
        )
        self.discovery = DiscoveryService()
        self.materializer = MaterializeService(
            indent=self.config.get("discovery", {}).get("indent", 2)
        )

    def _git_client(self, env: Dict[str, str]) -> GitClient:
        if self.git is not None:
            return self.git
        git_config = self.config.get("git", {})
        return GitClient(
            executable=git_config.get("executable", "git"),
            timeout=git_config.get("timeout_seconds", 600),
            env={**env, **self.gpg.environment()},
        )

    def fetch(self, request: FetchRequest, destination: Path) -> Tuple[RepositorySnapshot, ResolvedVersion]:
        """Acquire the repository and resolve the version to report."""
        with CredentialProvisioner(request) as env:
            git = self._git_client(env)
            snapshot = AcquireService(git, self.gpg).acquire(request, Path(destination))
            version = VersionService(git).resolve(request.ref, snapshot)
        return snapshot, version

    def publish(self, request: FetchRequest, snapshot: RepositorySnapshot) -> Tuple[DiscoveryResult, List[str]]:
        """Discover pipelines and replace the destination with the result."""
        result = self.discovery.discover(
            snapshot.path,
            request.config_path,
            request.vars,
            request.vars_from,
            snapshot.current_branch,
        )
        written = self.materializer.materialize(snapshot.path, result, snapshot.path)
        return result, written
