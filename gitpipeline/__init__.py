"""
gitpipeline - A CI resource that fetches a git repository and its pipelines.

The `in` flow has two stages:

    1. Acquire: clone the repository (shallow, single branch), check out
       the requested ref, verify its signature, pull LFS objects and
       submodules, fetch extra branches, and report the resolved version.

    2. Discover: read the repository's discovery document (concourse.json
       by default), keep the pipelines whose branch pattern matches the
       cloned branch, merge vars, and replace the destination with only
       the referenced files plus the aggregate document.

Quick Start:
    from gitpipeline import FetchRequest, ResourceService

    request = FetchRequest.from_payload({"source": {"uri": "https://example.com/repo.git"}})
    service = ResourceService()
    snapshot, version = service.fetch(request, Path("/tmp/repo"))
    service.publish(request, snapshot)
"""

__version__ = "0.1.0"

from .domain import (
    FetchRequest,
    RepositorySnapshot,
    ResolvedVersion,
    PipelineEntry,
    MergedPipelineEntry,
    AggregateConfig,
    branch_matches,
    merge_vars,
)

from .services import (
    AcquireService,
    VersionService,
    DiscoveryService,
    MaterializeService,
    ResourceService,
)

from .config import load_config

__all__ = [
    "__version__",
    # Domain objects
    "FetchRequest",
    "RepositorySnapshot",
    "ResolvedVersion",
    "PipelineEntry",
    "MergedPipelineEntry",
    "AggregateConfig",
    "branch_matches",
    "merge_vars",
    # Services
    "AcquireService",
    "VersionService",
    "DiscoveryService",
    "MaterializeService",
    "ResourceService",
    # Configuration
    "load_config",
]
