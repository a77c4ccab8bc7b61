"""
Service layer for gitpipeline.

Contains business logic that orchestrates domain objects and infrastructure:
- AcquireService: Clone, verify, LFS, submodules, extra refs
- VersionService: Version and metadata reporting
- DiscoveryService: Pipeline filtering and vars merging
- MaterializeService: Staged replacement of the destination
- ResourceService: The full `in` flow

Services are the primary API for commands to use.
"""

from .acquire_service import AcquireService
from .version_service import VersionService
from .discovery_service import DiscoveryService, DiscoveryResult
from .materialize_service import MaterializeService
from .resource_service import ResourceService

__all__ = [
    'AcquireService',
    'VersionService',
    'DiscoveryService',
    'DiscoveryResult',
    'MaterializeService',
    'ResourceService',
]
