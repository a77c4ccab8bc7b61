"""
Domain layer for gitpipeline.

Contains pure domain objects with no I/O or side effects:
- FetchRequest: The parsed request payload
- RepositorySnapshot / ResolvedVersion: Results of acquisition
- PipelineEntry / MergedPipelineEntry / AggregateConfig: Discovery model
"""

from .request import FetchRequest, HEAD, SUBMODULES_ALL, SUBMODULES_NONE
from .snapshot import RepositorySnapshot, ResolvedVersion
from .pipeline import (
    PipelineEntry,
    MergedPipelineEntry,
    AggregateConfig,
    branch_matches,
    merge_vars,
    overlay,
)

__all__ = [
    'FetchRequest',
    'HEAD',
    'SUBMODULES_ALL',
    'SUBMODULES_NONE',
    'RepositorySnapshot',
    'ResolvedVersion',
    'PipelineEntry',
    'MergedPipelineEntry',
    'AggregateConfig',
    'branch_matches',
    'merge_vars',
    'overlay',
]
