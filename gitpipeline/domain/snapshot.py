"""
Acquisition result domain objects for gitpipeline.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class RepositorySnapshot:
    """
    A materialized working tree.

    current_branch is captured right after the clone, before the requested
    ref is checked out, and never recomputed: checking out a tag or commit
    detaches HEAD and the branch name is lost.
    """
    path: Path
    current_branch: str


@dataclass
class ResolvedVersion:
    """The version reported back to the CI host (output payload #1)."""
    ref: str
    metadata: List[Tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the resource protocol's JSON shape."""
        return {
            'version': {'ref': self.ref},
            'metadata': [{'name': name, 'value': value} for name, value in self.metadata],
        }
