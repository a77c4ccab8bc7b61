"""
Pipeline discovery domain objects for gitpipeline.

Pure functions and value objects only; reading files is the job of
DiscoveryService.

A discovery document looks like:

    {
        "pipelines": [
            {"name": "deploy", "config": "ci/deploy.yml",
             "branch": "^(main|release/.*)$",
             "vars": {"env": "prod"}, "vars_from": ["ci/prod.yml"]}
        ]
    }
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..exit_codes import MissingPipelineFieldError

DEFAULT_BRANCH_PATTERN = "."

# Keys with meaning to discovery; everything else is passed through untouched.
KNOWN_KEYS = ("name", "config", "branch", "vars", "vars_from")


def branch_matches(pattern: str, branch: str) -> bool:
    """
    Return True if pattern matches anywhere in branch.

    The search is unanchored and case-sensitive, so the default pattern
    "." matches every non-empty branch name.
    """
    return re.search(pattern, branch) is not None


def overlay(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge mappings left to right; later layers win on key collisions."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged


def merge_vars(global_vars: Optional[Mapping[str, Any]],
               entry_vars: Optional[Mapping[str, Any]],
               branch: str) -> Dict[str, Any]:
    """Global vars, then the entry's vars, then the implicit branch var."""
    return overlay(global_vars, entry_vars, {"branch": branch})


@dataclass(frozen=True)
class PipelineEntry:
    """One item of a discovery document's pipelines list."""
    name: str
    config: str
    branch_pattern: str = DEFAULT_BRANCH_PATTERN
    vars: Dict[str, Any] = field(default_factory=dict)
    vars_from: Tuple[str, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any, index: int) -> 'PipelineEntry':
        """
        Validate and build an entry.

        Raises:
            MissingPipelineFieldError: if name or config is absent or empty
        """
        if not isinstance(data, dict):
            raise MissingPipelineFieldError(index, "name")

        name = data.get("name")
        if not name or not isinstance(name, str):
            raise MissingPipelineFieldError(index, "name")
        config = data.get("config")
        if not config or not isinstance(config, str):
            raise MissingPipelineFieldError(index, "config", name)

        vars_ = data.get("vars") or {}
        vars_from = data.get("vars_from") or []
        if isinstance(vars_from, str):
            vars_from = [vars_from]

        return cls(
            name=name,
            config=config,
            branch_pattern=data.get("branch") or DEFAULT_BRANCH_PATTERN,
            vars=dict(vars_),
            vars_from=tuple(str(p) for p in vars_from),
            extra={k: v for k, v in data.items() if k not in KNOWN_KEYS},
        )

    def merge(self, global_vars: Optional[Mapping[str, Any]],
              global_vars_from: Tuple[str, ...],
              branch: str) -> 'MergedPipelineEntry':
        """Apply global vars/vars_from and the current branch to this entry."""
        return MergedPipelineEntry(
            entry=self,
            vars=merge_vars(global_vars, self.vars, branch),
            vars_from=tuple(global_vars_from) + self.vars_from,
        )


@dataclass(frozen=True)
class MergedPipelineEntry:
    """A pipeline entry after global vars and vars_from have been applied."""
    entry: PipelineEntry
    vars: Dict[str, Any]
    vars_from: Tuple[str, ...]

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def config(self) -> str:
        return self.entry.config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the same keys the source document used."""
        result: Dict[str, Any] = {
            'name': self.entry.name,
            'config': self.entry.config,
        }
        if self.entry.branch_pattern != DEFAULT_BRANCH_PATTERN:
            result['branch'] = self.entry.branch_pattern
        result.update(self.entry.extra)
        result['vars'] = dict(self.vars)
        result['vars_from'] = list(self.vars_from)
        return result


@dataclass
class AggregateConfig:
    """The synthesized discovery document written into the destination."""
    pipelines: List[MergedPipelineEntry] = field(default_factory=list)

    def append(self, entry: MergedPipelineEntry) -> None:
        self.pipelines.append(entry)

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.pipelines]

    def to_dict(self) -> Dict[str, Any]:
        return {'pipelines': [p.to_dict() for p in self.pipelines]}
