"""
Pipeline discovery service for gitpipeline.

Reads the discovery document from a checked-out repository, keeps the
pipelines whose branch pattern matches the cloned branch, merges global
and per-pipeline vars, and collects every file the kept pipelines need.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from ..domain.pipeline import AggregateConfig, PipelineEntry, branch_matches
from ..exit_codes import (
    InputError,
    MissingConfigError,
    MissingVarsFileError,
    UnreadablePipelineConfigError,
)

logger = logging.getLogger(__name__)

YAML_SUFFIXES = ('.yml', '.yaml')


def is_yaml(path: str) -> bool:
    return Path(path).suffix.lower() in YAML_SUFFIXES


def load_document(path: Path) -> Any:
    """Parse a JSON or YAML document, chosen by file suffix."""
    with open(path, 'r', encoding='utf-8') as f:
        if is_yaml(str(path)):
            return yaml.safe_load(f)
        return json.load(f)


def dump_document(data: Dict[str, Any], path: str, indent: int = 2) -> str:
    """Serialize data in the format implied by path's suffix."""
    if is_yaml(path):
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    return json.dumps(data, indent=indent, ensure_ascii=False) + "\n"


def normalize_relative(path: str) -> Optional[str]:
    """
    Normalize a repository-relative path.

    Returns None for absolute paths and paths that climb out of the root.
    """
    if not path or os.path.isabs(path):
        return None
    normalized = os.path.normpath(path)
    if normalized == os.curdir or normalized == os.pardir or normalized.startswith(os.pardir + os.sep):
        return None
    return Path(normalized).as_posix()


def readable_file(root: Path, relative: Optional[str]) -> bool:
    """Check relative is a readable regular file that stays inside root."""
    if relative is None:
        return False
    candidate = root / relative
    try:
        candidate.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return candidate.is_file() and os.access(candidate, os.R_OK)


@dataclass
class DiscoveryResult:
    """Outcome of discovery: the aggregate document and the files to keep."""
    config_path: str
    aggregate: AggregateConfig = field(default_factory=AggregateConfig)
    files: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    def keep(self, relative: str) -> None:
        if relative not in self.files:
            self.files.append(relative)


class DiscoveryService:
    """
    Service turning a discovery document into an AggregateConfig.

    Example:
        service = DiscoveryService()
        result = service.discover(Path("repo"), "concourse.json",
                                  {"env": "dev"}, [], "main")
        print(result.aggregate.names, result.files)
    """

    def discover(
        self,
        repo_root: Path,
        config_path: str,
        global_vars: Optional[Mapping[str, Any]],
        global_vars_from: Sequence[str],
        current_branch: str
    ) -> DiscoveryResult:
        """
        Run discovery against a checked-out repository.

        Args:
            repo_root: Repository working tree
            config_path: Discovery document, relative to repo_root
            global_vars: Vars applied to every pipeline
            global_vars_from: Vars files prepended to every pipeline's list
            current_branch: Branch captured after clone

        Returns:
            DiscoveryResult with the aggregate and preserved file paths

        Raises:
            MissingConfigError, MissingPipelineFieldError,
            UnreadablePipelineConfigError, MissingVarsFileError
        """
        repo_root = Path(repo_root)
        relative_config = normalize_relative(config_path)
        if not readable_file(repo_root, relative_config):
            logger.error(f"Pipeline config {config_path} not found in {repo_root}")
            raise MissingConfigError(config_path)

        try:
            document = load_document(repo_root / relative_config)
        except (OSError, UnicodeDecodeError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Could not parse {config_path}: {e}")
            raise MissingConfigError(config_path, f"could not be parsed: {e}")

        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise MissingConfigError(config_path, "is not a mapping")

        pipelines = document.get("pipelines") or []
        if not isinstance(pipelines, list):
            raise MissingConfigError(config_path, "has a 'pipelines' value that is not a list")

        result = DiscoveryResult(config_path=relative_config)
        global_vars_from = tuple(global_vars_from)

        for index, raw in enumerate(pipelines):
            entry = PipelineEntry.from_dict(raw, index)

            entry_config = normalize_relative(entry.config)
            if not readable_file(repo_root, entry_config):
                logger.error(f"Pipeline '{entry.name}': cannot read {entry.config}")
                raise UnreadablePipelineConfigError(entry.name, entry.config)

            try:
                matched = branch_matches(entry.branch_pattern, current_branch)
            except re.error as e:
                raise InputError(
                    f"Pipeline '{entry.name}' has an invalid branch pattern "
                    f"'{entry.branch_pattern}': {e}"
                )

            if not matched:
                logger.info(
                    f"Skipping pipeline '{entry.name}': branch '{current_branch}' "
                    f"does not match '{entry.branch_pattern}'"
                )
                result.skipped.append(entry.name)
                continue

            merged = entry.merge(global_vars, global_vars_from, current_branch)
            result.aggregate.append(merged)
            result.keep(entry_config)

            for vars_file in merged.vars_from:
                relative = normalize_relative(vars_file)
                if not readable_file(repo_root, relative):
                    logger.error(f"Pipeline '{entry.name}': cannot read vars file {vars_file}")
                    raise MissingVarsFileError(entry.name, vars_file)
                result.keep(relative)

            logger.info(f"Discovered pipeline '{entry.name}' ({entry.config})")

        return result
