"""
Fetch request domain object for gitpipeline.

A FetchRequest is the parsed, immutable form of the JSON payload the CI
host writes to stdin:

    {
        "source": {"uri": ..., "branch": ..., "git_config": [...],
                   "commit_verification_key_ids": [...],
                   "commit_verification_keys": [...],
                   "gpg_keyserver": ..., "config": ...,
                   "private_key": ..., "skip_ssl_verification": ...},
        "version": {"ref": ...},
        "params": {"fetch": [...], "submodules": "all" | "none" | [...],
                   "disable_git_lfs": ..., "depth": ...,
                   "vars": {...}, "vars_from": [...]}
    }
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from ..exit_codes import InputError

HEAD = "HEAD"
SUBMODULES_ALL = "all"
SUBMODULES_NONE = "none"

SubmodulePolicy = Union[str, Tuple[str, ...]]


def _unique(values) -> Tuple[str, ...]:
    """Drop duplicates while keeping first-seen order."""
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return tuple(seen)


def _as_list(value: Any, name: str) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise InputError(f"'{name}' must be a list, got {type(value).__name__}")


def _parse_git_config(raw: Any) -> Tuple[Tuple[str, str], ...]:
    pairs = []
    for item in _as_list(raw, "source.git_config"):
        if not isinstance(item, dict) or not item.get("name"):
            raise InputError(f"Invalid git_config entry: {item!r}")
        value = item.get("value", "")
        if isinstance(value, bool):
            value = "true" if value else "false"
        pairs.append((str(item["name"]), str(value)))
    return tuple(pairs)


def _parse_submodules(raw: Any) -> SubmodulePolicy:
    if raw is None:
        return SUBMODULES_ALL
    if isinstance(raw, str):
        if raw in (SUBMODULES_ALL, SUBMODULES_NONE):
            return raw
        raise InputError(f"Invalid submodules value: {raw!r}")
    paths = _unique(str(p) for p in _as_list(raw, "params.submodules"))
    return paths if paths else SUBMODULES_NONE


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class FetchRequest:
    """Everything needed to materialize one repository and its pipelines."""
    uri: str
    branch: Optional[str] = None
    git_config: Tuple[Tuple[str, str], ...] = ()
    verification_key_ids: Tuple[str, ...] = ()
    verification_keys: Tuple[str, ...] = ()
    keyserver: str = "hkps://keyserver.ubuntu.com"
    ref: str = HEAD
    extra_refs: Tuple[str, ...] = ()
    submodules: SubmodulePolicy = SUBMODULES_ALL
    lfs_disabled: bool = False
    depth: int = 1
    private_key: Optional[str] = None
    skip_ssl_verification: bool = False
    config_path: str = "concourse.json"
    vars: Dict[str, Any] = field(default_factory=dict)
    vars_from: Tuple[str, ...] = ()

    @property
    def verification_enabled(self) -> bool:
        """True when at least one key source is configured."""
        return bool(self.verification_keys or self.verification_key_ids)

    @property
    def lfs_enabled(self) -> bool:
        return not self.lfs_disabled

    @classmethod
    def from_payload(cls, payload: Any, defaults: Optional[Dict[str, Any]] = None) -> 'FetchRequest':
        """
        Build a request from a decoded JSON payload.

        Args:
            payload: Decoded stdin payload
            defaults: Tool configuration (see config.get_default_config)

        Raises:
            InputError: if the payload is not an object or lacks source.uri
        """
        defaults = defaults or {}
        if not isinstance(payload, dict):
            raise InputError("Request payload must be a JSON object")

        source = payload.get("source") or {}
        version = payload.get("version") or {}
        params = payload.get("params") or {}
        for name, section in (("source", source), ("version", version), ("params", params)):
            if not isinstance(section, dict):
                raise InputError(f"'{name}' must be an object")

        uri = source.get("uri")
        if not uri:
            raise InputError("Missing required field 'source.uri'")

        git_defaults = defaults.get("git", {})
        gpg_defaults = defaults.get("gpg", {})
        discovery_defaults = defaults.get("discovery", {})

        depth = params.get("depth", git_defaults.get("depth", 1))
        try:
            depth = int(depth)
        except (TypeError, ValueError):
            raise InputError(f"Invalid depth: {depth!r}")
        if depth < 1:
            raise InputError(f"Invalid depth: {depth!r}")

        vars_ = params.get("vars") or {}
        if not isinstance(vars_, dict):
            raise InputError("'params.vars' must be an object")

        return cls(
            uri=str(uri),
            branch=source.get("branch") or None,
            git_config=_parse_git_config(source.get("git_config")),
            verification_key_ids=_unique(
                str(k) for k in _as_list(source.get("commit_verification_key_ids"),
                                         "source.commit_verification_key_ids")
            ),
            verification_keys=_unique(
                str(k) for k in _as_list(source.get("commit_verification_keys"),
                                         "source.commit_verification_keys")
            ),
            keyserver=source.get("gpg_keyserver") or gpg_defaults.get(
                "keyserver", "hkps://keyserver.ubuntu.com"),
            ref=version.get("ref") or HEAD,
            extra_refs=_unique(str(r) for r in _as_list(params.get("fetch"), "params.fetch")),
            submodules=_parse_submodules(params.get("submodules")),
            lfs_disabled=_parse_bool(params.get("disable_git_lfs", False)),
            depth=depth,
            private_key=source.get("private_key") or None,
            skip_ssl_verification=_parse_bool(source.get("skip_ssl_verification", False)),
            config_path=source.get("config") or discovery_defaults.get("config", "concourse.json"),
            vars=dict(vars_),
            vars_from=tuple(str(p) for p in _as_list(params.get("vars_from"), "params.vars_from")),
        )
