"""
Transport credential setup for gitpipeline.

Turns the credential-related parts of a FetchRequest into environment
variables for git. Nothing is written to the user's global git config:
config pairs use git's GIT_CONFIG_COUNT/KEY_n/VALUE_n mechanism, which
applies to every git process started with that environment.
"""

import os
import shlex
import tempfile
import logging
from typing import Dict, List, Optional, Tuple

from ..domain.request import FetchRequest

logger = logging.getLogger(__name__)


def config_environment(pairs: List[Tuple[str, str]]) -> Dict[str, str]:
    """Encode ordered git config pairs as GIT_CONFIG_* variables."""
    env = {"GIT_CONFIG_COUNT": str(len(pairs))}
    for index, (name, value) in enumerate(pairs):
        env[f"GIT_CONFIG_KEY_{index}"] = name
        env[f"GIT_CONFIG_VALUE_{index}"] = value
    return env


class CredentialProvisioner:
    """
    Context manager producing git's environment for one request.

    A private key is written to a 0600 temporary file for the lifetime
    of the context and removed on exit.

    Example:
        with CredentialProvisioner(request) as env:
            git = GitClient(env=env)
    """

    def __init__(self, request: FetchRequest):
        self.request = request
        self.key_path: Optional[str] = None

    def __enter__(self) -> Dict[str, str]:
        return self.environment()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def environment(self) -> Dict[str, str]:
        """Build the environment, writing the private key if needed."""
        pairs: List[Tuple[str, str]] = []
        if self.request.skip_ssl_verification:
            pairs.append(("http.sslVerify", "false"))
        pairs.extend(self.request.git_config)

        env = config_environment(pairs)

        if self.request.private_key:
            if self.key_path is None:
                self.key_path = self._write_key(self.request.private_key)
            env["GIT_SSH_COMMAND"] = (
                f"ssh -i {shlex.quote(self.key_path)}"
                " -o StrictHostKeyChecking=no -o UserKnownHostsFile=/dev/null"
            )

        return env

    @staticmethod
    def _write_key(key: str) -> str:
        fd, path = tempfile.mkstemp(prefix="gitpipeline-key-")
        try:
            os.chmod(path, 0o600)
            with os.fdopen(fd, 'w') as f:
                f.write(key if key.endswith("\n") else key + "\n")
        except OSError:
            os.unlink(path)
            raise
        logger.debug(f"Wrote private key to {path}")
        return path

    def cleanup(self) -> None:
        """Remove the private key file, if one was written."""
        if self.key_path is None:
            return
        try:
            os.unlink(self.key_path)
        except FileNotFoundError:
            pass
        self.key_path = None
