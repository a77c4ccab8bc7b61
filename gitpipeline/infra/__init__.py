"""
Infrastructure layer for gitpipeline.

Contains abstractions for external systems:
- GitClient: Git command execution
- GpgClient: Key import and keyserver access
- CredentialProvisioner: Transport auth environment for git

These provide clean interfaces that can be mocked for testing.
"""

from .git_client import GitClient
from .gpg_client import GpgClient, keyserver_base_url
from .credentials import CredentialProvisioner, config_environment

__all__ = [
    'GitClient',
    'GpgClient',
    'keyserver_base_url',
    'CredentialProvisioner',
    'config_environment',
]
