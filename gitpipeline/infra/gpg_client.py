"""
OpenPGP infrastructure for gitpipeline.

Imports verification keys into the local keyring so `git verify-commit`
can check commit signatures. Keys come either as armored blocks in the
request or as ids downloaded from an HKP keyserver.
"""

import os
import subprocess
import logging
from typing import Dict, Optional
from urllib.parse import urlsplit, urlunsplit

import requests

from ..exit_codes import InvalidKeyError, KeyserverError

logger = logging.getLogger(__name__)

HKP_PORT = 11371
ARMOR_HEADER = "-----BEGIN PGP PUBLIC KEY BLOCK-----"


def keyserver_base_url(keyserver: str) -> str:
    """
    Translate a keyserver URI into an HTTP(S) base URL.

    hkp://host -> http://host:11371, hkps://host -> https://host.
    http(s) URIs and bare hostnames are accepted as well.
    """
    if "://" not in keyserver:
        keyserver = f"hkps://{keyserver}"

    parts = urlsplit(keyserver)
    scheme = parts.scheme.lower()
    netloc = parts.netloc

    if scheme == "hkp":
        scheme = "http"
        if parts.port is None:
            netloc = f"{netloc}:{HKP_PORT}"
    elif scheme == "hkps":
        scheme = "https"
    elif scheme not in ("http", "https"):
        raise KeyserverError(f"Unsupported keyserver scheme: {keyserver}")

    return urlunsplit((scheme, netloc, parts.path.rstrip("/"), "", ""))


class GpgClient:
    """
    Abstraction over gpg key import and keyserver lookups.

    Example:
        gpg = GpgClient()
        gpg.import_key(armored_key)
        gpg.recv_key("A1B2C3D4E5F60708", "hkps://keyserver.ubuntu.com")
    """

    def __init__(
        self,
        executable: str = "gpg",
        home: Optional[str] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize GpgClient.

        Args:
            executable: gpg binary to invoke
            home: GNUPGHOME to use (default keyring if None)
            timeout: Timeout in seconds for gpg and keyserver requests
            session: requests session (creates new if None)
        """
        self.executable = executable
        self.home = home or None
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/pgp-keys',
        })

    def environment(self) -> Dict[str, str]:
        """Variables git needs to verify against the same keyring."""
        return {"GNUPGHOME": self.home} if self.home else {}

    def import_key(self, armored: str) -> None:
        """
        Import an armored public key.

        Raises:
            InvalidKeyError: if gpg rejects the key material
        """
        env = os.environ.copy()
        env.update(self.environment())
        try:
            result = subprocess.run(
                [self.executable, "--batch", "--import"],
                input=armored,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=env
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise InvalidKeyError(f"Could not run gpg: {e}", armored)

        if result.returncode != 0:
            logger.error(f"Failed to import key:\n{armored}")
            logger.error(result.stderr.strip())
            raise InvalidKeyError("Failed to import verification key", armored)

        logger.debug(result.stderr.strip())

    def fetch_key(self, key_id: str, keyserver: str) -> str:
        """
        Download an armored key from an HKP keyserver.

        Raises:
            KeyserverError: on network failure or when the key is not found
        """
        search = key_id if key_id.lower().startswith("0x") else f"0x{key_id}"
        url = f"{keyserver_base_url(keyserver)}/pks/lookup"
        params = {"op": "get", "options": "mr", "search": search}

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Keyserver request for {key_id} failed: {e}")
            raise KeyserverError(f"Could not fetch key {key_id} from {keyserver}: {e}", key_id)

        if ARMOR_HEADER not in response.text:
            raise KeyserverError(f"Keyserver {keyserver} returned no key for {key_id}", key_id)

        return response.text

    def recv_key(self, key_id: str, keyserver: str) -> None:
        """Download key_id from keyserver and import it."""
        logger.info(f"Fetching verification key {key_id} from {keyserver}")
        armored = self.fetch_key(key_id, keyserver)
        try:
            self.import_key(armored)
        except InvalidKeyError as e:
            raise KeyserverError(f"Key {key_id} from {keyserver} could not be imported: {e}", key_id)
