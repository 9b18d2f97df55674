"""host_keys.py

Host key verification for the two connection attempts: strict checking
against known_hosts, then trust pinned to one fingerprint.
"""
import base64
import hashlib
from typing import Optional

import paramiko

from scp_password.utils import build_logger

logger = build_logger(__name__)

FINGERPRINT_MARK = "fingerprint `"


def md5_fingerprint(key: paramiko.PKey) -> str:
    """Colon separated hex MD5 digest, e.g. ``aa:bb:...``"""
    return ":".join(f"{b:02x}" for b in hashlib.md5(key.asbytes()).digest())


def sha256_fingerprint(key: paramiko.PKey) -> str:
    """OpenSSH style ``SHA256:<base64>`` digest"""
    digest = base64.b64encode(hashlib.sha256(key.asbytes()).digest()).decode('ascii')
    return "SHA256:" + digest.rstrip("=")


def fingerprint_matches(key: paramiko.PKey, fingerprint: str) -> bool:
    """Whether `fingerprint` (MD5 hex or SHA256 form) names `key`."""
    wanted = fingerprint.strip()
    if wanted.upper().startswith("SHA256:"):
        return sha256_fingerprint(key) == "SHA256:" + wanted[7:].rstrip("=")
    if wanted.upper().startswith("MD5:"):
        wanted = wanted[4:]
    return md5_fingerprint(key) == wanted.lower()


def extract_fingerprint(message: str) -> Optional[str]:
    """Fingerprint quoted as ``fingerprint `...` `` in an error message."""
    start = message.find(FINGERPRINT_MARK)
    if start < 0:
        return None
    start += len(FINGERPRINT_MARK)
    end = message.find("`", start)
    if end < 0:
        return None
    return message[start:end]


class HostKeyVerificationError(paramiko.SSHException):
    """
    The server's host key could not be verified.

    Carries the offered key so the caller can pin its fingerprint without
    reading it back out of the message.
    """

    def __init__(self, hostname: str, key: paramiko.PKey, detail: str = ""):
        self.hostname = hostname
        self.key = key
        self.fingerprint = md5_fingerprint(key)
        super().__init__(
            f"Could not verify `{key.get_name()}` host key with fingerprint `{self.fingerprint}` "
            f"for `{hostname}`{detail}"
        )

    @classmethod
    def from_bad_host_key(cls, error: paramiko.BadHostKeyException) -> "HostKeyVerificationError":
        """Convert paramiko's known_hosts mismatch into the same error."""
        return cls(error.hostname, error.key, detail=" (known hosts entry differs)")


class StrictHostKeyPolicy(paramiko.MissingHostKeyPolicy):
    """Reject hosts missing from known_hosts, keeping the offered key."""

    def missing_host_key(self, client, hostname, key):
        logger.debug(f"{hostname} not found in known hosts")
        raise HostKeyVerificationError(hostname, key)


class PinnedFingerprintPolicy(paramiko.MissingHostKeyPolicy):
    """Accept exactly one host key, identified by its fingerprint."""

    def __init__(self, fingerprint: str):
        self.fingerprint = fingerprint

    def missing_host_key(self, client, hostname, key):
        if fingerprint_matches(key, self.fingerprint):
            logger.debug(f"Accepting pinned host key {self.fingerprint} for {hostname}")
            return
        raise HostKeyVerificationError(
            hostname, key, detail=f" (expected pinned fingerprint `{self.fingerprint}`)"
        )
