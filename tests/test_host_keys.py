"""Host key fingerprint and policy test-module."""

import base64
import hashlib

import paramiko
import pytest

from scp_password.host_keys import (
    HostKeyVerificationError, PinnedFingerprintPolicy, StrictHostKeyPolicy,
    extract_fingerprint, fingerprint_matches, md5_fingerprint, sha256_fingerprint
)


def test_md5_fingerprint_format(host_key):
    fingerprint = md5_fingerprint(host_key)
    parts = fingerprint.split(":")
    assert len(parts) == 16
    assert all(len(p) == 2 for p in parts)
    assert fingerprint.replace(":", "") == hashlib.md5(host_key.asbytes()).hexdigest()


def test_sha256_fingerprint_format(host_key):
    digest = base64.b64encode(hashlib.sha256(host_key.asbytes()).digest()).decode()
    assert sha256_fingerprint(host_key) == "SHA256:" + digest.rstrip("=")


@pytest.mark.parametrize(
    "form",
    ["md5", "md5-upper", "md5-prefixed", "sha256", "sha256-padded"],
)
def test_fingerprint_matches(host_key, form):
    md5 = md5_fingerprint(host_key)
    sha256 = sha256_fingerprint(host_key)
    fingerprint = {
        "md5": md5,
        "md5-upper": md5.upper(),
        "md5-prefixed": "MD5:" + md5,
        "sha256": sha256,
        "sha256-padded": sha256 + "=",
    }[form]
    assert fingerprint_matches(host_key, fingerprint)


def test_fingerprint_does_not_match_other_key(host_key, other_host_key):
    assert not fingerprint_matches(other_host_key, md5_fingerprint(host_key))
    assert not fingerprint_matches(other_host_key, sha256_fingerprint(host_key))


def test_extract_fingerprint():
    message = (
        "Could not verify `ssh-ed25519` host key with fingerprint "
        "`aa:bb:cc:dd` for `10.0.0.5` on port 22"
    )
    assert extract_fingerprint(message) == "aa:bb:cc:dd"


@pytest.mark.parametrize(
    "message",
    ["Connection refused", "fingerprint `unterminated", ""],
)
def test_extract_fingerprint_missing(message):
    assert extract_fingerprint(message) is None


def test_error_carries_key(host_key):
    error = HostKeyVerificationError("10.0.0.5", host_key)
    assert error.key is host_key
    assert error.hostname == "10.0.0.5"
    assert error.fingerprint == md5_fingerprint(host_key)
    assert isinstance(error, paramiko.SSHException)


def test_error_message_round_trips_fingerprint(host_key):
    """Test that the message quotes the fingerprint the way it is extracted."""
    error = HostKeyVerificationError("10.0.0.5", host_key)
    assert "`ssh-rsa` host key" in str(error)
    assert extract_fingerprint(str(error)) == error.fingerprint


def test_from_bad_host_key(host_key, other_host_key):
    bad = paramiko.BadHostKeyException("10.0.0.5", host_key, other_host_key)
    error = HostKeyVerificationError.from_bad_host_key(bad)
    assert error.key is host_key
    assert error.fingerprint == md5_fingerprint(host_key)
    assert "known hosts entry differs" in str(error)


def test_strict_policy_rejects(host_key):
    with pytest.raises(HostKeyVerificationError) as exc_info:
        StrictHostKeyPolicy().missing_host_key(None, "10.0.0.5", host_key)
    assert exc_info.value.fingerprint == md5_fingerprint(host_key)


def test_pinned_policy_accepts_pinned_key(host_key):
    policy = PinnedFingerprintPolicy(md5_fingerprint(host_key))
    assert policy.missing_host_key(None, "10.0.0.5", host_key) is None


def test_pinned_policy_rejects_other_key(host_key, other_host_key):
    policy = PinnedFingerprintPolicy(md5_fingerprint(host_key))
    with pytest.raises(HostKeyVerificationError) as exc_info:
        policy.missing_host_key(None, "10.0.0.5", other_host_key)
    assert exc_info.value.fingerprint == md5_fingerprint(other_host_key)
    assert "expected pinned fingerprint" in str(exc_info.value)
