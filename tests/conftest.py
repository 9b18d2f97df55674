"""Shared fixtures for the scp-password tests."""

from unittest import mock

import paramiko
import pytest

from scp_password.config import TransferConfig
from scp_password.endpoint import Endpoint
from scp_password.utils import ConfigLoader


@pytest.fixture(autouse=True)
def no_user_defaults(tmp_path, monkeypatch):
    """Keep a real ~/.scp-password.yml out of the tests."""
    monkeypatch.setattr(ConfigLoader, "DEFAULT_PATH", tmp_path / "missing.yml")


@pytest.fixture(scope="session")
def host_key():
    return paramiko.RSAKey.generate(2048)


@pytest.fixture(scope="session")
def other_host_key():
    return paramiko.RSAKey.generate(2048)


@pytest.fixture(name="download_config")
def _download_config():
    return TransferConfig(
        source=Endpoint(path="/tmp/a.txt", host="10.0.0.5", username="alice"),
        destination=Endpoint(path="local/b.txt"),
        password="secret",
    )


@pytest.fixture(name="upload_config")
def _upload_config():
    return TransferConfig(
        source=Endpoint(path="local/b.txt"),
        destination=Endpoint(path="/tmp/a.txt", host="10.0.0.5", username="alice"),
        port=2222,
        password="secret",
        connect_timeout=3,
    )


@pytest.fixture(name="fake_clients")
def _fake_clients():
    """
    Factory of mocked paramiko.SSHClient objects.

    `outcomes` lists what each successive connect() does: None to succeed,
    an exception to raise it.
    """
    created = []

    def make(outcomes):
        outcomes = list(outcomes)

        def factory():
            client = mock.MagicMock(spec=paramiko.SSHClient)
            outcome = outcomes.pop(0)
            if outcome is not None:
                client.connect.side_effect = outcome
            client.__enter__.return_value = client
            client.__exit__.return_value = False
            created.append(client)
            return client

        return factory

    make.created = created
    return make
