"""connection.py

Opens the one SSH session a transfer needs.

The first attempt verifies the server against known_hosts. If, and only
if, that attempt fails on host key verification, a second attempt pins
the key the server just offered and accepts nothing else. Any other
failure ends the run.
"""
from __future__ import annotations

from enum import Enum
from typing import Callable, Optional, Tuple

import paramiko

from scp_password.config import TransferConfig
from scp_password.host_keys import (
    HostKeyVerificationError, PinnedFingerprintPolicy, StrictHostKeyPolicy
)
from scp_password.utils import build_logger

logger = build_logger(__name__)


class ConnectState(Enum):
    UNVERIFIED = "unverified"
    TRY_STRICT = "try_strict"
    PINNED_RETRY = "pinned_retry"
    CONNECTED = "connected"
    FAILED = "failed"


class SSHConnector:
    """Two-attempt connection state machine.

    UNVERIFIED -> TRY_STRICT -> CONNECTED
                             -> PINNED_RETRY -> CONNECTED | FAILED
                             -> FAILED
    """

    def __init__(self, config: TransferConfig,
                 client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient):
        """
        Args:
            config: validated transfer configuration
            client_factory: creates the paramiko client for each attempt
        """
        self.config = config
        self._client_factory = client_factory
        self.state = ConnectState.UNVERIFIED
        self.fingerprint: Optional[str] = None
        self.error: Optional[str] = None

    def _connect_kwargs(self) -> dict:
        kwargs = dict(
            hostname=self.config.host,
            port=self.config.port,
            username=self.config.username,
            password=self.config.password,
            allow_agent=False,
            look_for_keys=False,
        )
        timeout = self.config.connect_timeout
        if timeout > 0:
            kwargs.update(timeout=timeout, banner_timeout=timeout, auth_timeout=timeout)
        return kwargs

    def _attempt(self, client: paramiko.SSHClient) -> Optional[paramiko.SSHClient]:
        """Connect and authenticate `client`, moving to the next state."""
        logger.debug(
            f"connect: {self.config.host}:{self.config.port} "
            f"timeout: {self.config.connect_timeout} sec. ({self.state.value})"
        )
        try:
            client.connect(**self._connect_kwargs())
        except paramiko.BadHostKeyException as e:
            self._host_key_failed(client, HostKeyVerificationError.from_bad_host_key(e))
            return None
        except HostKeyVerificationError as e:
            self._host_key_failed(client, e)
            return None
        except (paramiko.SSHException, OSError) as e:
            client.close()
            self._fail(e)
            return None

        logger.debug(f"auth: {self.config.username} accepted")
        self.state = ConnectState.CONNECTED
        return client

    def _host_key_failed(self, client: paramiko.SSHClient, error: HostKeyVerificationError):
        client.close()
        if self.state is ConnectState.TRY_STRICT:
            logger.debug(str(error))
            self.fingerprint = error.fingerprint
            logger.debug(f"fingerprint: {self.fingerprint}")
            self.state = ConnectState.PINNED_RETRY
        else:
            self._fail(error)

    def _fail(self, error: Exception):
        self.error = str(error) or type(error).__name__
        logger.debug(f"connection failed: {self.error}")
        self.state = ConnectState.FAILED

    def _try_strict(self) -> Optional[paramiko.SSHClient]:
        client = self._client_factory()
        try:
            if self.config.known_hosts is not None:
                client.load_system_host_keys(str(self.config.known_hosts))
            else:
                client.load_system_host_keys()
        except OSError as e:
            client.close()
            self._fail(e)
            return None
        client.set_missing_host_key_policy(StrictHostKeyPolicy())
        return self._attempt(client)

    def _try_pinned(self) -> Optional[paramiko.SSHClient]:
        client = self._client_factory()
        client.set_missing_host_key_policy(PinnedFingerprintPolicy(self.fingerprint))
        return self._attempt(client)

    def connect(self) -> Tuple[Optional[paramiko.SSHClient], Optional[str]]:
        """
        Run the state machine to completion.

        Returns:
            (client, None) once connected and authenticated, else
            (None, error message)
        """
        self.state = ConnectState.TRY_STRICT
        client = None
        while self.state not in (ConnectState.CONNECTED, ConnectState.FAILED):
            if self.state is ConnectState.TRY_STRICT:
                client = self._try_strict()
            else:
                client = self._try_pinned()
        if self.state is ConnectState.CONNECTED:
            return client, None
        return None, self.error
