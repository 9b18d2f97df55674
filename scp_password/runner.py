"""runner.py

Performs the single file copy of a run over an authenticated session.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import paramiko
from scp import SCPClient, SCPException

from scp_password.config import Direction, TransferConfig
from scp_password.connection import SSHConnector
from scp_password.progress import ScpProgressReporter
from scp_password.utils import build_logger

logger = build_logger(__name__)


@dataclass(frozen=True)
class TransferResult:
    ok: bool
    message: str
    direction: Optional[Direction] = None


class TransferRunner:
    """
    Connects to the remote endpoint and copies one file, downloading when
    the source is remote and uploading otherwise.

    The SSH session and the SCP channel are closed on every path out of
    `run`; expected failures come back as a failed TransferResult.
    """

    def __init__(self,
                 connector_factory: Callable[[TransferConfig], SSHConnector] = SSHConnector,
                 scp_factory: Callable[..., SCPClient] = SCPClient,
                 reporter: Optional[ScpProgressReporter] = None):
        """
        Args:
            connector_factory: builds the connector for a config
            scp_factory: builds the SCP client from a paramiko transport
            reporter: receives SCP progress when the config asks for it
        """
        self._connector_factory = connector_factory
        self._scp_factory = scp_factory
        self._reporter = reporter

    def _scp_kwargs(self, config: TransferConfig) -> dict:
        kwargs = dict(socket_timeout=config.connect_timeout or None)
        if config.show_progress and self._reporter is not None:
            kwargs['progress'] = self._reporter
        return kwargs

    def _copy(self, scp: SCPClient, config: TransferConfig) -> None:
        if config.direction is Direction.DOWNLOAD:
            logger.debug(f"download: {config.source.path} -> {config.destination.path}")
            scp.get(config.source.path, config.destination.path)
        else:
            logger.debug(f"upload: {config.source.path} -> {config.destination.path}")
            scp.put(config.source.path, config.destination.path)

    def run(self, config: TransferConfig) -> TransferResult:
        """
        Copy the file described by `config`.

        Args:
            config: validated transfer configuration

        Returns:
            TransferResult; on success its message is "<from> -> <to>"
        """
        direction = config.direction
        logger.debug(f"config: {config!r}")

        client, error = self._connector_factory(config).connect()
        if client is None:
            return TransferResult(False, error, direction)

        with client:
            try:
                with self._scp_factory(client.get_transport(), **self._scp_kwargs(config)) as scp:
                    self._copy(scp, config)
            except (SCPException, paramiko.SSHException, OSError) as e:
                if self._reporter is not None:
                    self._reporter.finish(success=False)
                logger.debug(f"{direction.value} failed: {e!r}")
                return TransferResult(False, str(e) or type(e).__name__, direction)

        logger.info(f"{direction.value} complete: {config.describe()}")
        return TransferResult(True, config.describe(), direction)
