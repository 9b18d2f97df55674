"""Transfer runner test-module."""

from dataclasses import replace
from unittest import mock

import paramiko
import pytest
from scp import SCPException

from scp_password.config import Direction
from scp_password.progress import ScpProgressReporter
from scp_password.runner import TransferRunner


@pytest.fixture(name="session")
def _session():
    """A connected client, its connector and an SCP client double."""
    client = mock.MagicMock(spec=paramiko.SSHClient)
    client.__enter__.return_value = client
    client.__exit__.return_value = False
    connector = mock.MagicMock()
    connector.connect.return_value = (client, None)
    scp = mock.MagicMock()
    scp.__enter__.return_value = scp
    scp.__exit__.return_value = False
    return client, connector, scp


def make_runner(connector, scp, reporter=None):
    scp_factory = mock.MagicMock(return_value=scp)
    runner = TransferRunner(
        connector_factory=lambda config: connector,
        scp_factory=scp_factory,
        reporter=reporter,
    )
    return runner, scp_factory


def test_download(download_config, session):
    """Test that a remote source is fetched with get."""
    client, connector, scp = session
    runner, scp_factory = make_runner(connector, scp)
    result = runner.run(download_config)

    assert result.ok
    assert result.direction is Direction.DOWNLOAD
    assert result.message == "alice@10.0.0.5:/tmp/a.txt -> local/b.txt"
    scp.get.assert_called_once_with("/tmp/a.txt", "local/b.txt")
    scp.put.assert_not_called()
    scp_factory.assert_called_once_with(client.get_transport.return_value, socket_timeout=None)
    client.__exit__.assert_called_once()
    scp.__exit__.assert_called_once()


def test_upload(upload_config, session):
    client, connector, scp = session
    runner, scp_factory = make_runner(connector, scp)
    result = runner.run(upload_config)

    assert result.ok
    assert result.direction is Direction.UPLOAD
    assert result.message == "local/b.txt -> alice@10.0.0.5:/tmp/a.txt"
    scp.put.assert_called_once_with("local/b.txt", "/tmp/a.txt")
    scp.get.assert_not_called()
    assert scp_factory.call_args.kwargs["socket_timeout"] == 3


def test_connect_failure(download_config, session):
    client, connector, scp = session
    connector.connect.return_value = (None, "Authentication failed.")
    runner, scp_factory = make_runner(connector, scp)
    result = runner.run(download_config)

    assert not result.ok
    assert result.message == "Authentication failed."
    assert result.direction is Direction.DOWNLOAD
    scp_factory.assert_not_called()


@pytest.mark.parametrize(
    "failure",
    [
        SCPException("scp: /tmp/a.txt: No such file or directory"),
        paramiko.SSHException("Channel closed."),
        FileNotFoundError(2, "No such file or directory"),
    ],
    ids=["scp", "ssh", "local-file"]
)
def test_transfer_failure_closes_session(download_config, session, failure):
    """Test that the session is released when the copy fails."""
    client, connector, scp = session
    scp.get.side_effect = failure
    runner, _ = make_runner(connector, scp)
    result = runner.run(download_config)

    assert not result.ok
    assert result.message == str(failure)
    client.__exit__.assert_called_once()
    scp.__exit__.assert_called_once()


def test_unexpected_error_propagates(download_config, session):
    client, connector, scp = session
    scp.get.side_effect = RuntimeError("bug")
    runner, _ = make_runner(connector, scp)
    with pytest.raises(RuntimeError):
        runner.run(download_config)
    client.__exit__.assert_called_once()


def test_progress_reporter_passed(upload_config, session):
    client, connector, scp = session
    reporter = ScpProgressReporter()
    runner, scp_factory = make_runner(connector, scp, reporter=reporter)
    runner.run(replace(upload_config, show_progress=True))
    assert scp_factory.call_args.kwargs["progress"] is reporter


def test_progress_reporter_not_passed_when_quiet(upload_config, session):
    client, connector, scp = session
    runner, scp_factory = make_runner(connector, scp, reporter=ScpProgressReporter())
    runner.run(replace(upload_config, show_progress=False))
    assert "progress" not in scp_factory.call_args.kwargs


def test_progress_task_failed_on_error(upload_config, session):
    client, connector, scp = session
    reporter = ScpProgressReporter()
    observer = mock.MagicMock()
    reporter.add_observer(observer)

    def partial_put(*args):
        reporter(b"b.txt", 100, 0)
        reporter(b"b.txt", 100, 40)
        raise SCPException("lost connection")

    scp.put.side_effect = partial_put
    runner, _ = make_runner(connector, scp, reporter=reporter)
    result = runner.run(replace(upload_config, show_progress=True))

    assert not result.ok
    last_event = observer.on_event.call_args.args[0]
    assert last_event.success is False
    assert not reporter.active


def test_connector_built_from_config(download_config):
    connector_factory = mock.MagicMock()
    connector_factory.return_value.connect.return_value = (None, "refused")
    result = TransferRunner(connector_factory=connector_factory).run(download_config)
    connector_factory.assert_called_once_with(download_config)
    assert result.message == "refused"
