"""config.py

Command line parsing and validation for scp-password.

`parse_args` never prints and never exits: every outcome, including
``--help`` and unknown flags, comes back as a `ParseResult` for the entry
point to report.
"""
from __future__ import annotations

import argparse
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from scp_password.endpoint import Endpoint, parse_endpoint
from scp_password.utils import ConfigFileError, ConfigLoader, build_logger

logger = build_logger(__name__)

PROG = "scp-password"
USAGE = f"{PROG} [options] [[user@]host:]file_from [[user@]host:]file_to"
DESCRIPTION = "SCP with password"

PORT_MIN, PORT_MAX, PORT_DEFAULT = 1, 0xFFFF, 22
CONNECT_TIMEOUT_KEY = "ConnectTimeout="
INTEGER_TEXT = re.compile(r"[+-]?\d+", re.ASCII)

# options taking a value, mapped to their long spelling
VALUE_OPTIONS = {
    "-P": "--port", "--port": "--port",
    "--password": "--password",
    "-o": "--option", "--option": "--option",
    "--connect-timeout": "--connect-timeout",
    "--known-hosts": "--known-hosts",
    "-F": "--config", "--config": "--config",
}


class Direction(Enum):
    UPLOAD = "upload"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class TransferConfig:
    """Everything one run needs; built once from the command line."""
    source: Optional[Endpoint] = None
    destination: Optional[Endpoint] = None
    port: int = PORT_DEFAULT
    password: Optional[str] = None
    connect_timeout: int = 0
    known_hosts: Optional[Path] = None
    show_progress: bool = False

    @property
    def remote(self) -> Endpoint:
        return self.source if self.source.is_remote else self.destination

    @property
    def host(self) -> str:
        return self.remote.host

    @property
    def local(self) -> Endpoint:
        return self.destination if self.source.is_remote else self.source

    @property
    def username(self) -> Optional[str]:
        if self.remote.username is not None:
            return self.remote.username
        return self.local.username

    @property
    def direction(self) -> Direction:
        return Direction.DOWNLOAD if self.source.is_remote else Direction.UPLOAD

    def describe(self) -> str:
        return f"{self.source} -> {self.destination}"

    def __repr__(self) -> str:
        password = None if self.password is None else "******"
        return (
            f"TransferConfig(source={self.source!r}, destination={self.destination!r}, "
            f"port={self.port}, password={password!r}, "
            f"connect_timeout={self.connect_timeout}, known_hosts={self.known_hosts!r}, "
            f"show_progress={self.show_progress})"
        )


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parse_args: a config, or an error to report."""
    config: Optional[TransferConfig] = None
    error: Optional[str] = None
    show_usage: bool = False
    log_level: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.config is not None


class ArgumentParserError(Exception):
    """Raised instead of argparse printing and exiting"""


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise ArgumentParserError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog=PROG, usage=USAGE, description=DESCRIPTION, add_help=False)
    parser.add_argument('endpoints', nargs='*', metavar='[[user@]host:]file',
                        help="file_from and file_to")
    parser.add_argument('-P', '--port', help="port (default 22)")
    parser.add_argument('--password', help="password")
    parser.add_argument('-o', '--option', metavar='OPTION',
                        help="ConnectTimeout=X (where X is in seconds)")
    parser.add_argument('--connect-timeout', metavar='SECONDS',
                        help="equals to -o ConnectTimeout=X")
    parser.add_argument('--known-hosts', metavar='FILE',
                        help="known hosts file (default ~/.ssh/known_hosts)")
    parser.add_argument('--allow-hostnames', action='store_true', default=None,
                        help="accept DNS host names, not only IPv4 addresses")
    parser.add_argument('-F', '--config', metavar='FILE',
                        help=f"YAML defaults file (default {ConfigLoader.DEFAULT_PATH})")
    parser.add_argument('-q', '--quiet', action='store_true', default=None,
                        help="no progress meter")
    parser.add_argument('-v', '--verbose', action='store_true', help="debug logging")
    parser.add_argument('-h', '--help', action='store_true', help="usage")
    return parser


def usage() -> str:
    """The usage banner printed after argument errors"""
    return build_parser().format_help()


def to_int(value: Any, default: int = 0) -> int:
    """Integer value of `value`, `default` unless it is plain ASCII decimal text"""
    if isinstance(value, bool) or value is None:
        return default
    text = str(value).strip()
    if not INTEGER_TEXT.fullmatch(text):
        return default
    return int(text)


def join_option_values(argv: Sequence[str]) -> List[str]:
    """
    Attach the value token to its option as ``--long=value``.

    argparse refuses a separate value that starts with "-", so
    ``--password -s3cret`` would otherwise be an error.
    """
    joined = []
    tokens = iter(argv)
    for token in tokens:
        if token == "--":
            joined.append(token)
            joined.extend(tokens)
            break
        long_name = VALUE_OPTIONS.get(token)
        if long_name is None:
            joined.append(token)
            continue
        value = next(tokens, None)
        joined.append(token if value is None else f"{long_name}={value}")
    return joined


def connect_timeout_from_option(option: str) -> int:
    """Seconds given by an ``-o ConnectTimeout=N`` value (0 without the key)"""
    _, _, seconds = option.partition(CONNECT_TIMEOUT_KEY)
    return to_int(seconds)


def validate(config: TransferConfig) -> Optional[str]:
    """Return the first rule `config` breaks, or None when it is usable."""
    source, destination = config.source, config.destination
    if source is None or destination is None:
        return "file required"
    if not source.is_remote and not destination.is_remote:
        return "host required"
    if source.is_remote and destination.is_remote:
        return "local path required"
    if not PORT_MIN <= config.port <= PORT_MAX:
        return "port required"
    if source.username is None and destination.username is None:
        return "user required"
    if config.password is None:
        return "password required"
    if not source.path and not destination.path:
        return "path required"
    if config.connect_timeout < 0:
        return "timeout must not be negative"
    return None


def _pick(cli_value: Any, settings: Dict[str, Any], key: str, default: Any) -> Any:
    if cli_value is not None:
        return cli_value
    return settings.get(key, default)


def parse_args(argv: Sequence[str]) -> ParseResult:
    """Turn command line tokens into a validated TransferConfig.

    Flags win over the YAML defaults file, which wins over built-in
    defaults. `--connect-timeout` is applied after `-o ConnectTimeout=`.

    Args:
        argv: arguments without the program name

    Returns:
        ParseResult holding either the config or the error text
    """
    parser = build_parser()
    try:
        args = parser.parse_intermixed_args(join_option_values(argv))
    except ArgumentParserError as e:
        return ParseResult(error=str(e), show_usage=True)

    if args.help:
        return ParseResult(error="", show_usage=True)

    try:
        settings = ConfigLoader(args.config).load_config()
    except ConfigFileError as e:
        return ParseResult(error=str(e), show_usage=True)

    log_level = logging.DEBUG if args.verbose else _level_from_name(settings.get('log_level'))

    port = to_int(args.port) if args.port is not None else to_int(settings.get('port', PORT_DEFAULT))

    connect_timeout = to_int(settings.get('connect_timeout', 0))
    if args.option is not None:
        connect_timeout = connect_timeout_from_option(args.option)
    if args.connect_timeout is not None:
        connect_timeout = to_int(args.connect_timeout)

    known_hosts = _pick(args.known_hosts, settings, 'known_hosts', None)
    allow_hostnames = bool(_pick(args.allow_hostnames, settings, 'allow_hostnames', False))
    quiet = bool(_pick(args.quiet, settings, 'quiet', False))

    source = destination = None
    if len(args.endpoints) == 2:
        source = parse_endpoint(args.endpoints[0], allow_hostnames)
        destination = parse_endpoint(args.endpoints[1], allow_hostnames)

    config = TransferConfig(
        source=source,
        destination=destination,
        port=port,
        password=args.password,
        connect_timeout=connect_timeout,
        known_hosts=Path(known_hosts).expanduser() if known_hosts else None,
        show_progress=not quiet,
    )

    error = validate(config)
    if error is not None:
        return ParseResult(error=error, show_usage=True, log_level=log_level)
    return ParseResult(config=config, log_level=log_level)


def _level_from_name(name: Any) -> Optional[int]:
    if name is None:
        return None
    level = logging.getLevelName(str(name).upper())
    if isinstance(level, int):
        return level
    logger.warning(f"Ignoring unknown log_level '{name}'")
    return None
