import os
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from rich.console import Console
from rich.logging import RichHandler

PROJECT_LOGGER = "scp_password"

# Global shared console singleton
_shared_console = None
_console_lock = threading.Lock()


def get_shared_console() -> Console:
    """Return the shared Rich Console (bound to stderr).

    Log records and the progress meter are both drawn on this console so
    that they never garble each other; stdout stays reserved for the
    transfer summary.
    """
    global _shared_console
    if _shared_console is None:
        with _console_lock:
            if _shared_console is None:
                _shared_console = Console(stderr=True)
    return _shared_console


def reset_shared_console():
    """Drop the shared console (mainly for tests)"""
    global _shared_console
    with _console_lock:
        _shared_console = None


def default_log_level() -> int:
    """Log level from SCP_PASSWORD_LOG_LEVEL, WARNING when unset or unknown"""
    name = os.environ.get('SCP_PASSWORD_LOG_LEVEL', 'WARNING').upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def build_logger(name: str = PROJECT_LOGGER, level: Optional[int] = None,
                 force_rich: Optional[bool] = None) -> logging.Logger:
    """Create a logger writing to stderr, through Rich when enabled.

    Args:
        name: Logger name, defaults to the project logger
        level: Logging level, defaults to SCP_PASSWORD_LOG_LEVEL
        force_rich: Force Rich on/off. None = read USE_RICH_LOGGING

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name if name else PROJECT_LOGGER)

    # Already configured, don't stack handlers
    if logger.handlers:
        return logger

    if level is None:
        level = default_log_level()

    use_rich = force_rich
    if use_rich is None:
        use_rich = os.environ.get('USE_RICH_LOGGING', 'true').lower() == 'true'

    if use_rich:
        handler = RichHandler(
            console=get_shared_console(),
            rich_tracebacks=True,
            show_path=False,
            show_time=True
        )
        # Rich formats the record itself, only the message is needed
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='[%X]'
        ))

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def set_log_level(level: int) -> None:
    """Apply `level` to every logger created for this project"""
    for name in list(logging.root.manager.loggerDict):
        if name == PROJECT_LOGGER or name.startswith(PROJECT_LOGGER + '.'):
            logging.getLogger(name).setLevel(level)


logger = build_logger(__name__)


class ConfigFileError(Exception):
    """Raised when a defaults file cannot be read or is malformed"""


class ConfigLoader:
    """
    Loads transfer defaults from a YAML file.

    Only the keys in KNOWN_KEYS are kept; a password is never taken from
    the file.
    """
    DEFAULT_PATH = Path('~/.scp-password.yml')
    KNOWN_KEYS = ('port', 'connect_timeout', 'known_hosts',
                  'allow_hostnames', 'quiet', 'log_level')

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.explicit = config_path is not None
        self.config_path = Path(config_path or self.DEFAULT_PATH).expanduser()
        self.config: Dict[str, Any] = {}

    def load_config(self) -> Dict[str, Any]:
        """
        Load defaults from the YAML file.

        A missing default file yields an empty mapping; a missing file that
        was named explicitly is an error.

        Returns:
            Dict of recognised settings

        Raises:
            ConfigFileError: unreadable file, bad YAML or not a mapping
        """
        if not self.config_path.is_file():
            if self.explicit:
                raise ConfigFileError(f"cannot read config file: {self.config_path}")
            logger.debug(f"No defaults file at {self.config_path}")
            return self.config

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigFileError(f"cannot read config file: {self.config_path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigFileError(f"cannot read config file: {self.config_path}: expected a mapping")

        for key in loaded:
            if key not in self.KNOWN_KEYS:
                logger.warning(f"Ignoring unknown setting '{key}' in {self.config_path}")
        self.config = {k: v for k, v in loaded.items() if k in self.KNOWN_KEYS}
        logger.debug(f"Configuration loaded from {self.config_path}")
        return self.config
