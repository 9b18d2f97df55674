"""Copy one file to or from a remote host over SSH, authenticating with a password."""

from scp_password.config import Direction, ParseResult, TransferConfig, parse_args
from scp_password.endpoint import Endpoint, parse_endpoint
from scp_password.runner import TransferResult, TransferRunner

__version__ = "1.0.0"

__all__ = [
    "Direction", "ParseResult", "TransferConfig", "parse_args",
    "Endpoint", "parse_endpoint",
    "TransferResult", "TransferRunner",
]
