"""endpoint.py

One side of a transfer and the `[user@]host:path` grammar used on the
command line.
"""
import re
from dataclasses import dataclass
from typing import Optional

IPV4_HOST = re.compile(r"\d+\.\d+\.\d+\.\d+")


@dataclass(frozen=True)
class Endpoint:
    """A local path, or a path on a remote host when `host` is set."""
    path: str
    host: Optional[str] = None
    username: Optional[str] = None

    @property
    def is_remote(self) -> bool:
        return self.host is not None

    def __str__(self) -> str:
        if self.host is None:
            return self.path
        if self.username is None:
            return f"{self.host}:{self.path}"
        return f"{self.username}@{self.host}:{self.path}"


def _looks_like_host(text: str, allow_hostnames: bool) -> bool:
    if IPV4_HOST.fullmatch(text):
        return True
    if not allow_hostnames:
        return False
    # a single letter is a Windows drive, not a host
    return len(text) > 1 and '/' not in text and '\\' not in text


def parse_endpoint(token: str, allow_hostnames: bool = False) -> Endpoint:
    """Parse one positional argument into an Endpoint.

    Grammar: ``path``, ``host:path``, ``user@host:path`` or ``user@path``.
    Only IPv4 literals are recognised as hosts unless `allow_hostnames`
    is set; ``example.com:file`` is otherwise a local path.

    Args:
        token: the raw argument
        allow_hostnames: also accept DNS names before the first ':'

    Returns:
        The parsed Endpoint
    """
    username = None
    user, sep, rest = token.partition('@')
    if sep:
        username = user
        token = rest

    host, sep, path = token.partition(':')
    if sep and _looks_like_host(host, allow_hostnames):
        return Endpoint(path=path, host=host, username=username)
    return Endpoint(path=token, username=username)
