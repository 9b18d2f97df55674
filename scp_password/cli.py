#!/usr/bin/env python3
"""
scp-password command line entry point.

The only place that writes to stdout/stderr or sets the exit status;
parsing and copying report back through ParseResult and TransferResult.
"""

import sys
from typing import Optional, Sequence, TextIO

from scp_password.config import parse_args, usage
from scp_password.progress import ScpProgressReporter
from scp_password.rich_progress_observer import RichProgressObserver
from scp_password.runner import TransferRunner
from scp_password.utils import build_logger, get_shared_console, set_log_level

logger = build_logger(__name__)

EXIT_OK, EXIT_FAILURE = 0, 1


def run(argv: Sequence[str], stdout: TextIO, stderr: TextIO,
        runner: Optional[TransferRunner] = None) -> int:
    """
    Parse `argv`, copy the file and report the outcome.

    Returns:
        The process exit status
    """
    parsed = parse_args(argv)
    if parsed.log_level is not None:
        set_log_level(parsed.log_level)

    if not parsed.ok:
        if parsed.error:
            print(parsed.error, file=stderr)
        if parsed.show_usage:
            print(file=stdout)
            print(usage(), file=stdout)
        return EXIT_FAILURE

    config = parsed.config
    reporter = ScpProgressReporter()
    runner = runner or TransferRunner(reporter=reporter)

    if config.show_progress and get_shared_console().is_terminal:
        with RichProgressObserver() as observer:
            reporter.add_observer(observer)
            result = runner.run(config)
    else:
        result = runner.run(config)

    if not result.ok:
        print(result.message, file=stderr)
        return EXIT_FAILURE

    print(result.message, file=stdout)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None):
    """Console script entry point"""
    if argv is None:
        argv = sys.argv[1:]
    try:
        code = run(argv, sys.stdout, sys.stderr)
    except KeyboardInterrupt:
        print("interrupted", file=sys.stderr)
        code = EXIT_FAILURE
    sys.exit(code)


if __name__ == "__main__":
    main()
