"""
Resolver Layer - Discovers which paths to watch.

Reads raw watch targets from piped standard input, a static comma separated
list, or the output of a discovery command, then turns them into absolute
WatchTargets with directory collapsing applied.
"""

from __future__ import annotations

import logging
import os
import stat
from typing import IO, Optional, Sequence

from .core.errors import DiscoveryError
from .core.paths import WatchTarget, collapse, to_targets
from .core.util import run_shell, split_lines

logger = logging.getLogger(__name__)


def stdin_is_piped(stream: Optional[IO[str]]) -> bool:
    """Check whether *stream* carries piped input rather than a terminal.

    Anything that is not a character device counts, so pipes and redirected
    files qualify while terminals and ``/dev/null`` do not.

    Args:
        stream: Usually ``sys.stdin``; may be None or a non-file object

    Returns:
        bool: True if paths should be read from the stream
    """
    if stream is None:
        return False
    try:
        mode = os.fstat(stream.fileno()).st_mode
    except (AttributeError, OSError, ValueError):
        return False
    return not stat.S_ISCHR(mode)


def read_stdin(stream: IO[str]) -> list[str]:
    # Paths are file names, not text; read raw bytes when the stream has them.
    return split_lines(getattr(stream, "buffer", stream))


def run_discovery(find_cmd: str) -> list[str]:
    """Run the discovery command through the shell and collect its lines.

    Args:
        find_cmd: Shell command whose standard output lists paths, one per line

    Returns:
        list[str]: Non-blank output lines

    Raises:
        DiscoveryError: If no shell is available or the command exits non-zero;
            ``exit_code`` carries the command's own status
    """
    try:
        result = run_shell(find_cmd)
    except OSError as exc:
        raise DiscoveryError(f"cannot run discovery command: {exc}") from exc

    if result.stderr:
        logger.debug("discovery command stderr: %s", result.stderr)
    if result.code != 0:
        detail = f": {result.stderr}" if result.stderr else ""
        raise DiscoveryError(
            f"discovery command exited with {result.code}{detail}",
            exit_code=result.code,
        )
    return split_lines(result.stdout.splitlines())


def raw_targets(
    files: Sequence[str],
    find_cmd: str,
    stdin: Optional[IO[str]] = None,
) -> list[str]:
    """Pick the path source by precedence: stdin, static list, command."""
    if stdin_is_piped(stdin):
        logger.debug("reading files from stdin")
        return read_stdin(stdin)  # type: ignore[arg-type]
    if files:
        logger.debug("reading files from static list: %s", ", ".join(files))
        return list(files)
    logger.debug("reading files from command: %s", find_cmd)
    return run_discovery(find_cmd)


def resolve(
    files: Sequence[str],
    find_cmd: str,
    stdin: Optional[IO[str]] = None,
) -> list[WatchTarget]:
    """Resolve the configured source into the collapsed set of watch targets.

    Args:
        files: Static targets from ``--files``
        find_cmd: Discovery command used when neither stdin nor files apply
        stdin: Standard input stream to inspect for piped paths

    Returns:
        list[WatchTarget]: Absolute, de-duplicated targets in input order

    Raises:
        DiscoveryError: If the discovery command fails
    """
    targets = collapse(to_targets(raw_targets(files, find_cmd, stdin)))
    if not targets:
        logger.warning("no paths to watch; changes will not restart the command")
    return targets
