from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from typing import IO, Sequence

import psutil

from .errors import SpawnError

logger = logging.getLogger(__name__)

_CHUNK = 64 * 1024


def spawn(command: Sequence[str]) -> subprocess.Popen:
    """Start *command* as the leader of its own process group."""
    kwargs: dict = {}
    if os.name == "posix":
        kwargs["start_new_session"] = True
    else:  # pragma: no cover - windows only
        kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
    try:
        return subprocess.Popen(
            list(command),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=os.environ.copy(),
            **kwargs,
        )
    except (OSError, ValueError) as exc:
        raise SpawnError(f"failed to start {command[0]!r}: {exc}") from exc


def relay(source: IO[bytes], sink: IO[bytes] | None, name: str) -> threading.Thread:
    """Copy *source* into *sink* on a daemon thread until the pipe closes.

    The pipe keeps being drained after *sink* fails so the child never blocks
    on a full pipe.
    """

    def _copy() -> None:
        target = sink
        try:
            while True:
                chunk = source.read1(_CHUNK)  # type: ignore[attr-defined]
                if not chunk:
                    break
                if target is None:
                    continue
                try:
                    target.write(chunk)
                    target.flush()
                except (OSError, ValueError) as exc:
                    logger.debug("%s relay lost its sink: %s", name, exc)
                    target = None
        except (OSError, ValueError) as exc:
            logger.debug("%s relay stopped: %s", name, exc)
        finally:
            source.close()

    thread = threading.Thread(target=_copy, name=f"relay-{name}", daemon=True)
    thread.start()
    return thread


def terminate_tree(proc: subprocess.Popen, signum: int) -> None:
    """Deliver *signum* to *proc* and every process it spawned."""
    if os.name == "posix":
        try:
            # start_new_session makes the child's pid its process group id.
            os.killpg(proc.pid, signum)
        except ProcessLookupError:
            logger.debug("process group %d already gone", proc.pid)
        except PermissionError:
            # macOS refuses killpg once the group leader is a zombie.
            proc.send_signal(signum)
        return

    try:  # pragma: no cover - windows only
        parent = psutil.Process(proc.pid)
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:  # pragma: no cover
        return
    for child in children:  # pragma: no cover
        try:
            child.terminate()
        except psutil.NoSuchProcess:
            pass
    try:  # pragma: no cover
        parent.terminate()
    except psutil.NoSuchProcess:
        pass


def exit_status(returncode: int) -> int:
    """Map Popen's negative "killed by signal N" codes to 128 + N."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)
