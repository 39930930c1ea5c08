from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatchTarget:
    path: str
    is_directory: bool = False


def absolute(raw: str) -> str | None:
    try:
        return os.path.abspath(raw)
    except (OSError, ValueError) as exc:
        logger.debug("skipping %r: %s", raw, exc)
        return None


def to_target(raw: str) -> WatchTarget | None:
    path = absolute(raw)
    if path is None:
        return None
    return WatchTarget(path=path, is_directory=os.path.isdir(path))


def to_targets(raw_paths: Iterable[str]) -> list[WatchTarget]:
    targets = []
    for raw in raw_paths:
        target = to_target(raw)
        if target is not None:
            targets.append(target)
    return targets


def watched_dir(target: WatchTarget) -> str:
    # Directory whose non-recursive watch delivers events for this target.
    if target.is_directory:
        return target.path
    return os.path.dirname(target.path)


def collapse(targets: Iterable[WatchTarget]) -> list[WatchTarget]:
    """Drop duplicates and files whose parent directory is itself a target.

    Only direct children are collapsed: directory watches are not recursive,
    so ``/a`` covers ``/a/b.txt`` but not ``/a/sub/c.txt``. Input order is
    kept for the survivors.
    """
    targets = list(targets)
    dirs = {t.path for t in targets if t.is_directory}
    seen: set[str] = set()
    out: list[WatchTarget] = []
    for target in targets:
        if target.path in seen:
            continue
        seen.add(target.path)
        if not target.is_directory and os.path.dirname(target.path) in dirs:
            logger.debug("%s covered by its directory", target.path)
            continue
        out.append(target)
    return out
