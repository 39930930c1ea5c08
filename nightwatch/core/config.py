from __future__ import annotations

import argparse
from dataclasses import dataclass, field


VERSION = "0.3.0"

DEFAULT_FIND_CMD = "find . -type f -not -path '*/\\.git/*'"

# Seconds.
RESTART_DELAY = 0.5
GRACE_PERIOD = 10.0
POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class ExitPolicy:
    exit_on_change: int | None = None
    exit_on_error: bool = False
    exit_on_success: bool = False

    def on_change(self) -> int | None:
        return self.exit_on_change

    def on_exit(self, child_code: int) -> int | None:
        """Tool exit code for a child that exited with no intervening change."""
        if child_code != 0 and self.exit_on_error:
            return child_code
        if child_code == 0 and self.exit_on_success:
            return child_code
        return None


@dataclass(frozen=True)
class Config:
    command: tuple[str, ...]
    files: tuple[str, ...] = ()
    find_cmd: str = DEFAULT_FIND_CMD
    debug: bool = False
    track_directories: bool = False
    policy: ExitPolicy = field(default_factory=ExitPolicy)


def split_files(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def config_from_args(args: argparse.Namespace) -> Config:
    command = list(args.command or [])
    if command and command[0] == "--":
        command = command[1:]
    return Config(
        command=tuple(command),
        files=split_files(args.files),
        find_cmd=args.find_cmd,
        debug=bool(args.debug),
        track_directories=bool(args.dir),
        policy=ExitPolicy(
            exit_on_change=args.exit_on_change,
            exit_on_error=bool(args.exit_on_error),
            exit_on_success=bool(args.exit_on_success),
        ),
    )
