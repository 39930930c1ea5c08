from __future__ import annotations

import argparse
import logging
import sys
from typing import IO, Sequence

from nightwatch.controller import Controller
from nightwatch.core.config import DEFAULT_FIND_CMD, VERSION, Config, config_from_args
from nightwatch.core.errors import NightwatchError, UsageError
from nightwatch.core.logs import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nightwatch",
        description="A utility for running arbitrary commands when files change",
    )
    parser.add_argument(
        "--version", action="version", version=f"nightwatch {VERSION}"
    )
    parser.add_argument("--debug", action="store_true", help="Debug logging.")
    parser.add_argument(
        "--find-cmd",
        default=DEFAULT_FIND_CMD,
        help="Command to list files (or dirs) to watch",
    )
    parser.add_argument(
        "--files", help="Files (or dirs) to watch (comma separated list)"
    )
    parser.add_argument(
        "-d",
        "--dir",
        action="store_true",
        help="Also restart when new paths are created in watched directories.",
    )
    parser.add_argument(
        "--exit-on-change",
        type=int,
        metavar="CODE",
        help="Exit on file change with a given code.",
    )
    parser.add_argument(
        "--exit-on-error",
        action="store_true",
        help="Exit with the process's code if it returns an error code.",
    )
    parser.add_argument(
        "--exit-on-success",
        action="store_true",
        help="Exit if the process returns with code 0.",
    )
    parser.add_argument("command", nargs=argparse.REMAINDER)
    return parser


def parse_config(argv: Sequence[str] | None = None) -> Config:
    args = build_parser().parse_args(argv)
    config = config_from_args(args)
    if not config.command:
        raise UsageError("No command specified")
    return config


def run(argv: Sequence[str] | None = None, stdin: IO[str] | None = None) -> int:
    configure_logging()
    try:
        config = parse_config(argv)
        configure_logging(config.debug)
        controller = Controller(config, stdin=stdin if stdin is not None else sys.stdin)
        return controller.run()
    except NightwatchError as exc:
        logger.error("%s", exc)
        return exc.exit_code


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
