from __future__ import annotations


class NightwatchError(Exception):
    """Base error; ``exit_code`` is what the tool exits with."""

    exit_code = 1

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class UsageError(NightwatchError):
    """Raised when the command line cannot be acted on."""
    pass


class DiscoveryError(NightwatchError):
    """Raised when the file discovery command fails."""
    pass


class WatchError(NightwatchError):
    """Raised when a path cannot be subscribed for change notifications."""
    pass


class SpawnError(NightwatchError):
    """Raised when the supervised command cannot be started or waited on."""
    pass
