"""
Controller Layer - Wires the tool together and owns shutdown.

Resolves the watch targets, starts the watcher and the supervisor, listens
for SIGINT/SIGTERM, and sequences the stop: signal the child, wait for it
within a grace period, release the watcher, report the exit code.
"""

from __future__ import annotations

import logging
import queue
import signal
import threading
from typing import IO, Callable, Optional

from .core.channel import RestartChannel
from .core.config import GRACE_PERIOD, RESTART_DELAY, Config
from .core.process import signal_name
from .resolver import resolve
from .supervisor import ProcessSupervisor
from .watcher import EventPump, WatchSubscription

logger = logging.getLogger(__name__)

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class Controller:
    """Top-level driver for one invocation of the tool.

    Args:
        config: Frozen configuration built from the command line
        stdin: Stream inspected for piped watch targets
        subscription_factory: Builds the watch subscription (tests swap it)
        grace_period: Upper bound, in seconds, on waiting for the child
            after a stop request
        restart_delay: Pause between generations, in seconds
    """

    def __init__(
        self,
        config: Config,
        *,
        stdin: Optional[IO[str]] = None,
        subscription_factory: Callable[[], WatchSubscription] = WatchSubscription,
        grace_period: float = GRACE_PERIOD,
        restart_delay: float = RESTART_DELAY,
        stdout: Optional[IO[bytes]] = None,
        stderr: Optional[IO[bytes]] = None,
    ):
        self.config = config
        self.stdin = stdin
        self.subscription_factory = subscription_factory
        self.grace_period = grace_period
        self.channel = RestartChannel()
        self.supervisor = ProcessSupervisor(
            config.command,
            self.channel,
            config.policy,
            restart_delay=restart_delay,
            stdout=stdout,
            stderr=stderr,
        )
        self._os_signals: "queue.Queue[int]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._result: Optional[int] = None
        self._error: Optional[BaseException] = None

    def request_stop(self, signum: int = signal.SIGTERM) -> None:
        """Ask the controller to shut down, exactly as an OS signal would."""
        self._os_signals.put(signum)

    def run(self) -> int:
        """Run until an exit policy fires or a stop is requested.

        Returns:
            int: Exit code for the tool

        Raises:
            NightwatchError: On fatal setup errors or if the child cannot be
                spawned
        """
        previous = self._install_signal_handlers()
        subscription = None
        pump = None
        try:
            targets = resolve(self.config.files, self.config.find_cmd, self.stdin)
            if not self._os_signals.empty():
                logger.debug("stop requested during discovery, not starting")
                return 0

            subscription = self.subscription_factory()
            pump = EventPump(subscription, self.channel, self.config.track_directories)
            subscription.add_all(targets)
            pump.start()
            return self._supervise()
        finally:
            self._restore_signal_handlers(previous)
            if pump is not None:
                pump.stop()
            if subscription is not None:
                subscription.close()

    def _supervise(self) -> int:
        self._thread = threading.Thread(target=self._run_supervisor, name="Supervisor", daemon=True)
        self._thread.start()

        while self._thread.is_alive():
            try:
                signum = self._os_signals.get(timeout=0.2)
            except queue.Empty:
                continue
            return self._shutdown(signum)
        return self._finish()

    def _run_supervisor(self) -> None:
        try:
            self._result = self.supervisor.run()
        except BaseException as exc:
            self._error = exc

    def _shutdown(self, signum: int) -> int:
        logger.debug("received %s, stopping", signal_name(signum))
        self.supervisor.stop(signum)
        self._thread.join(self.grace_period)
        if self._thread.is_alive():
            code = self.supervisor.last_exit_code
            logger.warning(
                "process did not exit within %.0fs, exiting anyway", self.grace_period
            )
            return code if code is not None else 0
        return self._finish()

    def _finish(self) -> int:
        if self._error is not None:
            raise self._error
        return self._result if self._result is not None else 0

    def _install_signal_handlers(self) -> dict:
        previous = {}
        if threading.current_thread() is not threading.main_thread():
            return previous
        for signum in STOP_SIGNALS:
            previous[signum] = signal.signal(signum, self._on_signal)
        return previous

    @staticmethod
    def _restore_signal_handlers(previous: dict) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    def _on_signal(self, signum, frame) -> None:
        self._os_signals.put(signum)
