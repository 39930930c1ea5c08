"""
Supervisor Layer - Child process lifecycle.

Runs the supervised command one generation at a time, races each run
against restart signals, and applies the exit policy when a generation ends.
"""

from __future__ import annotations

import logging
import signal
import sys
import threading
from enum import Enum
from typing import IO, Optional, Sequence

from .core.channel import RestartChannel
from .core.config import POLL_INTERVAL, RESTART_DELAY, ExitPolicy
from .core.errors import SpawnError, UsageError
from .core.events import RestartSignal
from .core.process import exit_status, relay, signal_name, spawn, terminate_tree

logger = logging.getLogger(__name__)

# A grandchild may keep a pipe open after the child exits; relays are not
# waited on longer than this.
RELAY_JOIN_TIMEOUT = 1.0


class State(Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    EXITED = "exited"


class Generation:
    """State of one spawn-to-exit run of the child.

    Whether the run ended because of a signal or on its own is decided here,
    under the generation's lock, so a signal that arrives late for this run
    can never leak into the next one.
    """

    def __init__(self, number: int):
        self.number = number
        self.state = State.IDLE
        self.change_detected = False
        self.exit_code: Optional[int] = None
        self.proc = None
        self.exited = threading.Event()
        self._lock = threading.Lock()

    def advance(self, state: State) -> None:
        with self._lock:
            self.state = state

    def claim(self) -> bool:
        """Take the signal path for this run; False if it already ended."""
        with self._lock:
            if self.state is not State.RUNNING:
                return False
            # Popen records the status when it reaps the child, before wait() returns.
            if self.proc is not None and self.proc.returncode is not None:
                return False
            self.state = State.STOPPING
            self.change_detected = True
            return True

    def finish(self, exit_code: Optional[int]) -> None:
        with self._lock:
            self.state = State.EXITED
            self.exit_code = exit_code
        self.exited.set()

    @property
    def running(self) -> bool:
        with self._lock:
            return self.state in (State.STARTING, State.RUNNING)


class ProcessSupervisor:
    """Runs *command* repeatedly until an exit condition applies.

    Args:
        command: argv of the supervised command
        channel: Mailbox delivering restart and stop signals
        policy: Exit policy deciding when the tool itself should exit
        restart_delay: Pause between generations, in seconds
        poll_interval: How often a generation's signal listener rechecks
            whether the child already exited
        stdout: Binary sink for the child's stdout (default: ours)
        stderr: Binary sink for the child's stderr (default: ours)
    """

    def __init__(
        self,
        command: Sequence[str],
        channel: RestartChannel,
        policy: Optional[ExitPolicy] = None,
        *,
        restart_delay: float = RESTART_DELAY,
        poll_interval: float = POLL_INTERVAL,
        stdout: Optional[IO[bytes]] = None,
        stderr: Optional[IO[bytes]] = None,
    ):
        if not command:
            raise UsageError("No command specified")
        self.command = list(command)
        self.channel = channel
        self.policy = policy or ExitPolicy()
        self.restart_delay = restart_delay
        self.poll_interval = poll_interval
        self._stdout = stdout
        self._stderr = stderr
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._current: Optional[Generation] = None
        self.generations = 0
        self.last_exit_code: Optional[int] = None

    @property
    def current(self) -> Optional[Generation]:
        return self._current

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    def run(self) -> int:
        """Supervise the command and return the tool's exit code.

        Raises:
            SpawnError: If the command cannot be started or waited on
        """
        while True:
            gen = self._begin()
            if gen is None:
                return self.last_exit_code if self.last_exit_code is not None else 0
            code = self._run_generation(gen)
            outcome = self._outcome(gen, code)
            if outcome is not None:
                return outcome
            logger.debug("restarting %s", self.command[0])
            self._stopping.wait(self.restart_delay)

    def stop(self, signum: int = signal.SIGTERM) -> bool:
        """Mark the supervisor as stopping and signal a running child.

        The signal bypasses coalescing. Returns True if a child was signalled.
        """
        with self._lock:
            self._stopping.set()
            gen = self._current
            if gen is None or not gen.running:
                return False
            logger.debug("stop requested: %s", signal_name(signum))
            self.channel.put(RestartSignal(signum))
            return True

    def _begin(self) -> Optional[Generation]:
        with self._lock:
            if self._stopping.is_set():
                return None
            stale = self.channel.clear()
            if stale is not None:
                logger.debug("discarding signal left over from generation %d", self.generations)
            self.generations += 1
            gen = Generation(self.generations)
            gen.advance(State.STARTING)
            self._current = gen
            return gen

    def _run_generation(self, gen: Generation) -> int:
        try:
            proc = spawn(self.command)
        except SpawnError:
            gen.finish(None)
            raise
        gen.proc = proc

        relays = [
            relay(proc.stdout, self._sink(self._stdout, sys.stdout), "stdout"),
            relay(proc.stderr, self._sink(self._stderr, sys.stderr), "stderr"),
        ]
        gen.advance(State.RUNNING)
        logger.debug("process (pid: %d) started", proc.pid)

        listener = threading.Thread(
            target=self._listen,
            args=(gen,),
            name=f"signal-listener-{gen.number}",
            daemon=True,
        )
        listener.start()

        try:
            returncode = proc.wait()
        except OSError as exc:
            gen.finish(None)
            raise SpawnError(f"cannot wait for process {proc.pid}: {exc}") from exc

        code = exit_status(returncode)
        gen.finish(code)
        self.last_exit_code = code
        listener.join()
        for thread in relays:
            thread.join(RELAY_JOIN_TIMEOUT)
        logger.debug("process (pid: %d) exited with %d", proc.pid, code)
        return code

    def _listen(self, gen: Generation) -> None:
        while not gen.exited.is_set():
            restart = self.channel.get(timeout=self.poll_interval)
            if restart is None:
                continue
            if not gen.claim():
                logger.debug("generation %d already ended, dropping signal", gen.number)
                return
            logger.debug("got signal %s", signal_name(restart.signum))
            terminate_tree(gen.proc, restart.signum)
            return

    def _outcome(self, gen: Generation, code: int) -> Optional[int]:
        if self._stopping.is_set():
            return code
        if gen.change_detected:
            return self.policy.on_change()
        return self.policy.on_exit(code)

    @staticmethod
    def _sink(override: Optional[IO[bytes]], stream: IO[str]) -> Optional[IO[bytes]]:
        if override is not None:
            return override
        return getattr(stream, "buffer", None)
