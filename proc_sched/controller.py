from __future__ import annotations

import logging
import shlex
import subprocess
from abc import ABC, abstractmethod

import psutil

from .clock import MonotonicClock
from .errors import ControlSignalError, SpawnError
from .unit import Unit

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 10


class ProcessControl(ABC):
    """Control surface over the OS process bound to a unit."""

    @abstractmethod
    def dispatch(self, unit: Unit) -> bool:
        """Spawn the unit's process, or resume it if already started.

        Returns True when a fresh process was spawned.
        """

    @abstractmethod
    def poll_completion(self, unit: Unit, deadline: int) -> bool:
        """Poll until the process exits or the clock reaches ``deadline``.

        Returns True if the process exited. Never blocks past the deadline.
        """

    @abstractmethod
    def wait(self, unit: Unit) -> None:
        """Block until the process exits and record its exit status."""

    @abstractmethod
    def preempt(self, unit: Unit) -> None:
        """Suspend a process that did not finish within its slice."""

    @abstractmethod
    def kill(self, unit: Unit) -> None:
        """Force-kill and reap the unit's process if it is still alive."""


class OsProcessController(ProcessControl):
    """Runs units as real OS processes, paused and resumed with SIGSTOP/SIGCONT."""

    def __init__(self, clock: MonotonicClock | None = None, poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS) -> None:
        if poll_interval_ms <= 0:
            msg = "poll_interval_ms must be strictly positive"
            raise ValueError(msg)
        self.clock = clock or MonotonicClock()
        self.poll_interval_ms = poll_interval_ms

    def dispatch(self, unit: Unit) -> bool:
        if unit.started:
            self._resume(unit)
            return False

        try:
            argv = shlex.split(unit.command)
        except ValueError as exc:
            unit.error = True
            raise SpawnError(unit.command, str(exc)) from exc
        if not argv:
            unit.error = True
            raise SpawnError(unit.command, "empty argument vector")

        try:
            unit.process = psutil.Popen(argv, stdin=subprocess.DEVNULL)
        except OSError as exc:
            unit.error = True
            raise SpawnError(unit.command, exc.strerror or str(exc)) from exc

        unit.started = True
        logger.debug("spawned %r as pid %d", unit.command, unit.process.pid)
        return True

    def poll_completion(self, unit: Unit, deadline: int) -> bool:
        process = self._bound(unit)
        while True:
            exit_code = process.poll()
            if exit_code is not None:
                self._record_exit(unit, exit_code)
                return True
            remaining = deadline - self.clock.now_ms()
            if remaining <= 0:
                return False
            self.clock.sleep_ms(min(self.poll_interval_ms, remaining))

    def wait(self, unit: Unit) -> None:
        exit_code = self._bound(unit).wait()
        self._record_exit(unit, exit_code)

    def preempt(self, unit: Unit) -> None:
        process = self._bound(unit)
        try:
            process.suspend()
        except psutil.NoSuchProcess as exc:
            exit_code = process.poll()
            if exit_code is None:
                unit.error = True
                raise ControlSignalError(unit.command, "suspend", str(exc)) from exc
            # exited between the last poll and the signal
            self._record_exit(unit, exit_code)
            return
        except psutil.AccessDenied as exc:
            unit.error = True
            raise ControlSignalError(unit.command, "suspend", str(exc)) from exc

    def kill(self, unit: Unit) -> None:
        process = unit.process
        if process is None or process.poll() is not None:
            return
        try:
            process.kill()
        except psutil.NoSuchProcess:
            logger.debug("pid %d for %r already gone", process.pid, unit.command)
        process.wait()

    def _resume(self, unit: Unit) -> None:
        process = self._bound(unit)
        try:
            process.resume()
        except psutil.NoSuchProcess as exc:
            exit_code = process.poll()
            if exit_code is None:
                unit.error = True
                raise ControlSignalError(unit.command, "resume", str(exc)) from exc
            self._record_exit(unit, exit_code)
        except psutil.AccessDenied as exc:
            unit.error = True
            raise ControlSignalError(unit.command, "resume", str(exc)) from exc

    def _record_exit(self, unit: Unit, exit_code: int) -> None:
        unit.record_exit(exit_code)
        if exit_code != 0:
            logger.warning("%r exited abnormally with status %d", unit.command, exit_code)

    @staticmethod
    def _bound(unit: Unit) -> psutil.Popen:
        if unit.process is None:
            msg = f"unit {unit.command!r} has no bound process"
            raise RuntimeError(msg)
        return unit.process
