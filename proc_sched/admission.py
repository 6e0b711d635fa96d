from __future__ import annotations

import logging
import os
import selectors
import sys
from abc import ABC, abstractmethod
from collections import deque
from typing import Sequence, TextIO

from .clock import MonotonicClock
from .errors import ExitRequested
from .workload import Arrival

logger = logging.getLogger(__name__)

EXIT_COMMAND = "exit"
_READ_CHUNK = 4096


class AdmissionSource(ABC):
    """Feed of incoming commands consumed by an engine between dispatches."""

    @abstractmethod
    def poll(self) -> list[str]:
        """Return commands that arrived since the last poll, without blocking.

        Raises ExitRequested when the termination line is read.
        """

    @property
    def closed(self) -> bool:
        """True once no further commands can arrive."""
        return False


def _accept(line: str) -> str | None:
    line = line.strip()
    if not line:
        return None
    if line == EXIT_COMMAND:
        raise ExitRequested
    return line


class BatchSource(AdmissionSource):
    """A fixed batch, delivered in full on the first poll."""

    def __init__(self, commands: Sequence[str]) -> None:
        self._pending = list(commands)

    def poll(self) -> list[str]:
        commands: list[str] = []
        while self._pending:
            accepted = _accept(self._pending.pop(0))
            if accepted is not None:
                commands.append(accepted)
        return commands

    @property
    def closed(self) -> bool:
        return not self._pending


class StreamSource(AdmissionSource):
    """Non-blocking line reader over a file descriptor, stdin by default.

    Pipes and terminals are watched with a selector. Regular files cannot be
    registered with epoll, so they are read directly; a read from a regular
    file never blocks.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        stream = stream if stream is not None else sys.stdin
        self._fd = stream.fileno()
        self._selector: selectors.BaseSelector | None = selectors.DefaultSelector()
        try:
            self._selector.register(self._fd, selectors.EVENT_READ)
        except PermissionError:
            self._selector.close()
            self._selector = None
            os.set_blocking(self._fd, False)
            logger.debug("fd %d cannot be watched by a selector; reading it directly", self._fd)
        self._buffer = b""
        self._eof = False

    def poll(self) -> list[str]:
        while not self._eof and self._readable():
            try:
                chunk = os.read(self._fd, _READ_CHUNK)
            except BlockingIOError:
                break
            if not chunk:
                self._eof = True
                if self._selector is not None:
                    self._selector.unregister(self._fd)
                logger.debug("admission stream reached end of input")
                break
            self._buffer += chunk

        lines = self._buffer.split(b"\n")
        self._buffer = lines.pop()
        if self._eof and self._buffer:
            lines.append(self._buffer)
            self._buffer = b""

        commands: list[str] = []
        for raw in lines:
            accepted = _accept(raw.decode(errors="replace"))
            if accepted is not None:
                commands.append(accepted)
        return commands

    @property
    def closed(self) -> bool:
        return self._eof and not self._buffer

    def _readable(self) -> bool:
        if self._selector is None:
            return True
        return bool(self._selector.select(timeout=0))


class TimedSource(AdmissionSource):
    """Replays arrivals at fixed millisecond offsets from the first poll."""

    def __init__(self, arrivals: Sequence[Arrival], clock: MonotonicClock | None = None) -> None:
        self.clock = clock or MonotonicClock()
        self._pending: deque[Arrival] = deque(sorted(arrivals, key=lambda a: a.at))
        self._origin: int | None = None

    def poll(self) -> list[str]:
        now = self.clock.now_ms()
        if self._origin is None:
            self._origin = now
        elapsed = now - self._origin
        commands: list[str] = []
        while self._pending and self._pending[0].at <= elapsed:
            accepted = _accept(self._pending.popleft().command)
            if accepted is not None:
                commands.append(accepted)
        return commands

    @property
    def closed(self) -> bool:
        return not self._pending
