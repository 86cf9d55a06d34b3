"""Error memory: posting, de-duplicating and listing error messages."""

from dataclasses import dataclass
from enum import IntEnum
from itertools import takewhile
from typing import Optional

ERROR_BUF_SIZE = 4
NO_ERRORS = "No Errors"
NONE = "NONE"

_U32 = 0xFFFFFFFF


class ErrorType(IntEnum):
    STOP = 0
    DERATE = 1
    WARN = 2


@dataclass(frozen=True)
class _Entry:
    msg: Optional[str]
    time: int


class ErrorMessages:
    """Ring buffer of posted errors, each postable once until unposted.

    ``messages`` maps message names to their ErrorType.
    """

    def __init__(self, messages, buffer_size=ERROR_BUF_SIZE):
        if buffer_size < 1:
            raise ValueError("buffer size must be at least 1")
        self._types = {name: ErrorType(kind) for name, kind in dict(messages).items()}
        if NONE in self._types:
            raise ValueError(f"{NONE!r} is reserved")
        self._buffer = [_Entry(None, 0)] * buffer_size
        self._time = 0
        self._current = 0
        self._last_print = 0
        self._posted = set()
        self._last_error = NONE

    @property
    def time(self):
        return self._time

    @property
    def last_error(self):
        """Name of the most recently posted error, or "NONE"."""
        return self._last_error

    def set_time(self, time):
        """Set the timestamp recorded with subsequently posted errors."""
        self._time = time & _U32

    def post(self, msg):
        """Record an error unless already posted or no time has been set."""
        if msg not in self._types:
            raise KeyError(msg)
        if msg in self._posted or self._time == 0:
            return
        self._last_error = msg
        self._buffer[self._current] = _Entry(msg, self._time)
        self._posted.add(msg)
        self._current = (self._current + 1) % len(self._buffer)

    def unpost_all(self):
        """Make every message postable again; the error memory is kept."""
        self._posted.clear()

    def new_errors(self):
        """Formatted errors posted since the last call."""
        lines = []
        while self._last_print != self._current:
            entry = self._buffer[self._last_print]
            lines.append(self.format_error(entry.time, entry.msg))
            self._last_print = (self._last_print + 1) % len(self._buffer)
        return lines

    def all_errors(self):
        """Formatted contents of the error memory, in slot order."""
        if self._buffer[0].time == 0:
            return [NO_ERRORS]
        return [
            self.format_error(entry.time, entry.msg)
            for entry in takewhile(lambda e: e.time > 0, self._buffer)
        ]

    def format_error(self, time, msg):
        return f"[{time}]: {self._types[msg].name} - {msg}"