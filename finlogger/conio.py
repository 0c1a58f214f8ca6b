"""Character console: keyboard polling, line input and formatted output."""

from __future__ import annotations

import sys
from collections import deque
from typing import Optional, TextIO, Union

NL = "\r\n"
PRINTF_BUFLEN = 1536


class Console:
    """A console over pending input, an optional input stream and an output stream.

    Characters handed to ``feed`` are read first; when none are pending,
    characters are read from ``source``. Running out of input raises EOFError.
    """

    def __init__(self, source: Optional[TextIO] = None,
                 sink: Optional[TextIO] = None) -> None:
        self._pending: deque = deque()
        self._source = source
        self._sink = sink if sink is not None else sys.stdout

    def feed(self, text: str) -> None:
        """Queue ``text`` as typed input."""
        self._pending.extend(text)

    def kbhit(self) -> int:
        """Number of characters waiting to be read."""
        return len(self._pending)

    def getch(self) -> str:
        """Read one character."""
        if self._pending:
            return self._pending.popleft()
        if self._source is not None:
            ch = self._source.read(1)
            if ch:
                return ch
        raise EOFError("no console input available")

    def putch(self, ch: Union[str, int]) -> Union[str, int]:
        """Write one character and return it."""
        self._write(chr(ch) if isinstance(ch, int) else ch)
        return ch

    def getline(self, limit: int) -> str:
        """Read an echoed line of at most ``limit`` characters.

        Carriage return ends the line; backspace erases the last character.
        """
        chars = []
        while len(chars) < limit:
            ch = self.getch()
            if ch == "\b":
                if chars:
                    chars.pop()
                self._write("\b \b")
            elif ch == "\r":
                self._write("\r\n")
                return "".join(chars)
            else:
                chars.append(ch)
                self._write(ch)
        return "".join(chars)

    def printf(self, fmt: str, *args: object) -> int:
        """Format with C-style ``fmt`` and write it.

        Output is cut to the buffer size; the untruncated length is returned.
        """
        text = fmt % args
        self._write(text[:PRINTF_BUFLEN - 1])
        return len(text)

    def _write(self, text: str) -> None:
        self._sink.write(text)
        flush = getattr(self._sink, "flush", None)
        if flush is not None:
            flush()