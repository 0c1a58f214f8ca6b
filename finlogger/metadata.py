"""Persistent table of recorded sessions and their start times."""

from __future__ import annotations

import os
import stat
import struct
from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from finlogger.flog import FaultLog, FlogCode

_PAIR = struct.Struct("<II")


class MetadataError(Exception):
    """Raised when the metadata file cannot be read or updated."""

    def __init__(self, message: str, code: Optional[FlogCode] = None,
                 errno: int = 0) -> None:
        super().__init__(message)
        self.code = code
        self.errno = errno


@dataclass
class MetadataHeader:
    """Next session index to hand out and number of entries in the table."""

    next_session_index: int = 0
    n_entries: int = 0

    SIZE: ClassVar[int] = _PAIR.size

    def pack(self) -> bytes:
        return _PAIR.pack(self.next_session_index, self.n_entries)

    @classmethod
    def unpack(cls, data: bytes) -> "MetadataHeader":
        return cls(*_PAIR.unpack(bytes(data)))


@dataclass(frozen=True)
class TimestampEntry:
    """A session index with its start time; zero means the time is unknown."""

    session_idx: int
    timestamp: int = 0

    SIZE: ClassVar[int] = _PAIR.size

    def pack(self) -> bytes:
        return _PAIR.pack(self.session_idx, self.timestamp)

    @classmethod
    def unpack(cls, data: bytes) -> "TimestampEntry":
        return cls(*_PAIR.unpack(bytes(data)))


class MetadataStore:
    """A header followed by one fixed-size entry per session, kept in one file.

    The in-memory header is authoritative and is written back on every change.
    """

    def __init__(self, path: Union[str, os.PathLike],
                 fault_log: Optional[FaultLog] = None) -> None:
        self.path = os.fspath(path)
        self.fault_log = fault_log
        self.header = MetadataHeader()
        self.valid = False

    def _fail(self, code: FlogCode, message: str,
              exc: Optional[OSError] = None) -> None:
        err = (exc.errno or 0) if exc is not None else 0
        if self.fault_log is not None:
            self.fault_log.add_error(code, err)
        raise MetadataError(message, code, err) from exc

    def load_or_create(self) -> MetadataHeader:
        """Read the header from disk, creating an empty file when there is none."""
        self.header = MetadataHeader()
        self.valid = False
        try:
            info = os.stat(self.path)
        except FileNotFoundError:
            info = None
        except OSError as exc:
            self._fail(FlogCode.FS_STAT_FAIL, f"cannot stat {self.path}", exc)

        if info is not None:
            if stat.S_ISREG(info.st_mode):
                return self._load()
            self._remove_obstacle()

        try:
            with open(self.path, "wb") as handle:
                handle.write(self.header.pack())
        except OSError as exc:
            self._fail(FlogCode.FS_CREAT_FAIL, f"cannot create {self.path}", exc)
        self.valid = True
        return self.header

    def _load(self) -> MetadataHeader:
        try:
            handle = open(self.path, "rb")
        except OSError as exc:
            self._fail(FlogCode.FS_OPEN_FAIL, f"cannot open {self.path}", exc)
        with handle:
            try:
                raw = handle.read(MetadataHeader.SIZE)
            except OSError as exc:
                self._fail(FlogCode.FS_READ_FAIL, f"cannot read {self.path}", exc)
        if len(raw) != MetadataHeader.SIZE:
            self._fail(FlogCode.FS_READ_FAIL, f"short metadata header in {self.path}")
        self.header = MetadataHeader.unpack(raw)
        self.valid = True
        return self.header

    def _remove_obstacle(self) -> None:
        try:
            if os.path.isdir(self.path):
                os.rmdir(self.path)
            else:
                os.unlink(self.path)
        except OSError:
            # Creating the file afterwards reports the failure.
            pass

    def _open_for_update(self):
        try:
            return open(self.path, "r+b")
        except OSError as exc:
            self._fail(FlogCode.FS_OPEN_FAIL, f"cannot open {self.path}", exc)

    def push(self, session_idx: int) -> TimestampEntry:
        """Append an entry for ``session_idx`` and advance the next session index."""
        self.header.next_session_index += 1
        self.header.n_entries += 1
        entry = TimestampEntry(session_idx, 0)
        with self._open_for_update() as handle:
            try:
                handle.write(self.header.pack())
                handle.seek(0, os.SEEK_END)
                handle.write(entry.pack())
            except OSError as exc:
                self._fail(FlogCode.FS_WRITE_FAIL, f"cannot write {self.path}", exc)
        return entry

    def pop(self) -> None:
        """Drop the last entry."""
        if self.header.n_entries == 0:
            raise MetadataError("metadata table is empty")
        self.header.n_entries -= 1
        final_length = MetadataHeader.SIZE + self.header.n_entries * TimestampEntry.SIZE
        with self._open_for_update() as handle:
            try:
                handle.write(self.header.pack())
            except OSError as exc:
                self._fail(FlogCode.FS_WRITE_FAIL, f"cannot write {self.path}", exc)
            try:
                handle.truncate(final_length)
            except OSError as exc:
                self._fail(FlogCode.FS_FTRUNC_FAIL, f"cannot truncate {self.path}", exc)

    def set_time(self, session_idx: int, timestamp: int) -> TimestampEntry:
        """Store ``timestamp`` in the entry for ``session_idx``."""
        with self._open_for_update() as handle:
            handle.seek(MetadataHeader.SIZE)
            while True:
                try:
                    raw = handle.read(TimestampEntry.SIZE)
                except OSError as exc:
                    self._fail(FlogCode.FS_READ_FAIL, f"cannot read {self.path}", exc)
                if not raw:
                    raise MetadataError(f"no entry for session {session_idx}")
                if len(raw) != TimestampEntry.SIZE:
                    self._fail(FlogCode.REC_METADATA_BAD,
                               f"truncated entry in {self.path}")
                if TimestampEntry.unpack(raw).session_idx != session_idx:
                    continue
                entry = TimestampEntry(session_idx, timestamp)
                try:
                    handle.seek(-TimestampEntry.SIZE, os.SEEK_CUR)
                    handle.write(entry.pack())
                except OSError as exc:
                    self._fail(FlogCode.FS_WRITE_FAIL, f"cannot write {self.path}", exc)
                return entry

    def peek_last(self) -> TimestampEntry:
        """Return the last entry without removing it."""
        if self.header.n_entries == 0:
            raise MetadataError("metadata table is empty")
        position = MetadataHeader.SIZE + (self.header.n_entries - 1) * TimestampEntry.SIZE
        try:
            handle = open(self.path, "rb")
        except OSError as exc:
            self._fail(FlogCode.FS_OPEN_FAIL, f"cannot open {self.path}", exc)
        with handle:
            handle.seek(position)
            try:
                raw = handle.read(TimestampEntry.SIZE)
            except OSError as exc:
                self._fail(FlogCode.FS_READ_FAIL, f"cannot read {self.path}", exc)
        if len(raw) != TimestampEntry.SIZE:
            self._fail(FlogCode.FS_READ_FAIL, f"missing entry in {self.path}")
        return TimestampEntry.unpack(raw)