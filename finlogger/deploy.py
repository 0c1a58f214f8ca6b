"""A single open deployment data file with mode-checked access."""

from __future__ import annotations

import os
from enum import Enum, auto
from typing import Optional, Union

_BINARY = getattr(os, "O_BINARY", 0)


class DeploymentError(Exception):
    """Raised when a deployment file operation cannot be carried out."""


class Mode(Enum):
    """Access mode of an open deployment file."""

    READ = auto()
    WRITE = auto()
    RDWR = auto()


_FLAGS = {
    Mode.READ: os.O_RDONLY | _BINARY,
    Mode.WRITE: os.O_WRONLY | os.O_CREAT | _BINARY,
    Mode.RDWR: os.O_RDWR | _BINARY,
}


class Deployment:
    """Holds at most one open session file.

    Opening in WRITE mode creates the file if needed but keeps its contents;
    writing starts at the beginning of the file.
    """

    def __init__(self) -> None:
        self._fd: Optional[int] = None
        self._name = ""
        self._mode: Optional[Mode] = None

    @property
    def is_open(self) -> bool:
        return self._fd is not None

    @property
    def name(self) -> str:
        return self._name

    @property
    def mode(self) -> Optional[Mode]:
        return self._mode

    def __enter__(self) -> "Deployment":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self, name: Union[str, os.PathLike], mode: Mode) -> None:
        """Open ``name`` in ``mode``, closing any file already open."""
        mode = Mode(mode)
        if self.is_open:
            self.close()
        path = os.fspath(name)
        try:
            fd = os.open(path, _FLAGS[mode], 0o666)
        except OSError as exc:
            raise DeploymentError(f"cannot open {path}: {exc.strerror}") from exc
        self._fd = fd
        self._name = path
        self._mode = mode

    def _require_open(self) -> int:
        if self._fd is None:
            raise DeploymentError("no deployment file is open")
        return self._fd

    def write(self, data: bytes) -> int:
        """Write ``data`` and sync it to disk; return the number of bytes written."""
        fd = self._require_open()
        if self._mode is not Mode.WRITE:
            raise DeploymentError(f"{self._name} is not open for writing")
        try:
            written = os.write(fd, bytes(data))
            os.fsync(fd)
        except OSError as exc:
            raise DeploymentError(f"cannot write {self._name}: {exc.strerror}") from exc
        return written

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes from the current position."""
        fd = self._require_open()
        if self._mode not in (Mode.READ, Mode.RDWR):
            raise DeploymentError(f"{self._name} is not open for reading")
        try:
            return os.read(fd, size)
        except OSError as exc:
            raise DeploymentError(f"cannot read {self._name}: {exc.strerror}") from exc

    def seek(self, position: int) -> None:
        """Move to absolute byte ``position``."""
        fd = self._require_open()
        try:
            os.lseek(fd, position, os.SEEK_SET)
        except OSError as exc:
            raise DeploymentError(f"cannot seek {self._name}: {exc.strerror}") from exc

    def length(self) -> int:
        """Size of the open file in bytes."""
        fd = self._require_open()
        try:
            return os.fstat(fd).st_size
        except OSError as exc:
            raise DeploymentError(f"cannot stat {self._name}: {exc.strerror}") from exc

    def close(self) -> None:
        """Close the open file; closing when nothing is open is not an error."""
        if self._fd is None:
            return
        try:
            os.close(self._fd)
        except OSError as exc:
            raise DeploymentError(f"cannot close {self._name}: {exc.strerror}") from exc
        self._reset()

    def remove(self) -> None:
        """Close and delete the open file."""
        fd = self._require_open()
        try:
            os.close(fd)
        except OSError as exc:
            raise DeploymentError(f"cannot close {self._name}: {exc.strerror}") from exc
        self._fd = None
        try:
            os.unlink(self._name)
        except OSError as exc:
            raise DeploymentError(f"cannot unlink {self._name}: {exc.strerror}") from exc
        self._reset()

    def truncate(self, size: int) -> None:
        """Cut the open file down to ``size`` bytes."""
        fd = self._require_open()
        try:
            os.ftruncate(fd, size)
        except OSError as exc:
            raise DeploymentError(f"cannot truncate {self._name}: {exc.strerror}") from exc

    def _reset(self) -> None:
        self._fd = None
        self._name = ""
        self._mode = None