"""Session recorder: buffers ensemble bytes into fixed-size packets on disk."""

from __future__ import annotations

import errno
import logging
import os
import time
from typing import Optional, Tuple, Union

from finlogger.deploy import Deployment, DeploymentError, Mode
from finlogger.flog import FaultLog, FlogCode
from finlogger.metadata import MetadataError, MetadataStore

log = logging.getLogger(__name__)

SESSION_NAME_MAX_LEN = 64
MEMORY_BUFFER_SIZE = 1024
DEFAULT_PACKET_SIZE = MEMORY_BUFFER_SIZE
METADATA_NAME = ".metadata"


class RecorderError(Exception):
    """Raised when the recorder cannot carry out an operation."""


class Recorder:
    """Records sessions into ``data_root`` and hands them back packet by packet.

    Each session is one file named by its ten-digit index. Bytes are collected
    in memory and written out one full, zero-padded packet at a time; closing a
    session writes whatever is buffered. Packets are read and removed from the
    end of the most recent session first.
    """

    def __init__(self, data_root: Union[str, os.PathLike], device_id: str,
                 fault_log: Optional[FaultLog] = None,
                 packet_size: int = DEFAULT_PACKET_SIZE) -> None:
        if not 0 < packet_size <= MEMORY_BUFFER_SIZE:
            raise ValueError(
                f"packet size must be between 1 and {MEMORY_BUFFER_SIZE}"
            )
        self.data_root = os.fspath(data_root)
        self.device_id = device_id
        self.fault_log = fault_log
        self.packet_size = packet_size
        self.metadata = MetadataStore(
            os.path.join(self.data_root, METADATA_NAME), fault_log
        )
        self._deployment = Deployment()
        self._session_open = False
        self._buffer = bytearray()
        self._current_index = 0
        self._time_set = False

    def _log_fault(self, code: FlogCode, parameter: int = 0) -> None:
        if self.fault_log is not None:
            self.fault_log.add_error(code, parameter)

    def _data_filename(self, session_idx: int) -> str:
        return os.path.join(self.data_root, f"{session_idx:010d}.bin")

    def _create_data_root(self) -> None:
        try:
            info_is_dir = os.path.isdir(self.data_root)
            exists = os.path.lexists(self.data_root)
        except OSError as exc:
            self._log_fault(FlogCode.FS_STAT_FAIL, exc.errno or 0)
            raise RecorderError(f"cannot stat {self.data_root}") from exc
        if exists and info_is_dir:
            return
        if exists:
            log.debug("file in the way of %s", self.data_root)
            try:
                os.unlink(self.data_root)
            except OSError:
                pass
        try:
            os.mkdir(self.data_root, 0o777)
        except OSError as exc:
            self._log_fault(FlogCode.FS_MKDIR_FAIL, exc.errno or errno.EIO)
            raise RecorderError(f"cannot create {self.data_root}") from exc

    def init(self) -> None:
        """Create the data directory and load or create the metadata table."""
        try:
            self._create_data_root()
        except RecorderError:
            self._log_fault(FlogCode.REC_SETUP_FAIL, 0)
            raise
        try:
            self.metadata.load_or_create()
        except MetadataError as exc:
            self._log_fault(FlogCode.REC_SETUP_FAIL, 1)
            raise RecorderError(f"cannot set up metadata: {exc}") from exc

    def has_data(self) -> bool:
        """True when at least one recorded session is waiting."""
        return self.metadata.header.n_entries != 0

    def num_files(self) -> int:
        """Number of recorded sessions."""
        return self.metadata.header.n_entries

    @property
    def session_open(self) -> bool:
        return self._session_open

    def open_session(self) -> int:
        """Start a new session for recording and return its index."""
        if not self.metadata.valid:
            raise RecorderError("recorder is not initialized")
        if self._session_open:
            raise RecorderError("a session is already open")
        index = self.metadata.header.next_session_index
        try:
            self.metadata.push(index)
        except MetadataError as exc:
            raise RecorderError(f"cannot record session: {exc}") from exc
        filename = self._data_filename(index)
        try:
            self._deployment.open(filename, Mode.WRITE)
        except DeploymentError as exc:
            raise RecorderError(f"cannot open {filename}") from exc
        self._current_index = index
        self._session_open = True
        self._buffer = bytearray()
        self._time_set = False
        log.debug("opened %s", filename)
        return index

    def close_session(self) -> None:
        """Write out buffered bytes and close the session; no-op if none is open."""
        if not self._session_open:
            return
        try:
            if self._buffer:
                self._deployment.write(bytes(self._buffer))
            self._deployment.close()
        except DeploymentError as exc:
            raise RecorderError(f"cannot close session: {exc}") from exc
        finally:
            self._session_open = False
            self._time_set = False
            self._buffer = bytearray()

    def put_bytes(self, data: bytes) -> None:
        """Append ``data`` to the current packet, flushing first if it won't fit."""
        if not self._session_open:
            self._log_fault(FlogCode.REC_SESSION_CLOSED, 0)
            raise RecorderError("no session is open")
        data = bytes(data)
        if len(data) > self.packet_size:
            raise ValueError(
                f"{len(data)} bytes cannot fit a {self.packet_size}-byte packet"
            )
        if len(data) > self.packet_size - len(self._buffer):
            packet = bytes(self._buffer).ljust(self.packet_size, b"\x00")
            try:
                self._deployment.write(packet)
            except DeploymentError as exc:
                raise RecorderError(f"cannot write packet: {exc}") from exc
            self._buffer = bytearray()
        self._buffer += data

    def set_session_time(self, session_time: int) -> None:
        """Record the start time of the open session; only the first call counts."""
        if not self._session_open:
            raise RecorderError("no session is open")
        if self._time_set:
            return
        self._time_set = True
        try:
            self.metadata.set_time(self._current_index, session_time)
        except MetadataError as exc:
            raise RecorderError(f"cannot set session time: {exc}") from exc

    def _open_last_session(self) -> str:
        """Open the newest non-empty session for reading and return its name."""
        if not self.metadata.valid:
            raise RecorderError("recorder is not initialized")
        while True:
            if not self.has_data():
                raise RecorderError("no recorded data")
            try:
                entry = self.metadata.peek_last()
            except MetadataError as exc:
                raise RecorderError(f"cannot read metadata: {exc}") from exc
            filename = self._data_filename(entry.session_idx)
            try:
                self._deployment.open(filename, Mode.RDWR)
                length = self._deployment.length()
            except DeploymentError as exc:
                raise RecorderError(f"cannot open {filename}") from exc
            if length == 0:
                try:
                    self._deployment.remove()
                    self.metadata.pop()
                except (DeploymentError, MetadataError) as exc:
                    raise RecorderError("cannot remove empty session") from exc
                continue
            if entry.timestamp != 0:
                return time.strftime("%y%m%d-%H%M%S", time.gmtime(entry.timestamp))
            return f"{entry.session_idx:08d}"

    def _last_block_size(self, length: int) -> int:
        remainder = length % self.packet_size
        return remainder if remainder else self.packet_size

    def get_last_packet(self, buffer_len: int) -> Tuple[bytes, str]:
        """Return the last packet of the newest session and its publish name."""
        if self._session_open:
            raise RecorderError("a session is open for writing")
        name = self._open_last_session()
        try:
            length = self._deployment.length()
            to_read = self._last_block_size(length)
            if to_read > buffer_len:
                raise RecorderError(
                    f"{to_read} bytes do not fit a {buffer_len}-byte buffer"
                )
            new_length = length - to_read
            self._deployment.seek(new_length)
            data = self._deployment.read(to_read)
        except DeploymentError as exc:
            raise RecorderError(f"cannot read session: {exc}") from exc
        finally:
            self._deployment.close()
        publish_name = (
            f"Sfin-{self.device_id}-{name}-{new_length // self.packet_size}"
        )
        return data, publish_name

    def pop_last_packet(self) -> None:
        """Remove the last packet of the newest session, dropping empty sessions."""
        if self._session_open:
            raise RecorderError("a session is open for writing")
        self._open_last_session()
        try:
            length = self._deployment.length()
            new_length = length - self._last_block_size(length)
            if new_length == 0:
                self._deployment.remove()
                self.metadata.pop()
            else:
                self._deployment.truncate(new_length)
                self._deployment.close()
        except (DeploymentError, MetadataError) as exc:
            self._deployment.close()
            raise RecorderError(f"cannot trim session: {exc}") from exc