"""Fault log: a fixed-size ring of timestamped error codes."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, List, Optional

NUM_ENTRIES = 128
_MASK32 = 0xFFFFFFFF
_MASK16 = 0xFFFF


class FlogCode(IntEnum):
    """Fault codes recorded in the log."""

    NULL = 0x0000

    SYS_START = 0x0100
    SYS_BADSRAM = 0x0101
    SYS_STARTSTATE = 0x0102
    SYS_INITSTATE = 0x0103
    SYS_EXECSTATE = 0x0104
    SYS_EXITSTATE = 0x0105
    SYS_UNKNOWNSTATE = 0x0106
    RESET_REASON = 0x0107
    CHARGER_REMOVED = 0x0108

    CAL_BURST = 0x0200
    CAL_INIT = 0x0201
    CAL_START_RUN = 0x0202
    CAL_LIMIT = 0x0203
    CAL_DONE = 0x0204
    CAL_EXIT = 0x0205
    CAL_SLEEP = 0x0206
    CAL_TEMP = 0x0207

    MAG_ID_MISMATCH = 0x0301
    MAG_MEAS_TO = 0x0302
    MAG_TEST_FAIL = 0x0303
    MAG_MEAS_OVRFL = 0x0304
    MAG_I2C_FAIL = 0x0305
    MAG_MODE_FAIL = 0x0306
    ICM_FAIL = 0x0307

    RIDE_INIT_TIMEOUT = 0x0401

    UPLOAD_NO_UPLOAD = 0x0501
    UPL_BATT_LOW = 0x0502
    UPL_FOLDER_COUNT = 0x0503
    UPL_CONNECT_FAIL = 0x0504
    UPL_OPEN_FAIL = 0x0505
    UPL_PUB_FAIL = 0x0506

    GPS_INIT_FAIL = 0x0601
    GPS_START_FAIL = 0x0602

    TEMP_FAIL = 0x0704

    FS_OPENDIR_FAIL = 0x0800
    FS_STAT_FAIL = 0x0801
    SYS_MOUNT_FAIL = 0x0802
    FS_MKDIR_FAIL = 0x0803
    FS_CREAT_FAIL = 0x0804
    FS_OPEN_FAIL = 0x0805
    FS_WRITE_FAIL = 0x0806
    FS_CLOSE_FAIL = 0x0807
    FS_FTRUNC_FAIL = 0x0808
    FS_READ_FAIL = 0x0809
    REC_SETUP_FAIL = 0x0810
    REC_METADATA_BAD = 0x0811
    REC_SESSION_CLOSED = 0x0812

    CELL_DISCONN_FAIL = 0x0900

    SW_NULLPTR = 0xF001
    DEBUG = 0xFFFF


_MESSAGES = {
    FlogCode.SYS_START: "System Start",
    FlogCode.SYS_BADSRAM: "Bad SRAM",
    FlogCode.SYS_STARTSTATE: "Starting State",
    FlogCode.SYS_INITSTATE: "Initializing State",
    FlogCode.SYS_EXECSTATE: "Executing State Body",
    FlogCode.SYS_EXITSTATE: "Exiting State",
    FlogCode.SYS_UNKNOWNSTATE: "Unknown State",
    FlogCode.RESET_REASON: "Reset Reason",
    FlogCode.CHARGER_REMOVED: "Charger removed",
    FlogCode.CAL_BURST: "Calibrate Burst",
    FlogCode.CAL_INIT: "Calibrate Initialization",
    FlogCode.CAL_START_RUN: "Calibrate Start RUN",
    FlogCode.CAL_LIMIT: "Calibrate Limit of Cycles",
    FlogCode.CAL_DONE: "Calibration complete",
    FlogCode.CAL_EXIT: "Calbiration Exit",
    FlogCode.CAL_SLEEP: "Calibration Sleep",
    FlogCode.CAL_TEMP: "Calibration Temp Measurement",
    FlogCode.MAG_ID_MISMATCH: "Compass ID Mismatch",
    FlogCode.MAG_MEAS_TO: "Compass Measurement Timeout",
    FlogCode.MAG_TEST_FAIL: "Compass Self-Test Failure",
    FlogCode.MAG_MEAS_OVRFL: "Compass Measurement Overflow",
    FlogCode.MAG_I2C_FAIL: "Compass I2C Failure",
    FlogCode.MAG_MODE_FAIL: "Compass Mode Set Fail",
    FlogCode.ICM_FAIL: "ICM Fail",
    FlogCode.RIDE_INIT_TIMEOUT: "Ride init Timeout",
    FlogCode.UPLOAD_NO_UPLOAD: "Upload - No Upload Flag set",
    FlogCode.UPL_BATT_LOW: "Upload Battery low",
    FlogCode.UPL_FOLDER_COUNT: "Upload file count",
    FlogCode.UPL_CONNECT_FAIL: "Upload connect fail",
    FlogCode.UPL_OPEN_FAIL: "Upload open last session fail",
    FlogCode.UPL_PUB_FAIL: "Upload Publish fail",
    FlogCode.GPS_INIT_FAIL: "GPS Init Fail",
    FlogCode.GPS_START_FAIL: "GPS Start Fail",
    FlogCode.TEMP_FAIL: "Temp Start Fail",
    FlogCode.FS_OPENDIR_FAIL: "opendir fail",
    FlogCode.FS_STAT_FAIL: "stat fail",
    FlogCode.SYS_MOUNT_FAIL: "Mounting fail",
    FlogCode.FS_MKDIR_FAIL: "mkdir fail",
    FlogCode.FS_CREAT_FAIL: "file create fail",
    FlogCode.FS_OPEN_FAIL: "file open fail",
    FlogCode.FS_WRITE_FAIL: "file write fail",
    FlogCode.FS_CLOSE_FAIL: "file close fail",
    FlogCode.FS_FTRUNC_FAIL: "file ftrunc fail",
    FlogCode.FS_READ_FAIL: "file ftrunc fail",
    FlogCode.REC_SETUP_FAIL: "Recorder setup failed",
    FlogCode.REC_SESSION_CLOSED: "Write to Closed Session",
    FlogCode.CELL_DISCONN_FAIL: "Cellular failed to disconnect",
    FlogCode.SW_NULLPTR: "Software Null Pointer",
    FlogCode.DEBUG: "debug point",
}


def find_message(code: int) -> str:
    """Return the description of ``code``, or an "Unknown FLOG Code" text."""
    code = int(code)
    message = _MESSAGES.get(code)
    if message is not None:
        return message
    return f"Unknown FLOG Code: 0x{code:04X}"


def _monotonic_ms() -> Callable[[], int]:
    start = time.monotonic()
    return lambda: int((time.monotonic() - start) * 1000)


@dataclass(frozen=True)
class FlogEntry:
    """One recorded fault."""

    timestamp_ms: int
    code: int
    parameter: int

    @property
    def message(self) -> str:
        return find_message(self.code)


class FaultLog:
    """Keeps the most recent NUM_ENTRIES faults, counting every one added."""

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock if clock is not None else _monotonic_ms()
        self._entries: deque = deque(maxlen=NUM_ENTRIES)
        self._count = 0

    def add_error(self, code: int, parameter: int) -> FlogEntry:
        """Record ``code`` with its 32-bit ``parameter`` and return the entry."""
        raw_code = int(code) & _MASK16
        try:
            stored_code: int = FlogCode(raw_code)
        except ValueError:
            stored_code = raw_code
        entry = FlogEntry(
            timestamp_ms=int(self._clock()) & _MASK32,
            code=stored_code,
            parameter=int(parameter) & _MASK32,
        )
        self._entries.append(entry)
        self._count += 1
        return entry

    def entries(self) -> List[FlogEntry]:
        """Retained entries, oldest first."""
        return list(self._entries)

    def overrun(self) -> bool:
        """True when more faults were added than the log can hold."""
        return self._count > NUM_ENTRIES

    def format_lines(self) -> List[str]:
        """The log as display lines, led by an overrun notice when needed."""
        lines = ["Fault Log overrun!"] if self.overrun() else []
        lines.extend(
            f"{entry.timestamp_ms:8d} {entry.message:>32}, "
            f"parameter: 0x{entry.parameter:08X}"
            for entry in self._entries
        )
        return lines

    def clear(self) -> None:
        """Forget every entry."""
        self._entries.clear()
        self._count = 0