"""Binary layouts of the measurement ensembles stored by the recorder."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Tuple

Triple = Tuple[int, int, int]

NUM_ENSEMBLES = 0x10


class EnsembleID(IntEnum):
    """Ensemble type codes written into the header."""

    TEMP = 0x01
    ACC = 0x02
    GPS = 0x03
    TEMP_ACC = 0x04
    TEMP_GPS = 0x05
    TEMP_ACC_GPS = 0x06
    BATT = 0x07
    TEMP_TIME = 0x08
    IMU = 0x09
    TEMP_IMU = 0x0A
    TEMP_IMU_GPS = 0x0B
    TEXT = 0x0F


def _pack(fmt: str, *values: int) -> bytes:
    try:
        return struct.pack(fmt, *values)
    except struct.error as exc:
        raise ValueError(str(exc)) from exc


@dataclass(frozen=True)
class EnsembleHeader:
    """Three-byte header: 4-bit ensemble type, 20-bit elapsed time in deciseconds."""

    ensemble_type: int
    elapsed_ds: int = 0

    SIZE: ClassVar[int] = 3

    def pack(self) -> bytes:
        if not 0 <= int(self.ensemble_type) <= 0xF:
            raise ValueError(f"ensemble type {self.ensemble_type} does not fit 4 bits")
        if not 0 <= self.elapsed_ds <= 0xFFFFF:
            raise ValueError(f"elapsed time {self.elapsed_ds} does not fit 20 bits")
        word = int(self.ensemble_type) | (self.elapsed_ds << 4)
        return word.to_bytes(self.SIZE, "little")

    @classmethod
    def unpack(cls, data: bytes) -> "EnsembleHeader":
        if len(data) < cls.SIZE:
            raise ValueError(f"header needs {cls.SIZE} bytes, got {len(data)}")
        word = int.from_bytes(bytes(data[:cls.SIZE]), "little")
        kind = word & 0xF
        try:
            kind = EnsembleID(kind)
        except ValueError:
            pass
        return cls(kind, word >> 4)


@dataclass(frozen=True)
class Ensemble07:
    """Battery voltage in millivolts."""

    battery_voltage: int

    FORMAT: ClassVar[str] = "<H"

    def pack(self) -> bytes:
        return _pack(self.FORMAT, self.battery_voltage)


@dataclass(frozen=True)
class Ensemble08:
    """Raw temperature and timestamp."""

    raw_temp: int
    timestamp: int

    FORMAT: ClassVar[str] = "<hI"

    def pack(self) -> bytes:
        return _pack(self.FORMAT, self.raw_temp, self.timestamp)


@dataclass(frozen=True)
class Ensemble10:
    """Temperature, acceleration, angular velocity and magnetic field."""

    raw_temp: int
    raw_acceleration: Triple = (0, 0, 0)
    raw_angular_vel: Triple = (0, 0, 0)
    raw_mag_field: Triple = (0, 0, 0)

    FORMAT: ClassVar[str] = "<h3h3h3h"

    def _fields(self) -> tuple:
        for name in ("raw_acceleration", "raw_angular_vel", "raw_mag_field"):
            if len(getattr(self, name)) != 3:
                raise ValueError(f"{name} must hold three values")
        return (
            self.raw_temp,
            *self.raw_acceleration,
            *self.raw_angular_vel,
            *self.raw_mag_field,
        )

    def pack(self) -> bytes:
        return _pack(self.FORMAT, *self._fields())


@dataclass(frozen=True)
class Ensemble11(Ensemble10):
    """Ensemble 10 followed by a latitude/longitude pair."""

    location: Tuple[int, int] = (0, 0)

    FORMAT: ClassVar[str] = "<h3h3h3h2i"

    def pack(self) -> bytes:
        if len(self.location) != 2:
            raise ValueError("location must hold two values")
        return _pack(self.FORMAT, *self._fields(), *self.location)


def elapsed_deciseconds(now_ms: int, session_start_ms: int) -> int:
    """Time since the session start in deciseconds, wrapped to 24 bits.

    The millisecond counters are 32-bit and may wrap between the two readings.
    """
    return (((now_ms - session_start_ms) & 0xFFFFFFFF) // 100) & 0x00FFFFFF