"""Cloud connection handling: connecting, disconnecting and publishing events."""

from __future__ import annotations

import time
from enum import IntEnum
from typing import Callable, MutableMapping, Optional, Protocol

from finlogger.flog import FaultLog, FlogCode

MAX_EVENT_DATA_LENGTH = 1024
MAX_EVENT_NAME_LENGTH = 64
DEFAULT_MAX_CONNECT_ATTEMPTS = 3
DEFAULT_PUBLISH_INTERVAL_MS = 1000
COUNTER_KEY = "cloud_connect_counter"

_MASK16 = 0xFFFF
_MASK32 = 0xFFFFFFFF


class CloudStatus(IntEnum):
    """Outcome of a cloud operation."""

    SUCCESS = 0
    ATTEMPTS_EXCEEDED = 1
    TIMEOUT = 2
    NOT_CONNECTED = 3
    OVERSIZE_DATA = 4
    OVERSIZE_NAME = 5
    PUBLISH_FAIL = 6


class CloudError(Exception):
    """Raised when a cloud operation fails; ``status`` tells why."""

    def __init__(self, status: CloudStatus, message: Optional[str] = None) -> None:
        super().__init__(message or status.name.lower().replace("_", " "))
        self.status = status


class Link(Protocol):
    """The connection to the cloud service."""

    def connected(self) -> bool: ...

    def disconnected(self) -> bool: ...

    def connect(self) -> None: ...

    def disconnect(self) -> None: ...

    def process(self) -> None: ...

    def publish(self, title: str, blob: str) -> bool: ...


def _monotonic_ms() -> Callable[[], int]:
    start = time.monotonic()
    return lambda: int((time.monotonic() - start) * 1000)


class Cloud:
    """Connects to the cloud over ``link``, limiting attempts and publish rate.

    The number of unfinished connection attempts is kept in ``counter``, a
    persistent mapping, so that repeated failures survive a restart.
    """

    def __init__(self, link: Link,
                 counter: Optional[MutableMapping[str, int]] = None,
                 fault_log: Optional[FaultLog] = None,
                 clock: Optional[Callable[[], int]] = None,
                 delay: Optional[Callable[[int], None]] = None,
                 max_connect_attempts: int = DEFAULT_MAX_CONNECT_ATTEMPTS,
                 publish_interval_ms: int = DEFAULT_PUBLISH_INTERVAL_MS) -> None:
        self.link = link
        self.counter = counter if counter is not None else {}
        self.fault_log = fault_log
        self._clock = clock if clock is not None else _monotonic_ms()
        self._delay = delay if delay is not None else (lambda ms: time.sleep(ms / 1000))
        self.max_connect_attempts = max_connect_attempts
        self.publish_interval_ms = publish_interval_ms
        self.last_publish_time = 0

    def _attempts(self) -> int:
        return int(self.counter.get(COUNTER_KEY, 0)) & _MASK16

    def _store_attempts(self, value: int) -> None:
        self.counter[COUNTER_KEY] = value & _MASK16

    def wait_connect(self, timeout_ms: int) -> None:
        """Connect and wait until the connection is up."""
        end_time = self._clock() + timeout_ms
        if self.link.connected():
            return
        attempts = self._attempts()
        if attempts > self.max_connect_attempts:
            raise CloudError(CloudStatus.ATTEMPTS_EXCEEDED)
        attempts += 1
        self._store_attempts(attempts)
        self.link.connect()
        while not self.link.connected():
            self.link.process()
            if self._clock() > end_time:
                raise CloudError(CloudStatus.TIMEOUT)
        self._store_attempts(attempts - 1)

    def wait_disconnect(self, timeout_ms: int) -> None:
        """Disconnect and wait until the connection is down."""
        end_time = self._clock() + timeout_ms
        self.link.disconnect()
        while not self.link.disconnected():
            self.link.process()
            if self._clock() > end_time:
                raise CloudError(CloudStatus.TIMEOUT)

    def initialize_counter(self) -> bool:
        """Reset the attempt counter; False if it showed too many failed attempts."""
        ok = True
        if self._attempts() > self.max_connect_attempts:
            if self.fault_log is not None:
                self.fault_log.add_error(FlogCode.UPL_CONNECT_FAIL,
                                         CloudStatus.ATTEMPTS_EXCEEDED)
            ok = False
        self._store_attempts(0)
        return ok

    def publish_blob(self, title: str, blob: str) -> None:
        """Publish ``blob`` under ``title``, waiting out the minimum interval first."""
        since_last = (self._clock() - self.last_publish_time) & _MASK32
        if since_last < self.publish_interval_ms:
            self._delay(self.publish_interval_ms - since_last)
        if len(blob.encode("utf-8")) > MAX_EVENT_DATA_LENGTH:
            raise CloudError(CloudStatus.OVERSIZE_DATA)
        if len(title.encode("utf-8")) > MAX_EVENT_NAME_LENGTH:
            raise CloudError(CloudStatus.OVERSIZE_NAME)
        if not self.link.connected():
            raise CloudError(CloudStatus.NOT_CONNECTED)
        if not self.link.publish(title, blob):
            raise CloudError(CloudStatus.PUBLISH_FAIL)
        self.last_publish_time = self._clock()

    def is_connected(self) -> bool:
        """True while the connection is up."""
        return bool(self.link.connected())