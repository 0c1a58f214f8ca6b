"""Upload task: sends recorded packets to the cloud until none remain."""

from __future__ import annotations

from typing import Callable, Optional

from finlogger.base64 import urlsafe_b64_encode
from finlogger.cloud import MAX_EVENT_NAME_LENGTH, Cloud, CloudError, CloudStatus
from finlogger.conio import NL, Console
from finlogger.flog import FaultLog, FlogCode
from finlogger.recorder import Recorder, RecorderError
from finlogger.tasks import State

DEFAULT_SIGNAL_TIMEOUT_MS = 300_000
DEFAULT_MIN_UPLOAD_VOLTAGE = 3.6
DISCONNECT_TIMEOUT_MS = 5000
PUBLISH_NAME_LEN = MAX_EVENT_NAME_LENGTH


def _align4(n: int) -> int:
    return (n + 3) // 4 * 4


class DataUpload:
    """Publishes the recorder's packets, newest first, as URL-safe Base64 records."""

    def __init__(self, console: Console, cloud: Cloud, recorder: Recorder,
                 in_water: Callable[[], bool],
                 battery_voltage: Callable[[], float],
                 fault_log: Optional[FaultLog] = None,
                 signal_timeout_ms: int = DEFAULT_SIGNAL_TIMEOUT_MS,
                 min_upload_voltage: float = DEFAULT_MIN_UPLOAD_VOLTAGE,
                 record_size: Optional[int] = None) -> None:
        self.console = console
        self.cloud = cloud
        self.recorder = recorder
        self.in_water = in_water
        self.battery_voltage = battery_voltage
        self.fault_log = fault_log
        self.signal_timeout_ms = signal_timeout_ms
        self.min_upload_voltage = min_upload_voltage
        if record_size is None:
            record_size = 4 * ((_align4(recorder.packet_size) + 2) // 3)
        self.record_size = record_size
        self.init_success = False

    def _log_fault(self, code: FlogCode, parameter: int = 0) -> None:
        if self.fault_log is not None:
            self.fault_log.add_error(code, parameter)

    def init(self) -> None:
        """Connect to the cloud; a failure is remembered and ends ``run`` at once."""
        self.console.printf("Entering SYSTEM_STATE_DATA_UPLOAD" + NL)
        self.init_success = True
        try:
            self.cloud.wait_connect(self.signal_timeout_ms)
        except CloudError:
            self.init_success = False

    def can_upload(self) -> State:
        """The state to move to, or UPLOAD when uploading may continue."""
        if not self.recorder.has_data():
            return State.DEEP_SLEEP
        if not self.cloud.is_connected():
            try:
                self.cloud.wait_connect(self.signal_timeout_ms)
            except CloudError:
                return State.DEEP_SLEEP
        if self.in_water():
            return State.DEPLOYED
        if self.battery_voltage() < self.min_upload_voltage:
            return State.DEEP_SLEEP
        return State.UPLOAD

    def run(self) -> State:
        """Upload packets until told to stop; return the next state."""
        if not self.init_success:
            self.console.printf("Failed to init\n")
            return State.DEEP_SLEEP

        while (next_state := self.can_upload()) is State.UPLOAD:
            if self.recorder.session_open:
                self.console.printf("Failed to retrieve data: %s" + NL,
                                    "session open")
                return State.CLI
            try:
                packet, name = self.recorder.get_last_packet(self.recorder.packet_size)
            except RecorderError:
                self._log_fault(FlogCode.UPL_OPEN_FAIL, 0)
                return State.DEEP_SLEEP
            name = name[:PUBLISH_NAME_LEN - 1]
            self.console.printf("Publish ID: %s" + NL, name)

            data = packet.ljust(_align4(len(packet)), b"\x00")
            self.console.printf("Got %d bytes to encode" + NL, len(data))

            try:
                blob = urlsafe_b64_encode(data, self.record_size + 1)
            except OverflowError as exc:
                self.console.printf("Failed to encode: %s" + NL, exc)
                return State.CLI
            self.console.printf("Got %d bytes to upload" + NL, len(blob))
            self.console.printf("Data: %s" + NL, blob)

            try:
                self.cloud.publish_blob(name, blob)
            except CloudError as exc:
                if exc.status is CloudStatus.NOT_CONNECTED:
                    self._log_fault(FlogCode.UPL_CONNECT_FAIL, 1)
                    return State.DEEP_SLEEP
                if exc.status is CloudStatus.PUBLISH_FAIL:
                    self._log_fault(FlogCode.UPL_PUB_FAIL, 0)
                    return State.DEEP_SLEEP
                self.console.printf("Failed to publish: %d" + NL, int(exc.status))
                return State.CLI

            self.console.printf("Uploaded record" + NL)
            self.cloud.link.process()

            try:
                self.recorder.pop_last_packet()
            except RecorderError:
                self.console.printf("Session failure" + NL)
                return State.CLI
        return next_state

    def exit(self) -> None:
        """Disconnect from the cloud, logging a fault if that fails."""
        try:
            self.cloud.wait_disconnect(DISCONNECT_TIMEOUT_MS)
        except CloudError:
            self._log_fault(FlogCode.CELL_DISCONN_FAIL, 0)