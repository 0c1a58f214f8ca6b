import io

import pytest

from finlogger.base64 import urlsafe_b64_decode
from finlogger.cloud import Cloud
from finlogger.conio import Console
from finlogger.flog import FaultLog, FlogCode
from finlogger.recorder import Recorder
from finlogger.tasks import State
from finlogger.upload import DataUpload


class FakeClock:
    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms

    def sleep(self, ms):
        self.now += ms


class FakeLink:
    def __init__(self, clock, *, connected=True, publish_ok=True,
                 disconnect_after=None):
        self.clock = clock
        self.is_up = connected
        self.publish_ok = publish_ok
        self.disconnect_after = disconnect_after
        self.published = []
        self._disconnecting = False
        self._ticks = 0

    def connected(self):
        return self.is_up

    def disconnected(self):
        return not self.is_up

    def connect(self):
        pass

    def disconnect(self):
        self._disconnecting = True
        self._ticks = 0

    def process(self):
        self.clock.advance(10)
        self._ticks += 1
        if (self._disconnecting and self.disconnect_after is not None
                and self._ticks >= self.disconnect_after):
            self.is_up = False

    def publish(self, title, blob):
        self.published.append((title, blob))
        return self.publish_ok


def make_recorder(tmp_path, packet_size=8):
    recorder = Recorder(tmp_path / "data", "test-device", packet_size=packet_size)
    recorder.init()
    return recorder


def record(recorder, *chunks):
    recorder.open_session()
    for chunk in chunks:
        recorder.put_bytes(chunk)
    recorder.close_session()


def make_task(recorder, link, clock, *, in_water=False, voltage=4.0, log=None):
    cloud = Cloud(link, clock=clock, delay=clock.sleep, publish_interval_ms=0)
    console = Console(sink=io.StringIO())
    task = DataUpload(console, cloud, recorder,
                      in_water=lambda: in_water,
                      battery_voltage=lambda: voltage,
                      fault_log=log,
                      signal_timeout_ms=100,
                      min_upload_voltage=3.6)
    return task, console


def output(console):
    return console._sink.getvalue()


def test_run_without_init_sleeps(tmp_path):
    clock = FakeClock()
    recorder = make_recorder(tmp_path)
    task, console = make_task(recorder, FakeLink(clock), clock)
    assert task.run() is State.DEEP_SLEEP
    assert "Failed to init" in output(console)


def test_init_failure_when_connect_times_out(tmp_path):
    clock = FakeClock()
    recorder = make_recorder(tmp_path)
    task, _ = make_task(recorder, FakeLink(clock, connected=False), clock)
    task.init()
    assert task.init_success is False


def test_no_data_means_deep_sleep(tmp_path):
    clock = FakeClock()
    recorder = make_recorder(tmp_path)
    task, _ = make_task(recorder, FakeLink(clock), clock)
    task.init()
    assert task.can_upload() is State.DEEP_SLEEP
    assert task.run() is State.DEEP_SLEEP


def test_uploads_every_packet_newest_first(tmp_path):
    clock = FakeClock()
    recorder = make_recorder(tmp_path)
    record(recorder, b"ABCDEFGH", b"xyz")
    link = FakeLink(clock)
    task, _ = make_task(recorder, link, clock)
    task.init()
    assert task.run() is State.DEEP_SLEEP
    assert recorder.has_data() is False
    names = [name for name, _ in link.published]
    assert names == ["Sfin-test-device-00000000-1", "Sfin-test-device-00000000-0"]
    first = urlsafe_b64_decode(link.published[0][1])
    second = urlsafe_b64_decode(link.published[1][1])
    assert first[:3] == b"xyz"
    assert len(first) % 4 == 0
    assert set(first[3:]) <= {0}
    assert second == b"ABCDEFGH"


def test_in_water_switches_to_deployed(tmp_path):
    clock = FakeClock()
    recorder = make_recorder(tmp_path)
    record(recorder, b"data")
    link = FakeLink(clock)
    task, _ = make_task(recorder, link, clock, in_water=True)
    task.init()
    assert task.run() is State.DEPLOYED
    assert link.published == []


def test_low_battery_stops_upload(tmp_path):
    clock = FakeClock()
    recorder = make_recorder(tmp_path)
    record(recorder, b"data")
    link = FakeLink(clock)
    task, _ = make_task(recorder, link, clock, voltage=3.0)
    task.init()
    assert task.run() is State.DEEP_SLEEP
    assert link.published == []
    assert recorder.has_data() is True


def test_lost_connection_that_cannot_reconnect(tmp_path):
    clock = FakeClock()
    recorder = make_recorder(tmp_path)
    record(recorder, b"data")
    link = FakeLink(clock, connected=False)
    task, _ = make_task(recorder, link, clock)
    assert task.can_upload() is State.DEEP_SLEEP


def test_publish_failure_logs_fault_and_keeps_data(tmp_path):
    clock = FakeClock()
    log = FaultLog(clock=lambda: 0)
    recorder = make_recorder(tmp_path)
    record(recorder, b"data")
    link = FakeLink(clock, publish_ok=False)
    task, _ = make_task(recorder, link, clock, log=log)
    task.init()
    assert task.run() is State.DEEP_SLEEP
    assert [entry.code for entry in log.entries()] == [FlogCode.UPL_PUB_FAIL]
    assert recorder.num_files() == 1


def test_oversize_record_goes_to_cli(tmp_path):
    clock = FakeClock()
    recorder = make_recorder(tmp_path, packet_size=800)
    record(recorder, bytes(range(200)) * 4)
    link = FakeLink(clock)
    task, console = make_task(recorder, link, clock)
    task.init()
    assert task.run() is State.CLI
    assert link.published == []
    assert "Failed to publish" in output(console)


def test_open_session_goes_to_cli(tmp_path):
    clock = FakeClock()
    recorder = make_recorder(tmp_path)
    recorder.open_session()
    task, _ = make_task(recorder, FakeLink(clock), clock)
    task.init()
    assert task.run() is State.CLI


@pytest.mark.parametrize("disconnect_after, faults", [
    (2, []),
    (None, [FlogCode.CELL_DISCONN_FAIL]),
])
def test_exit_disconnects(tmp_path, disconnect_after, faults):
    clock = FakeClock()
    log = FaultLog(clock=lambda: 0)
    recorder = make_recorder(tmp_path)
    link = FakeLink(clock, disconnect_after=disconnect_after)
    task, _ = make_task(recorder, link, clock, log=log)
    task.exit()
    assert [entry.code for entry in log.entries()] == faults