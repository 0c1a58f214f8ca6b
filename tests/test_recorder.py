import os

import pytest

from finlogger.flog import FaultLog, FlogCode
from finlogger.recorder import Recorder, RecorderError

PACKET = 16


@pytest.fixture
def fault_log():
    return FaultLog(clock=lambda: 0)


@pytest.fixture
def recorder(tmp_path, fault_log):
    rec = Recorder(tmp_path / "data", "dev", fault_log, packet_size=PACKET)
    rec.init()
    return rec


def test_init_creates_empty_store(recorder, tmp_path):
    assert (tmp_path / "data").is_dir()
    assert (tmp_path / "data" / ".metadata").is_file()
    assert recorder.has_data() is False
    assert recorder.num_files() == 0


def test_init_replaces_file_in_the_way(tmp_path):
    (tmp_path / "data").write_bytes(b"junk")
    rec = Recorder(tmp_path / "data", "dev", packet_size=PACKET)
    rec.init()
    assert (tmp_path / "data").is_dir()


def test_packet_size_too_large_rejected(tmp_path):
    with pytest.raises(ValueError):
        Recorder(tmp_path, "dev", packet_size=2048)


def test_open_session_requires_init(tmp_path):
    rec = Recorder(tmp_path / "data", "dev", packet_size=PACKET)
    with pytest.raises(RecorderError):
        rec.open_session()


def test_put_bytes_without_session_logs_fault(recorder, fault_log):
    with pytest.raises(RecorderError):
        recorder.put_bytes(b"abc")
    assert [e.code for e in fault_log.entries()] == [FlogCode.REC_SESSION_CLOSED]


def test_put_bytes_larger_than_packet_rejected(recorder):
    recorder.open_session()
    with pytest.raises(ValueError):
        recorder.put_bytes(b"x" * (PACKET + 1))


def test_double_open_raises(recorder):
    recorder.open_session()
    with pytest.raises(RecorderError):
        recorder.open_session()


def test_session_written_to_indexed_file(recorder, tmp_path):
    assert recorder.open_session() == 0
    recorder.put_bytes(b"hello")
    recorder.close_session()
    assert (tmp_path / "data" / "0000000000.bin").read_bytes() == b"hello"
    assert recorder.has_data() is True
    assert recorder.num_files() == 1
    assert recorder.open_session() == 1


def test_close_without_session_is_harmless(recorder):
    recorder.close_session()
    assert recorder.session_open is False


def test_partial_packet_round_trip(recorder):
    recorder.open_session()
    recorder.put_bytes(b"abcde")
    recorder.close_session()
    data, name = recorder.get_last_packet(PACKET)
    assert data == b"abcde"
    assert name == "Sfin-dev-00000000-0"


def test_flush_pads_full_packet_then_reads_backwards(recorder, tmp_path):
    recorder.open_session()
    recorder.put_bytes(b"A" * 10)
    recorder.put_bytes(b"B" * 10)
    recorder.close_session()
    path = tmp_path / "data" / "0000000000.bin"
    assert path.read_bytes() == b"A" * 10 + b"\x00" * 6 + b"B" * 10

    data, name = recorder.get_last_packet(PACKET)
    assert data == b"B" * 10
    assert name.endswith("-1")

    recorder.pop_last_packet()
    assert os.path.getsize(path) == PACKET
    data, name = recorder.get_last_packet(PACKET)
    assert data == b"A" * 10 + b"\x00" * 6
    assert name.endswith("-0")

    recorder.pop_last_packet()
    assert not path.exists()
    assert recorder.has_data() is False


def test_buffer_too_small_raises(recorder):
    recorder.open_session()
    recorder.put_bytes(b"x" * 8)
    recorder.close_session()
    with pytest.raises(RecorderError):
        recorder.get_last_packet(4)


def test_get_last_packet_while_writing_raises(recorder):
    recorder.open_session()
    recorder.put_bytes(b"x")
    with pytest.raises(RecorderError):
        recorder.get_last_packet(PACKET)
    with pytest.raises(RecorderError):
        recorder.pop_last_packet()


def test_get_last_packet_without_data_raises(recorder):
    with pytest.raises(RecorderError):
        recorder.get_last_packet(PACKET)


def test_session_time_names_packet(recorder):
    recorder.open_session()
    recorder.set_session_time(86400)
    recorder.set_session_time(1)
    recorder.put_bytes(b"z")
    recorder.close_session()
    _, name = recorder.get_last_packet(PACKET)
    assert name == "Sfin-dev-700102-000000-0"


def test_set_session_time_requires_session(recorder):
    with pytest.raises(RecorderError):
        recorder.set_session_time(100)


def test_empty_session_is_discarded(recorder):
    recorder.open_session()
    recorder.close_session()
    assert recorder.num_files() == 1
    with pytest.raises(RecorderError):
        recorder.get_last_packet(PACKET)
    assert recorder.has_data() is False


def test_newest_session_served_first(recorder):
    recorder.open_session()
    recorder.put_bytes(b"old")
    recorder.close_session()
    recorder.open_session()
    recorder.put_bytes(b"new")
    recorder.close_session()
    data, name = recorder.get_last_packet(PACKET)
    assert data == b"new"
    assert "00000001" in name
    recorder.pop_last_packet()
    data, _ = recorder.get_last_packet(PACKET)
    assert data == b"old"


def test_state_persists_across_instances(recorder, tmp_path):
    recorder.open_session()
    recorder.put_bytes(b"keep")
    recorder.close_session()
    again = Recorder(tmp_path / "data", "dev", packet_size=PACKET)
    again.init()
    assert again.num_files() == 1
    data, _ = again.get_last_packet(PACKET)
    assert data == b"keep"