import itertools

from finlogger.flog import NUM_ENTRIES, FaultLog, FlogCode, find_message


def make_log(start=0):
    return FaultLog(clock=itertools.count(start).__next__)


def test_find_message_known_code():
    assert find_message(FlogCode.CHARGER_REMOVED) == "Charger removed"


def test_find_message_read_fail_keeps_table_text():
    assert find_message(FlogCode.FS_READ_FAIL) == "file ftrunc fail"


def test_find_message_code_without_text():
    assert find_message(0x0811) == "Unknown FLOG Code: 0x0811"


def test_find_message_null_is_unknown():
    assert find_message(FlogCode.NULL).startswith("Unknown FLOG Code")


def test_entries_in_order_with_timestamps():
    log = make_log(100)
    log.add_error(FlogCode.SYS_START, 1)
    log.add_error(FlogCode.UPL_PUB_FAIL, 2)
    entries = log.entries()
    assert [e.code for e in entries] == [FlogCode.SYS_START, FlogCode.UPL_PUB_FAIL]
    assert [e.timestamp_ms for e in entries] == [100, 101]
    assert [e.parameter for e in entries] == [1, 2]
    assert not log.overrun()


def test_overrun_keeps_latest_entries():
    log = make_log()
    for i in range(NUM_ENTRIES + 2):
        log.add_error(FlogCode.DEBUG, i)
    entries = log.entries()
    assert len(entries) == NUM_ENTRIES
    assert entries[0].parameter == 2
    assert entries[-1].parameter == NUM_ENTRIES + 1
    assert log.overrun()
    lines = log.format_lines()
    assert lines[0] == "Fault Log overrun!"
    assert len(lines) == NUM_ENTRIES + 1


def test_format_line_layout():
    log = FaultLog(clock=lambda: 5)
    log.add_error(FlogCode.CHARGER_REMOVED, 42)
    (line,) = log.format_lines()
    head, param = line.split(", parameter: ")
    assert param == "0x0000002A"
    assert len(head) == 8 + 1 + 32
    assert head.endswith("Charger removed")
    assert head.lstrip().startswith("5 ")


def test_parameter_wraps_to_32_bits():
    log = make_log()
    entry = log.add_error(FlogCode.DEBUG, -1)
    assert entry.parameter == 0xFFFFFFFF


def test_unknown_code_is_stored_and_described():
    log = make_log()
    entry = log.add_error(0x1234, 0)
    assert entry.code == 0x1234
    assert entry.message == find_message(0x1234)


def test_clear_empties_log():
    log = make_log()
    for i in range(NUM_ENTRIES + 1):
        log.add_error(FlogCode.DEBUG, i)
    log.clear()
    assert log.entries() == []
    assert not log.overrun()
    assert log.format_lines() == []