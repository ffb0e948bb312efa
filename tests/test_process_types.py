import json

import pytest

from hoststat.process_types import (
    CPUTimes,
    IOCountersStat,
    MemoryInfoStat,
    NumCtxSwitchesStat,
    OpenFilesStat,
    RlimitStat,
    calculate_percent,
)


def test_total_sums_modes():
    times = CPUTimes(cpu="cpu", user=1.5, system=2.0)
    assert times.total() == pytest.approx(3.5)


def test_total_of_empty_is_zero():
    assert CPUTimes().total() == 0


def test_total_grows_with_each_mode():
    base = CPUTimes(user=1.0)
    more = CPUTimes(user=1.0, iowait=0.5)
    assert more.total() > base.total()


def test_calculate_percent_zero_delta():
    t1 = CPUTimes(user=1.0)
    t2 = CPUTimes(user=5.0)
    assert calculate_percent(t1, t2, 0, 4) == 0


def test_calculate_percent_clamped_high():
    t1 = CPUTimes(user=0.0)
    t2 = CPUTimes(user=1000.0)
    assert calculate_percent(t1, t2, 1.0, 2) == 100.0


def test_calculate_percent_clamped_low():
    t1 = CPUTimes(user=10.0)
    t2 = CPUTimes(user=1.0)
    assert calculate_percent(t1, t2, 1.0, 1) == 0.0


def test_calculate_percent_value():
    t1 = CPUTimes(user=1.0)
    t2 = CPUTimes(user=2.0)
    assert calculate_percent(t1, t2, 4.0, 1) == pytest.approx(25.0)


def test_memory_info_json_keys():
    text = str(MemoryInfoStat(rss=1, vms=2))
    data = json.loads(text)
    assert list(data) == ["rss", "vms", "hwm", "data", "stack", "locked", "swap"]
    assert data["rss"] == 1
    assert data["vms"] == 2


def test_io_counters_json_keys():
    data = json.loads(str(IOCountersStat(read_count=3)))
    assert data == {"readCount": 3, "writeCount": 0, "readBytes": 0, "writeBytes": 0}


def test_ctx_switches_json():
    data = json.loads(str(NumCtxSwitchesStat(voluntary=7, involuntary=8)))
    assert data == {"voluntary": 7, "involuntary": 8}


def test_open_files_and_rlimit_json():
    assert json.loads(str(OpenFilesStat(path="/tmp/x", fd=4))) == {"path": "/tmp/x", "fd": 4}
    assert json.loads(str(RlimitStat(resource=7, soft=1, hard=2)))["resource"] == 7