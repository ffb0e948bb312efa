import dataclasses

import pytest

from hoststat.net_linux import (
    conntrack_stats,
    conntrack_stats_from_file,
    filter_counters,
    host_proc,
    io_counters,
    io_counters_by_file,
    proto_counters,
    proto_counters_from_file,
)
from hoststat.net_types import ConntrackStat

NET_DEV_TEMPLATE = (
    "Inter-|   Receive                                                |  Transmit\n"
    " face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed\n"
    "  {0}1       2    3    4    5     6          7         8        9       10    11    12    13     14       15          16\n"
    "    {1}100 200    300   400    500     600          700         800 900 1000    1100    1200    1300    1400       1500          1600\n"
)

CONNTRACK_DATA = """
entries  searched found new invalid ignore delete delete_list insert insert_failed drop early_drop icmp_error  expect_new expect_create expect_delete search_restart
0000007b  00000000 00000000 00000000 000b115a 00000084 00000000 00000000 00000000 00000000 00000000 00000000 00000000  00000000 00000000 00000000 0000004a
0000007b  00000000 00000000 00000000 0007eee5 00000068 00000000 00000000 00000000 00000000 00000000 00000000 00000000  00000000 00000000 00000000 00000035
0000007b  00000000 00000000 00000000 0090346b 00000057 00000000 00000000 00000000 00000000 00000000 00000000 00000000  00000000 00000000 00000000 00000025
0000007b  00000000 00000000 00000000 0005920f 00000069 00000000 00000000 00000000 00000000 00000000 00000000 00000000  00000000 00000000 00000000 00000064
0000007b  00000000 00000000 00000000 000331ff 00000059 00000000 00000000 00000000 00000000 00000000 00000000 00000000  00000000 00000000 00000000 0000003b
0000007b  00000000 00000000 00000000 000314ea 00000066 00000000 00000000 00000000 00000000 00000000 00000000 00000000  00000000 00000000 00000000 00000054
0000007b  00000000 00000000 00000000 0002b270 00000055 00000000 00000000 00000000 00000000 00000000 00000000 00000000  00000000 00000000 00000000 0000003d
0000007b  00000000 00000000 00000000 0002f67d 00000057 00000000 00000000 00000000 00000000 00000000 00000000 00000000  00000000 00000000 00000000 00000042
"""

EXPECTED_CONNTRACK = [
    ConntrackStat(123, 0, 0, 0, 725338, 132, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 74),
    ConntrackStat(123, 0, 0, 0, 519909, 104, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 53),
    ConntrackStat(123, 0, 0, 0, 9450603, 87, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 37),
    ConntrackStat(123, 0, 0, 0, 365071, 105, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 100),
    ConntrackStat(123, 0, 0, 0, 209407, 89, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 59),
    ConntrackStat(123, 0, 0, 0, 201962, 102, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 84),
    ConntrackStat(123, 0, 0, 0, 176752, 85, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 61),
    ConntrackStat(123, 0, 0, 0, 194173, 87, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 66),
]

SNMP_DATA = (
    "Ip: Forwarding DefaultTTL InReceives\n"
    "Ip: 1 64 2000\n"
    "Icmp: InMsgs OutMsgs\n"
    "Icmp: 10 20\n"
    "Tcp: RtoAlgorithm MaxConn ActiveOpens\n"
    "Tcp: 1 -1 4000\n"
)


@pytest.mark.parametrize(
    "first, second",
    [
        ("eth0:   ", "eth1:   "),
        ("eth0:0:   ", "eth1:0:   "),
        ("eth0:", "eth1:"),
        ("eth0:0:", "eth1:0:"),
    ],
)
def test_io_counters_by_file_parsing(tmp_path, first, second):
    path = tmp_path / "proc_dev_net"
    path.write_text(NET_DEV_TEMPLATE.format(first, second))
    counters = io_counters_by_file(True, str(path))

    assert len(counters) == 2
    c0, c1 = counters
    assert c0.name == first.strip()[:-1]
    assert (c0.bytes_recv, c0.packets_recv, c0.errin, c0.dropin, c0.fifoin) == (1, 2, 3, 4, 5)
    assert (c0.bytes_sent, c0.packets_sent, c0.errout, c0.dropout, c0.fifoout) == (9, 10, 11, 12, 13)
    assert c1.name == second.strip()[:-1]
    assert (c1.bytes_recv, c1.packets_recv, c1.errin, c1.dropin, c1.fifoin) == (100, 200, 300, 400, 500)
    assert (c1.bytes_sent, c1.packets_sent, c1.errout, c1.dropout, c1.fifoout) == (900, 1000, 1100, 1200, 1300)


def test_io_counters_by_file_total(tmp_path):
    path = tmp_path / "dev"
    path.write_text(NET_DEV_TEMPLATE.format("eth0:", "eth1:"))
    per_nic = io_counters_by_file(True, str(path))
    total = io_counters_by_file(False, str(path))
    assert len(total) == 1
    assert total[0].name == "all"
    assert total[0].bytes_recv == sum(c.bytes_recv for c in per_nic)
    assert total[0].packets_sent == sum(c.packets_sent for c in per_nic)


def test_io_counters_by_file_rejects_bad_number(tmp_path):
    path = tmp_path / "dev"
    path.write_text(NET_DEV_TEMPLATE.format("eth0: x", "eth1:"))
    with pytest.raises(ValueError):
        io_counters_by_file(True, str(path))


def test_io_counters_by_file_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        io_counters_by_file(True, str(tmp_path / "absent"))


def test_host_proc_uses_environment(monkeypatch):
    monkeypatch.setenv("HOST_PROC", "/custom/proc")
    assert host_proc("net", "dev") == "/custom/proc/net/dev"


def test_host_proc_default(monkeypatch):
    monkeypatch.delenv("HOST_PROC", raising=False)
    assert host_proc("net", "snmp") == "/proc/net/snmp"


def test_io_counters_reads_host_proc(tmp_path, monkeypatch):
    (tmp_path / "net").mkdir()
    (tmp_path / "net" / "dev").write_text(NET_DEV_TEMPLATE.format("eth0:", "eth1:"))
    monkeypatch.setenv("HOST_PROC", str(tmp_path))
    counters = io_counters(True)
    assert [c.name for c in counters] == ["eth0", "eth1"]


def test_conntrack_stat_file_parsing(tmp_path):
    path = tmp_path / "proc_net_stat_conntrack"
    path.write_text(CONNTRACK_DATA)

    stats = conntrack_stats_from_file(str(path), True)
    assert len(stats) == 8
    assert stats == EXPECTED_CONNTRACK

    totals = conntrack_stats_from_file(str(path), False)
    assert len(totals) == 1
    for f in dataclasses.fields(ConntrackStat):
        expected = sum(getattr(s, f.name) for s in EXPECTED_CONNTRACK)
        assert getattr(totals[0], f.name) == expected


def test_conntrack_stats_reads_host_proc(tmp_path, monkeypatch):
    target = tmp_path / "net" / "stat"
    target.mkdir(parents=True)
    (target / "nf_conntrack").write_text(CONNTRACK_DATA)
    monkeypatch.setenv("HOST_PROC", str(tmp_path))
    assert conntrack_stats(True) == EXPECTED_CONNTRACK


def test_proto_counters_selected(tmp_path):
    path = tmp_path / "snmp"
    path.write_text(SNMP_DATA)
    result = proto_counters_from_file(str(path), ["tcp", "ip"])
    assert [r.protocol for r in result] == ["ip", "tcp"]
    assert result[0].stats == {"Forwarding": 1, "DefaultTTL": 64, "InReceives": 2000}
    assert result[1].stats == {"RtoAlgorithm": 1, "MaxConn": -1, "ActiveOpens": 4000}


def test_proto_counters_all_by_default(tmp_path, monkeypatch):
    (tmp_path / "net").mkdir()
    (tmp_path / "net" / "snmp").write_text(SNMP_DATA)
    monkeypatch.setenv("HOST_PROC", str(tmp_path))
    result = proto_counters(None)
    assert [r.protocol for r in result] == ["ip", "icmp", "tcp"]
    assert all(r.stats for r in result)


def test_proto_counters_requires_colon(tmp_path):
    path = tmp_path / "snmp"
    path.write_text("Ip Forwarding\nIp 1\n")
    with pytest.raises(ValueError, match="expected ':'"):
        proto_counters_from_file(str(path), [])


def test_proto_counters_column_mismatch(tmp_path):
    path = tmp_path / "snmp"
    path.write_text("Ip: Forwarding DefaultTTL\nIp: 1\n")
    with pytest.raises(ValueError, match="same number of columns"):
        proto_counters_from_file(str(path), ["ip"])


def test_filter_counters(tmp_path, monkeypatch):
    target = tmp_path / "sys" / "net" / "netfilter"
    target.mkdir(parents=True)
    (target / "nf_conntrack_count").write_text("42\n")
    (target / "nf_conntrack_max").write_text("65536\n")
    monkeypatch.setenv("HOST_PROC", str(tmp_path))
    result = filter_counters()
    assert len(result) == 1
    assert result[0].conntrack_count == 42
    assert result[0].conntrack_max == 65536


def test_filter_counters_missing_files(tmp_path, monkeypatch):
    monkeypatch.setenv("HOST_PROC", str(tmp_path))
    with pytest.raises(FileNotFoundError):
        filter_counters()