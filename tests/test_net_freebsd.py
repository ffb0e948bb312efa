import subprocess
from unittest import mock

import pytest

from hoststat.net_freebsd import io_counters, parse_netstat

HEADER = "Name    Mtu Network       Address              Ipkts Ierrs Idrop     Ibytes    Opkts Oerrs     Obytes  Coll Drop"

SAMPLE = "\n".join(
    [
        HEADER,
        "em0    1500 <Link#1>      00:00:5e:00:53:01     1000     2     3      40000      500     4      20000     0    5",
        "em0       - 192.0.2.0/24  192.0.2.10             900     -     -      36000      450     -      18000     -    -",
        "lo0   16384 <Link#2>                              10     0     0        800       10     0        800     0    0",
        "",
    ]
)


def _completed(stdout):
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout)


def test_first_line_per_interface_is_kept():
    result = parse_netstat(SAMPLE)
    assert [c.name for c in result] == ["em0", "lo0"]


def test_columns_with_address():
    em0 = parse_netstat(SAMPLE)[0]
    assert em0.packets_recv == 1000
    assert em0.errin == 2
    assert em0.dropin == 3
    assert em0.bytes_recv == 40000
    assert em0.packets_sent == 500
    assert em0.errout == 4
    assert em0.bytes_sent == 20000
    assert em0.dropout == 5


def test_columns_without_address():
    lo0 = parse_netstat(SAMPLE)[1]
    assert lo0.packets_recv == 10
    assert lo0.bytes_recv == 800
    assert lo0.packets_sent == 10
    assert lo0.bytes_sent == 800
    assert lo0.fifoin == lo0.fifoout == 0


def test_dash_values_are_zero():
    line = "tun0 1500 <Link#3> 00:00:5e:00:53:02 - - - - - - - - -"
    (tun0,) = parse_netstat(line)
    assert tun0.name == "tun0"
    assert tun0.packets_recv == tun0.bytes_recv == tun0.bytes_sent == tun0.dropout == 0


def test_short_line_marks_interface_seen():
    output = "\n".join(
        [
            "bad0 1500 <Link#4> 1 2",
            "bad0 1500 <Link#4> 00:00:5e:00:53:03 1 2 3 4 5 6 7 8 9",
        ]
    )
    assert parse_netstat(output) == []


def test_header_and_blank_only():
    assert parse_netstat(HEADER + "\n\n") == []


def test_invalid_number_raises():
    line = "em1 1500 <Link#5> 00:00:5e:00:53:04 abc 0 0 0 0 0 0 0 0"
    with pytest.raises(ValueError):
        parse_netstat(line)


def test_io_counters_per_nic():
    with mock.patch("hoststat.net_freebsd.shutil.which", return_value="/usr/bin/netstat"), \
            mock.patch("hoststat.net_freebsd.subprocess.run", return_value=_completed(SAMPLE)) as run:
        result = io_counters(True)
    assert result == parse_netstat(SAMPLE)
    assert run.call_args.args[0] == ["/usr/bin/netstat", "-ibdnW"]


def test_io_counters_total():
    per_nic = parse_netstat(SAMPLE)
    with mock.patch("hoststat.net_freebsd.shutil.which", return_value="/usr/bin/netstat"), \
            mock.patch("hoststat.net_freebsd.subprocess.run", return_value=_completed(SAMPLE)):
        result = io_counters(False)
    assert len(result) == 1
    assert result[0].name == "all"
    assert result[0].bytes_recv == sum(c.bytes_recv for c in per_nic)
    assert result[0].packets_recv == sum(c.packets_recv for c in per_nic)
    assert result[0].dropout == sum(c.dropout for c in per_nic)


def test_io_counters_without_netstat():
    with mock.patch("hoststat.net_freebsd.shutil.which", return_value=None):
        with pytest.raises(FileNotFoundError):
            io_counters(True)