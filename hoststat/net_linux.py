"""Network counters read from the Linux proc filesystem."""

from __future__ import annotations

import os
import re
from collections.abc import Iterable

from .net_types import (
    ConntrackStat,
    ConntrackStatList,
    FilterStat,
    IOCountersStat,
    ProtoCountersStat,
    io_counters_all,
)

NET_PROTOCOLS = ("ip", "icmp", "icmpmsg", "tcp", "udp", "udplite")

_UINT32_MAX = 0xFFFFFFFF
_UINT64_MAX = 2**64 - 1
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_DIGITS = re.compile(r"[0-9]+")
_SIGNED = re.compile(r"[+-]?[0-9]+")
_HEX = re.compile(r"[0-9a-fA-F]+")


def host_proc(*args: str) -> str:
    """Return a path below the proc root, which HOST_PROC may override."""
    root = os.environ.get("HOST_PROC") or "/proc"
    return os.path.join(root, *args)


def _read_lines(filename: str) -> list[str]:
    with open(filename, encoding="utf-8", errors="replace") as handle:
        return handle.read().splitlines()


def _parse_uint64(text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise ValueError(f"invalid unsigned integer, {text}")
    value = int(text)
    if value > _UINT64_MAX:
        raise ValueError(f"value out of range, {text}")
    return value


def _parse_int64(text: str) -> int:
    if not _SIGNED.fullmatch(text):
        raise ValueError(f"invalid integer, {text}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"value out of range, {text}")
    return value


def _hex_to_uint32(text: str) -> int:
    if not _HEX.fullmatch(text):
        return 0
    return min(int(text, 16), _UINT32_MAX)


def io_counters(pernic: bool) -> list[IOCountersStat]:
    """Return I/O counters per interface, or their total when pernic is false."""
    return io_counters_by_file(pernic, host_proc("net", "dev"))


def io_counters_by_file(pernic: bool, filename: str) -> list[IOCountersStat]:
    """Parse counters from a file in the format of /proc/net/dev."""
    result = []
    for line in _read_lines(filename)[2:]:
        name_part, sep, data_part = line.rpartition(":")
        if not sep:
            continue
        name = name_part.strip()
        if not name:
            continue
        fields = data_part.split()
        if len(fields) < 13:
            raise ValueError(f"too few columns for interface {name}")
        result.append(
            IOCountersStat(
                name=name,
                bytes_recv=_parse_uint64(fields[0]),
                packets_recv=_parse_uint64(fields[1]),
                errin=_parse_uint64(fields[2]),
                dropin=_parse_uint64(fields[3]),
                fifoin=_parse_uint64(fields[4]),
                bytes_sent=_parse_uint64(fields[8]),
                packets_sent=_parse_uint64(fields[9]),
                errout=_parse_uint64(fields[10]),
                dropout=_parse_uint64(fields[11]),
                fifoout=_parse_uint64(fields[12]),
            )
        )
    if not pernic:
        return io_counters_all(result)
    return result


def proto_counters(protocols: Iterable[str] | None) -> list[ProtoCountersStat]:
    """Return system-wide protocol statistics; all protocols when none are given."""
    return proto_counters_from_file(host_proc("net", "snmp"), protocols)


def proto_counters_from_file(
    filename: str, protocols: Iterable[str] | None
) -> list[ProtoCountersStat]:
    """Parse protocol statistics from a file in the format of /proc/net/snmp."""
    wanted = set(protocols or ()) or set(NET_PROTOCOLS)
    lines = iter(_read_lines(filename))
    stats = []
    for line in lines:
        colon = line.find(":")
        if colon == -1:
            raise ValueError(f"{filename} is not fomatted correctly, expected ':'.")
        proto = line[:colon].lower()
        data = next(lines, None)
        if proto not in wanted:
            continue
        if data is None:
            raise ValueError(f"{filename} is not fomatted correctly, missing data line.")
        names = line[colon + 2 :].split(" ")
        values = data[colon + 2 :].split(" ")
        if len(names) != len(values):
            raise ValueError(
                f"{filename} is not fomatted correctly, expected same number of columns."
            )
        stats.append(
            ProtoCountersStat(
                protocol=proto,
                stats={n: _parse_int64(v) for n, v in zip(names, values)},
            )
        )
    return stats


def _read_first_int(filename: str) -> int:
    lines = _read_lines(filename)
    if not lines:
        raise ValueError(f"{filename} is empty")
    return _parse_int64(lines[0].strip())


def filter_counters() -> list[FilterStat]:
    """Return the conntrack table usage and its maximum."""
    count = _read_first_int(host_proc("sys", "net", "netfilter", "nf_conntrack_count"))
    maximum = _read_first_int(host_proc("sys", "net", "netfilter", "nf_conntrack_max"))
    return [FilterStat(conntrack_count=count, conntrack_max=maximum)]


def conntrack_stats(percpu: bool) -> list[ConntrackStat]:
    """Return detailed conntrack statistics, per CPU or summed."""
    return conntrack_stats_from_file(host_proc("net", "stat", "nf_conntrack"), percpu)


def conntrack_stats_from_file(filename: str, percpu: bool) -> list[ConntrackStat]:
    """Parse conntrack statistics; one summed item unless percpu is true."""
    stat_list = ConntrackStatList()
    for line in _read_lines(filename):
        fields = line.split()
        if len(fields) == 17 and fields[0] != "entries":
            stat_list.append(ConntrackStat(*(_hex_to_uint32(f) for f in fields)))
    if percpu:
        return stat_list.items()
    return stat_list.summary()