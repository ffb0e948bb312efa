"""Network I/O counters read from FreeBSD's netstat."""

from __future__ import annotations

import re
import shutil
import subprocess

from .net_types import IOCountersStat, io_counters_all

_UINT64_MAX = 2**64 - 1
_DIGITS = re.compile(r"[0-9]+")


def _parse_uint(text: str) -> int:
    if text == "-":
        return 0
    if not _DIGITS.fullmatch(text):
        raise ValueError(f"invalid counter value, {text}")
    value = int(text)
    if value > _UINT64_MAX:
        raise ValueError(f"counter value out of range, {text}")
    return value


def parse_netstat(output: str) -> list[IOCountersStat]:
    """Parse `netstat -ibdnW` output, keeping the first line of each interface."""
    result = []
    seen: set[str] = set()
    for line in output.split("\n"):
        values = line.split()
        if not values or values[0] == "Name":
            continue
        if values[0] in seen:
            continue
        seen.add(values[0])

        if len(values) < 12:
            continue
        # The Address column is sometimes omitted.
        base = 1 if len(values) >= 13 else 0
        columns = (3, 4, 5, 6, 7, 8, 9, 11)
        (packets_recv, errin, dropin, bytes_recv,
         packets_sent, errout, bytes_sent, dropout) = (
            _parse_uint(values[base + c]) for c in columns
        )
        result.append(
            IOCountersStat(
                name=values[0],
                packets_recv=packets_recv,
                errin=errin,
                dropin=dropin,
                bytes_recv=bytes_recv,
                packets_sent=packets_sent,
                errout=errout,
                bytes_sent=bytes_sent,
                dropout=dropout,
            )
        )
    return result


def io_counters(pernic: bool) -> list[IOCountersStat]:
    """Return per-interface counters, or their total when pernic is false."""
    netstat = shutil.which("netstat")
    if netstat is None:
        raise FileNotFoundError("netstat not found in PATH")
    completed = subprocess.run(
        [netstat, "-ibdnW"], capture_output=True, text=True, check=True
    )
    counters = parse_netstat(completed.stdout)
    if not pernic:
        return io_counters_all(counters)
    return counters