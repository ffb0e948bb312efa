"""Network I/O counters read from macOS's netstat."""

from __future__ import annotations

import re
import shutil
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass

from .net_types import IOCountersStat, io_counters_all

_UINT64_MAX = 2**64 - 1
_DIGITS = re.compile(r"[0-9]+")
_LINK_RE = re.compile(r"<Link#(\d+)>")


class NetstatHeaderError(ValueError):
    """Raised when the header line of netstat output is given as data."""

    def __init__(self) -> None:
        super().__init__("Can't parse header of netstat output")


@dataclass
class NetstatInterface:
    """One line of netstat output with the link number, when it has one."""

    stat: IOCountersStat
    link_id: int | None = None


class InterfaceNameUsage(dict):
    """How many link lines carry each interface name."""

    def is_truncated(self) -> bool:
        """True when some name is shared by several links."""
        return any(usage > 1 for usage in self.values())

    def not_truncated(self) -> list[str]:
        """Names that belong to exactly one link."""
        return [name for name, usage in self.items() if usage == 1]


def interface_name_usage(interfaces: Iterable[NetstatInterface]) -> InterfaceNameUsage:
    """Count the link lines of each interface name."""
    usage = InterfaceNameUsage()
    for iface in interfaces:
        if iface.link_id is not None:
            usage[iface.stat.name] = usage.get(iface.stat.name, 0) + 1
    return usage


def _parse_uint(text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise ValueError(f"invalid counter value, {text}")
    value = int(text)
    if value > _UINT64_MAX:
        raise ValueError(f"counter value out of range, {text}")
    return value


def parse_netstat_line(line: str) -> tuple[IOCountersStat, int | None]:
    """Parse one line of `netstat -ibdnW` into counters and an optional link id."""
    columns = line.split()
    if columns and columns[0] == "Name":
        raise NetstatHeaderError()
    count = len(columns)
    if count < 11 or count > 13:
        raise ValueError(f"Line {line!r} do have an invalid number of columns {count}")

    link_id = None
    match = _LINK_RE.fullmatch(columns[2])
    if match is not None:
        link_id = _parse_uint(match.group(1))

    # The Address column is sometimes omitted.
    base = 1 if count >= 12 else 0
    targets = [columns[base + c] for c in (3, 4, 5, 6, 7, 8)]
    if count == 12:
        targets.append(columns[base + 10])
    parsed = [0 if t == "-" else _parse_uint(t) for t in targets]

    stat = IOCountersStat(
        name=columns[0].strip("*"),
        packets_recv=parsed[0],
        errin=parsed[1],
        bytes_recv=parsed[2],
        packets_sent=parsed[3],
        errout=parsed[4],
        bytes_sent=parsed[5],
    )
    if len(parsed) == 7:
        stat.dropout = parsed[6]
    return stat, link_id


def parse_netstat_output(output: str) -> list[NetstatInterface]:
    """Parse all data lines of netstat output, skipping its header."""
    lines = output.strip("\n").split("\n")
    result = []
    for line in lines[1:]:
        stat, link_id = parse_netstat_line(line)
        result.append(NetstatInterface(stat=stat, link_id=link_id))
    return result


def _which(name: str) -> str:
    path = shutil.which(name)
    if path is None:
        raise FileNotFoundError(f"{name} not found in PATH")
    return path


def _run(args: list[str]) -> str:
    return subprocess.run(args, capture_output=True, text=True, check=True).stdout


def _untruncated_counters(
    netstat: str, interfaces: list[NetstatInterface], slots: int
) -> list[IOCountersStat]:
    names = _run([_which("ifconfig"), "-l"]).rstrip("\n").split()
    head: list[IOCountersStat] = []
    tail: list[IOCountersStat] = []
    for name in names:
        known = next(
            (i.stat for i in interfaces if i.link_id is not None and i.stat.name == name),
            None,
        )
        if known is not None:
            head.append(known)
            continue
        parsed = parse_netstat_output(_run([netstat, "-ibdnWI" + name]))
        # An empty result means the interface vanished since ifconfig ran.
        linked = next((i.stat for i in parsed if i.link_id is not None), None)
        if linked is not None:
            tail.append(linked)
    head.extend(IOCountersStat() for _ in range(slots - len(head)))
    return head + tail


def io_counters(pernic: bool) -> list[IOCountersStat]:
    """Return per-interface counters, or their total when pernic is false."""
    netstat = _which("netstat")
    interfaces = parse_netstat_output(_run([netstat, "-ibdnW"]))
    usage = interface_name_usage(interfaces)
    if not usage.is_truncated():
        counters = [i.stat for i in interfaces if i.link_id is not None]
    else:
        counters = _untruncated_counters(netstat, interfaces, len(usage.not_truncated()))
    if not pernic:
        return io_counters_all(counters)
    return counters