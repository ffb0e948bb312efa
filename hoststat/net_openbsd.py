"""Network counters and connections read from OpenBSD's netstat."""

from __future__ import annotations

import re
import shutil
import socket
import subprocess

from .net_types import Addr, ConnectionStat, IOCountersStat, io_counters_all

_UINT32 = 0xFFFFFFFF
_UINT64_MAX = 2**64 - 1
_DIGITS = re.compile(r"[0-9]+")
_PORT_MATCH = re.compile(r"(.*)\.(\d+)$")

_NET_TYPES = {
    "tcp": (socket.SOCK_STREAM, socket.AF_INET),
    "udp": (socket.SOCK_DGRAM, socket.AF_INET),
    "tcp6": (socket.SOCK_STREAM, socket.AF_INET6),
    "udp6": (socket.SOCK_DGRAM, socket.AF_INET6),
}

_KIND_ARGS = {
    "inet4": ["-finet"],
    "inet6": ["-finet6"],
    "tcp": ["-ptcp"],
    "tcp4": ["-ptcp", "-finet"],
    "tcp6": ["-ptcp", "-finet6"],
    "udp": ["-pudp"],
    "udp4": ["-pudp", "-finet"],
    "udp6": ["-pudp", "-finet6"],
}


def _parse_uint(text: str) -> int:
    if text == "-":
        return 0
    if not _DIGITS.fullmatch(text):
        raise ValueError(f"invalid counter value, {text}")
    value = int(text)
    if value > _UINT64_MAX:
        raise ValueError(f"counter value out of range, {text}")
    return value


def _netstat_path() -> str:
    netstat = shutil.which("netstat")
    if netstat is None:
        raise FileNotFoundError("netstat not found in PATH")
    return netstat


def _run(args: list[str]) -> str:
    return subprocess.run(args, capture_output=True, text=True, check=True).stdout


def parse_netstat(
    output: str, mode: str, iocs: dict[str, IOCountersStat]
) -> dict[str, IOCountersStat]:
    """Merge `netstat -inb` or `netstat -ind` output into iocs, keyed by name."""
    columns = 10 if mode == "ind" else 6
    seen: set[str] = set()
    for line in output.split("\n"):
        values = line.split()
        if not values or values[0] == "Name":
            continue
        if values[0] in seen or len(values) < columns:
            continue
        base = 1
        if mode == "inb":
            bytes_recv, bytes_sent = (_parse_uint(values[base + c]) for c in (3, 4))
        else:
            packets_recv, errin, packets_sent, errout, drops = (
                _parse_uint(values[base + c]) for c in (3, 4, 5, 6, 8)
            )
        seen.add(values[0])

        stat = iocs.get(values[0]) or IOCountersStat(name=values[0])
        if mode == "inb":
            stat.bytes_recv = bytes_recv
            stat.bytes_sent = bytes_sent
        else:
            stat.packets_recv = packets_recv
            stat.errin = errin
            stat.packets_sent = packets_sent
            stat.errout = errout
            stat.dropin = drops
            stat.dropout = drops
        iocs[stat.name] = stat
    return iocs


def io_counters(pernic: bool) -> list[IOCountersStat]:
    """Return per-interface counters, or their total when pernic is false."""
    netstat = _netstat_path()
    bytes_output = _run([netstat, "-inb"])
    drops_output = _run([netstat, "-ind"])
    iocs: dict[str, IOCountersStat] = {}
    parse_netstat(bytes_output, "inb", iocs)
    parse_netstat(drops_output, "ind", iocs)
    counters = list(iocs.values())
    if not pernic:
        return io_counters_all(counters)
    return counters


def parse_netstat_addr(local: str, remote: str, family: int) -> tuple[Addr, Addr]:
    """Parse netstat's host.port forms of a local and a remote address."""

    def parse(text: str) -> Addr:
        match = _PORT_MATCH.search(text)
        if match is None:
            raise ValueError(f"wrong addr, {text}")
        host, port = match.group(1), match.group(2)
        if host == "*":
            if family == socket.AF_INET:
                host = "0.0.0.0"
            elif family == socket.AF_INET6:
                host = "::"
            else:
                raise ValueError(f"unknown family, {family}")
        return Addr(ip=host, port=int(port) & _UINT32)

    error: ValueError | None = None
    try:
        laddr = parse(local)
    except ValueError as exc:
        laddr, error = Addr(), exc
    raddr = Addr()
    if remote != "*.*":
        raddr = parse(remote)
        # A readable remote address clears an error from the local one.
        error = None
    if error is not None:
        raise error
    return laddr, raddr


def parse_netstat_line(line: str) -> ConnectionStat:
    """Parse one connection line of `netstat -na` output."""
    f = line.split()
    if len(f) < 5:
        raise ValueError(f"wrong line,{line}")
    if f[0] not in _NET_TYPES:
        raise ValueError(f"unknown type, {f[0]}")
    net_type, net_family = _NET_TYPES[f[0]]
    try:
        laddr, raddr = parse_netstat_addr(f[3], f[4], net_family)
    except ValueError as exc:
        raise ValueError(f"failed to parse netaddr, {f[3]} {f[4]}") from exc
    return ConnectionStat(
        fd=0,
        family=int(net_family),
        type=int(net_type),
        laddr=laddr,
        raddr=raddr,
        status=f[5] if len(f) == 6 else "",
        pid=0,
    )


def connections(kind: str) -> list[ConnectionStat]:
    """Return open connections of the given kind, as reported by netstat."""
    kind = kind.lower()
    if kind == "unix":
        raise NotImplementedError("unix connections are not supported")
    args = ["-na", *_KIND_ARGS.get(kind, [])]
    output = _run([_netstat_path(), *args])
    result = []
    for line in output.split("\n"):
        if not line.startswith(("tcp", "udp")):
            continue
        try:
            result.append(parse_netstat_line(line))
        except ValueError:
            continue
    return result