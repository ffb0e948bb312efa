"""Network statistics records and helpers shared by every platform."""

from __future__ import annotations

import dataclasses
import ipaddress
import json
import os
import re
import socket
import struct
import sys
from dataclasses import dataclass, field
from typing import Any

try:
    import fcntl
except ImportError:  # pragma: no cover - not available on Windows
    fcntl = None  # type: ignore[assignment]

_UINT32 = 0xFFFFFFFF
_SYS_NET = "/sys/class/net"
_PROC_IF_INET6 = "/proc/net/if_inet6"
_SIOCGIFADDR = 0x8915
_SIOCGIFNETMASK = 0x891B

_IFF_FLAGS = (
    (0x1, "up"),
    (0x2, "broadcast"),
    (0x8, "loopback"),
    (0x10, "pointtopoint"),
    (0x1000, "multicast"),
)

# Names used by lsof output, mapped to socket family / type numbers.
_CONST_MAP = {
    "unix": getattr(socket, "AF_UNIX", 1),
    "TCP": socket.SOCK_STREAM,
    "UDP": socket.SOCK_DGRAM,
    "IPv4": socket.AF_INET,
    "IPv6": socket.AF_INET6,
}


def _key(name: str, default: Any = 0) -> Any:
    return field(default=default, metadata={"json": name})


def _key_factory(name: str, factory: Any) -> Any:
    return field(default_factory=factory, metadata={"json": name})


def _plain(value: Any) -> Any:
    if isinstance(value, _JsonRecord):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: _plain(value[k]) for k in sorted(value)}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class _JsonRecord:
    """Mixin giving dataclasses a compact JSON string form."""

    def to_dict(self) -> dict[str, Any]:
        return {
            f.metadata.get("json", f.name): _plain(getattr(self, f.name))
            for f in dataclasses.fields(self)  # type: ignore[arg-type]
        }

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


@dataclass
class Addr(_JsonRecord):
    """An IP address and port pair."""

    ip: str = _key("ip", "")
    port: int = _key("port")


@dataclass
class IOCountersStat(_JsonRecord):
    """Per-interface network I/O counters."""

    name: str = _key("name", "")
    bytes_sent: int = _key("bytesSent")
    bytes_recv: int = _key("bytesRecv")
    packets_sent: int = _key("packetsSent")
    packets_recv: int = _key("packetsRecv")
    errin: int = _key("errin")
    errout: int = _key("errout")
    dropin: int = _key("dropin")
    dropout: int = _key("dropout")
    fifoin: int = _key("fifoin")
    fifoout: int = _key("fifoout")


@dataclass
class ConnectionStat(_JsonRecord):
    """One open network connection."""

    fd: int = _key("fd")
    family: int = _key("family")
    type: int = _key("type")
    laddr: Addr = _key_factory("localaddr", Addr)
    raddr: Addr = _key_factory("remoteaddr", Addr)
    status: str = _key("status", "")
    uids: list[int] | None = _key("uids", None)
    pid: int = _key("pid")


@dataclass
class ProtoCountersStat(_JsonRecord):
    """System-wide counters of one network protocol."""

    protocol: str = _key("protocol", "")
    stats: dict[str, int] = _key_factory("stats", dict)


@dataclass
class InterfaceAddr(_JsonRecord):
    """One address of an interface, in CIDR form."""

    addr: str = _key("addr", "")


@dataclass
class InterfaceStat(_JsonRecord):
    """Description of a network interface."""

    mtu: int = _key("mtu")
    name: str = _key("name", "")
    hardware_addr: str = _key("hardwareaddr", "")
    flags: list[str] = _key_factory("flags", list)
    addrs: list[InterfaceAddr] = _key_factory("addrs", list)


@dataclass
class FilterStat(_JsonRecord):
    """Connection tracking usage and limit."""

    conntrack_count: int = _key("conntrackCount")
    conntrack_max: int = _key("conntrackMax")


@dataclass
class ConntrackStat(_JsonRecord):
    """Connection tracking table statistics."""

    entries: int = 0
    searched: int = 0
    found: int = 0
    new: int = 0
    invalid: int = 0
    ignore: int = 0
    delete: int = 0
    delete_list: int = 0
    insert: int = 0
    insert_failed: int = 0
    drop: int = 0
    early_drop: int = 0
    icmp_error: int = 0
    expect_new: int = 0
    expect_create: int = 0
    expect_delete: int = 0
    search_restart: int = 0


class ConntrackStatList:
    """A collection of per-CPU conntrack statistics."""

    def __init__(self, stats: Any = ()) -> None:
        self._items: list[ConntrackStat] = list(stats)

    def __len__(self) -> int:
        return len(self._items)

    def append(self, stat: ConntrackStat) -> None:
        self._items.append(stat)

    def items(self) -> list[ConntrackStat]:
        """Return copies of all collected statistics."""
        return [dataclasses.replace(stat) for stat in self._items]

    def summary(self) -> list[ConntrackStat]:
        """Return a single-element list holding 32-bit totals of all items."""
        totals = {
            f.name: sum(getattr(stat, f.name) for stat in self._items) & _UINT32
            for f in dataclasses.fields(ConntrackStat)
        }
        return [ConntrackStat(**totals)]


def _read_text(path: str) -> str | None:
    try:
        with open(path, encoding="ascii") as handle:
            return handle.read().strip()
    except (OSError, UnicodeDecodeError):
        return None


def _read_int(path: str, base: int) -> int:
    text = _read_text(path)
    if not text:
        return 0
    try:
        return int(text, base)
    except ValueError:
        return 0


def _hardware_addr(name: str) -> str:
    text = _read_text(os.path.join(_SYS_NET, name, "address"))
    if not text:
        return ""
    octets = text.lower().split(":")
    try:
        if not any(int(octet, 16) for octet in octets):
            return ""
    except ValueError:
        return ""
    return ":".join(octets)


def _ipv4_address(name: str) -> str | None:
    if fcntl is None or not sys.platform.startswith("linux"):
        return None
    request = struct.pack("256s", name.encode()[:15])
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        try:
            raw_addr = fcntl.ioctl(sock.fileno(), _SIOCGIFADDR, request)[20:24]
            raw_mask = fcntl.ioctl(sock.fileno(), _SIOCGIFNETMASK, request)[20:24]
        except OSError:
            return None
    address = ipaddress.IPv4Address(raw_addr)
    mask = ipaddress.IPv4Address(raw_mask)
    network = ipaddress.IPv4Network(f"{address}/{mask}", strict=False)
    return f"{address}/{network.prefixlen}"


def _ipv6_addresses(name: str) -> list[str]:
    try:
        with open(_PROC_IF_INET6, encoding="ascii") as handle:
            lines = handle.read().splitlines()
    except OSError:
        return []
    found = []
    for line in lines:
        parts = line.split()
        if len(parts) < 6 or parts[5] != name:
            continue
        try:
            address = ipaddress.IPv6Address(bytes.fromhex(parts[0]))
            prefix = int(parts[2], 16)
        except ValueError:
            continue
        found.append(f"{address.compressed}/{prefix}")
    return found


def _interface_addresses(name: str) -> list[InterfaceAddr]:
    addresses = []
    ipv4 = _ipv4_address(name)
    if ipv4 is not None:
        addresses.append(ipv4)
    addresses.extend(_ipv6_addresses(name))
    return [InterfaceAddr(addr=a) for a in addresses]


def interfaces() -> list[InterfaceStat]:
    """Return the network interfaces of this host."""
    result = []
    for _index, name in socket.if_nameindex():
        base = os.path.join(_SYS_NET, name)
        flag_bits = _read_int(os.path.join(base, "flags"), 16)
        result.append(
            InterfaceStat(
                mtu=_read_int(os.path.join(base, "mtu"), 10),
                name=name,
                hardware_addr=_hardware_addr(name),
                flags=[label for bit, label in _IFF_FLAGS if flag_bits & bit],
                addrs=_interface_addresses(name),
            )
        )
    return result


def io_counters_all(counters: Any) -> list[IOCountersStat]:
    """Sum per-interface counters into one record named 'all'."""
    counters = list(counters)
    return [
        IOCountersStat(
            name="all",
            bytes_recv=sum(c.bytes_recv for c in counters),
            packets_recv=sum(c.packets_recv for c in counters),
            errin=sum(c.errin for c in counters),
            dropin=sum(c.dropin for c in counters),
            bytes_sent=sum(c.bytes_sent for c in counters),
            packets_sent=sum(c.packets_sent for c in counters),
            errout=sum(c.errout for c in counters),
            dropout=sum(c.dropout for c in counters),
        )
    ]


_INT_RE = re.compile(r"[+-]?[0-9]+")


def _atoi(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer, {text}")
    return int(text)


def _split_host_port(text: str) -> tuple[str, str]:
    if text.startswith("["):
        end = text.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address, {text}")
        host, rest = text[1:end], text[end + 1 :]
        if not rest.startswith(":"):
            raise ValueError(f"missing port in address, {text}")
        port = rest[1:]
        if ":" in port or "[" in port or "]" in port:
            raise ValueError(f"too many colons in address, {text}")
        return host, port
    host, sep, port = text.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address, {text}")
    if ":" in host or "[" in host or "]" in host:
        raise ValueError(f"too many colons in address, {text}")
    return host, port


def _parse_addr(text: str) -> Addr:
    try:
        host, port = _split_host_port(text)
    except ValueError as exc:
        raise ValueError(f"wrong addr, {text}") from exc
    return Addr(ip=host, port=_atoi(port) & _UINT32)


def parse_net_addr(line: str) -> tuple[Addr, Addr]:
    """Parse 'local->remote' (remote optional) into two addresses."""
    parts = line.split("->")
    error: ValueError | None = None
    try:
        laddr = _parse_addr(parts[0])
    except ValueError as exc:
        laddr, error = Addr(), exc
    raddr = Addr()
    if len(parts) == 2:
        raddr = _parse_addr(parts[1])
        # A readable remote address clears an error from the local one.
        error = None
    if error is not None:
        raise error
    return laddr, raddr


def parse_net_line(line: str) -> ConnectionStat:
    """Parse one line of lsof network output."""
    f = line.split()
    if len(f) < 8:
        raise ValueError(f"wrong line,{line}")
    if len(f) == 8:
        f.append(f[7])
        f[7] = "unix"

    pid = _atoi(f[1])
    try:
        fd = _atoi(f[3].strip("u"))
    except ValueError as exc:
        raise ValueError(f"unknown fd, {f[3]}") from exc
    if f[4] not in _CONST_MAP:
        raise ValueError(f"unknown family, {f[4]}")
    if f[7] not in _CONST_MAP:
        raise ValueError(f"unknown type, {f[7]}")

    if f[7] == "unix":
        laddr, raddr = Addr(ip=f[8]), Addr()
    else:
        try:
            laddr, raddr = parse_net_addr(f[8])
        except ValueError as exc:
            raise ValueError(f"failed to parse netaddr, {f[8]}") from exc

    return ConnectionStat(
        fd=fd & _UINT32,
        family=_CONST_MAP[f[4]],
        type=_CONST_MAP[f[7]],
        laddr=laddr,
        raddr=raddr,
        status=f[9].strip("()") if len(f) == 10 else "",
        pid=pid,
    )