"""Open network connections read from the Linux proc filesystem."""

from __future__ import annotations

import ipaddress
import os
import re
import socket
from dataclasses import dataclass
from typing import NamedTuple

from .net_linux import host_proc
from .net_types import Addr, ConnectionStat

_UINT32 = 0xFFFFFFFF
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_INT64_MAX = 2**63 - 1
_SIGNED = re.compile(r"[+-]?[0-9]+")
_HEX = re.compile(r"[0-9a-fA-F]+")
_HEX_OR_EMPTY = re.compile(r"[0-9a-fA-F]*")
_AF_UNIX = getattr(socket, "AF_UNIX", 1)

TCP_STATUSES = {
    "01": "ESTABLISHED",
    "02": "SYN_SENT",
    "03": "SYN_RECV",
    "04": "FIN_WAIT1",
    "05": "FIN_WAIT2",
    "06": "TIME_WAIT",
    "07": "CLOSE",
    "08": "CLOSE_WAIT",
    "09": "LAST_ACK",
    "0A": "LISTEN",
    "0B": "CLOSING",
}


class _Kind(NamedTuple):
    family: int
    sock_type: int
    filename: str


_TCP4 = _Kind(socket.AF_INET, socket.SOCK_STREAM, "tcp")
_TCP6 = _Kind(socket.AF_INET6, socket.SOCK_STREAM, "tcp6")
_UDP4 = _Kind(socket.AF_INET, socket.SOCK_DGRAM, "udp")
_UDP6 = _Kind(socket.AF_INET6, socket.SOCK_DGRAM, "udp6")
_UNIX = _Kind(_AF_UNIX, 0, "unix")

_KIND_MAP: dict[str, tuple[_Kind, ...]] = {
    "all": (_TCP4, _TCP6, _UDP4, _UDP6, _UNIX),
    "tcp": (_TCP4, _TCP6),
    "tcp4": (_TCP4,),
    "tcp6": (_TCP6,),
    "udp": (_UDP4, _UDP6),
    "udp4": (_UDP4,),
    "udp6": (_UDP6,),
    "unix": (_UNIX,),
    "inet": (_TCP4, _TCP6, _UDP4, _UDP6),
    "inet4": (_TCP4, _UDP4),
    "inet6": (_TCP6, _UDP6),
}


@dataclass(frozen=True)
class InodeOwner:
    """A process and descriptor holding a socket inode."""

    pid: int = 0
    fd: int = 0


@dataclass
class _Conn:
    fd: int
    family: int
    sock_type: int
    laddr: Addr
    raddr: Addr
    status: str
    pid: int


def connections(kind: str) -> list[ConnectionStat]:
    """Return all open connections of the given kind."""
    return connections_pid(kind, 0)


def connections_max(kind: str, max_count: int) -> list[ConnectionStat]:
    """Return connections, looking at no more than max_count descriptors per process."""
    return connections_pid_max(kind, 0, max_count)


def connections_pid(kind: str, pid: int) -> list[ConnectionStat]:
    """Return connections of one process, or of all processes when pid is 0."""
    return _connections(kind, pid, 0, detailed=True)


def connections_pid_max(kind: str, pid: int, max_count: int) -> list[ConnectionStat]:
    """Like connections_pid, looking at no more than max_count descriptors per process."""
    return _connections(kind, pid, max_count, detailed=False)


def _connections(
    kind: str, pid: int, max_count: int, detailed: bool
) -> list[ConnectionStat]:
    kinds = _KIND_MAP.get(kind)
    if kinds is None:
        raise ValueError(f"invalid kind, {kind}")
    root = host_proc()
    if pid == 0:
        try:
            inodes = get_proc_inodes_all(root, max_count)
        except OSError as exc:
            message = f"cound not get pid(s), {pid}"
            if detailed:
                message = f"{message}: {exc}"
            raise OSError(message) from exc
    else:
        try:
            inodes = get_proc_inodes(root, pid, max_count)
        except OSError:
            inodes = {}
        if not inodes:
            return []
    return _stats_from_inodes(root, pid, kinds, inodes)


def _stats_from_inodes(
    root: str, pid: int, kinds: tuple[_Kind, ...], inodes: dict[str, list[InodeOwner]]
) -> list[ConnectionStat]:
    seen: set[str] = set()
    result = []
    for kind in kinds:
        if pid == 0:
            path = os.path.join(root, "net", kind.filename)
        else:
            path = os.path.join(root, str(pid), "net", kind.filename)
        if kind.family in (socket.AF_INET, socket.AF_INET6):
            found = _process_inet(path, kind, inodes, pid)
        else:
            found = _process_unix(path, kind, inodes, pid)
        for conn in found:
            key = (
                f"{conn.sock_type}-{conn.laddr.ip}:{conn.laddr.port}-"
                f"{conn.raddr.ip}:{conn.raddr.port}-{conn.status}"
            )
            if key in seen:
                continue
            seen.add(key)
            result.append(
                ConnectionStat(
                    fd=conn.fd,
                    family=conn.family,
                    type=conn.sock_type,
                    laddr=conn.laddr,
                    raddr=conn.raddr,
                    status=conn.status,
                    uids=_uids(conn.pid),
                    pid=conn.pid,
                )
            )
    return result


def _parse_int32(text: str) -> int:
    if not _SIGNED.fullmatch(text):
        raise ValueError(f"invalid integer, {text}")
    value = int(text)
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError(f"value out of range, {text}")
    return value


def _uids(pid: int) -> list[int] | None:
    """Real, effective, saved and filesystem uids of a process; [] when unreadable."""
    try:
        with open(host_proc(str(pid), "status"), encoding="utf-8", errors="replace") as fh:
            contents = fh.read()
    except OSError:
        return []
    uids = None
    for line in contents.split("\n"):
        name, sep, value = line.partition("\t")
        if not sep:
            continue
        if name.rstrip(":") == "Uid":
            try:
                uids = [_parse_int32(part) for part in value.split("\t")]
            except ValueError:
                return []
    return uids


def pids() -> list[int]:
    """Return the ids of all processes listed under the proc root."""
    result = []
    for name in os.listdir(host_proc()):
        try:
            result.append(_parse_int32(name))
        except ValueError:
            continue
    return result


def get_proc_inodes(root: str, pid: int, max_count: int) -> dict[str, list[InodeOwner]]:
    """Map socket inodes to the descriptors of one process that hold them."""
    fd_dir = os.path.join(root, str(pid), "fd")
    names = os.listdir(fd_dir)
    if max_count > 0:
        names = names[:max_count]
    result: dict[str, list[InodeOwner]] = {}
    for name in names:
        try:
            target = os.readlink(os.path.join(fd_dir, name))
        except OSError:
            continue
        if not target.startswith("socket:["):
            continue
        inode = target[8:-1]
        owners = result.setdefault(inode, [])
        try:
            fd = int(name, 10)
        except ValueError:
            continue
        owners.append(InodeOwner(pid=pid, fd=fd & _UINT32))
    return result


def get_proc_inodes_all(root: str, max_count: int) -> dict[str, list[InodeOwner]]:
    """Map socket inodes to their holders across all processes."""
    result: dict[str, list[InodeOwner]] = {}
    for pid in pids():
        try:
            found = get_proc_inodes(root, pid, max_count)
        except (PermissionError, FileNotFoundError):
            continue
        for inode, owners in found.items():
            result.setdefault(inode, []).extend(owners)
    return result


def reverse(data: bytes) -> bytes:
    """Return the bytes in reverse order."""
    return bytes(data[::-1])


def _ip_string(raw: bytes) -> str:
    if not raw:
        return "<nil>"
    if len(raw) == 4:
        return str(ipaddress.IPv4Address(raw))
    if len(raw) == 16:
        address = ipaddress.IPv6Address(raw)
        if address.ipv4_mapped is not None:
            return str(address.ipv4_mapped)
        return address.compressed
    return "?" + raw.hex()


def _parse_ipv6_hex(raw: bytes) -> bytes:
    if len(raw) != 16:
        raise ValueError("invalid IPv6 string")
    return b"".join(reverse(raw[i : i + 4]) for i in range(0, 16, 4))


def decode_address(family: int, src: str) -> Addr:
    """Decode an address of /proc/net/*, e.g. '0500000A:0016' to 10.0.0.5 port 22."""
    parts = src.split(":")
    if len(parts) != 2:
        raise ValueError(f"does not contain port, {src}")
    host, port_text = parts
    if not _HEX.fullmatch(port_text) or int(port_text, 16) > _INT64_MAX:
        raise ValueError(f"invalid port, {src}")
    port = int(port_text, 16)
    if not _HEX_OR_EMPTY.fullmatch(host) or len(host) % 2:
        raise ValueError(f"decode error, {src}")
    decoded = bytes.fromhex(host)
    if family == socket.AF_INET:
        raw = reverse(decoded)
    else:
        raw = _parse_ipv6_hex(decoded)
    return Addr(ip=_ip_string(raw), port=port & _UINT32)


def _read_lines(path: str) -> list[str]:
    with open(path, "rb") as fh:
        contents = fh.read()
    return [line.decode("utf-8", errors="replace") for line in contents.split(b"\n")]


def _process_inet(
    path: str, kind: _Kind, inodes: dict[str, list[InodeOwner]], filter_pid: int
) -> list[_Conn]:
    if path.endswith("6") and not os.path.exists(path):
        return []
    result = []
    for line in _read_lines(path)[1:]:
        fields = line.split()
        if len(fields) < 10:
            continue
        owners = inodes.get(fields[9])
        owner = owners[0] if owners else InodeOwner()
        if filter_pid > 0 and filter_pid != owner.pid:
            continue
        if kind.sock_type == socket.SOCK_STREAM:
            status = TCP_STATUSES.get(fields[3], "")
        else:
            status = "NONE"
        try:
            laddr = decode_address(kind.family, fields[1])
            raddr = decode_address(kind.family, fields[2])
        except ValueError:
            continue
        result.append(
            _Conn(
                fd=owner.fd,
                family=int(kind.family),
                sock_type=int(kind.sock_type),
                laddr=laddr,
                raddr=raddr,
                status=status,
                pid=owner.pid,
            )
        )
    return result


def _process_unix(
    path: str, kind: _Kind, inodes: dict[str, list[InodeOwner]], filter_pid: int
) -> list[_Conn]:
    result = []
    for line in _read_lines(path)[1:]:
        tokens = line.split()
        if len(tokens) < 7:
            continue
        sock_type = _parse_int32(tokens[4]) & _UINT32
        owners = inodes.get(tokens[6]) or [InodeOwner()]
        sock_path = tokens[-1] if len(tokens) == 8 else ""
        for owner in owners:
            if filter_pid > 0 and filter_pid != owner.pid:
                continue
            result.append(
                _Conn(
                    fd=owner.fd,
                    family=int(kind.family),
                    sock_type=sock_type,
                    laddr=Addr(ip=sock_path),
                    raddr=Addr(),
                    status="NONE",
                    pid=owner.pid,
                )
            )
    return result