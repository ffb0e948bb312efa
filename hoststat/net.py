"""Network statistics for the running platform."""

from __future__ import annotations

import sys
from collections.abc import Iterable

from . import (
    net_darwin,
    net_freebsd,
    net_linux,
    net_linux_conn,
    net_lsof,
    net_openbsd,
)
from .net_types import ConnectionStat, ConntrackStat, FilterStat, IOCountersStat, ProtoCountersStat

_KNOWN = ("linux", "darwin", "freebsd", "openbsd")


def _platform() -> str:
    for name in _KNOWN:
        if sys.platform.startswith(name):
            return name
    return sys.platform


def _unsupported(what: str, system: str) -> NotImplementedError:
    return NotImplementedError(f"{what} not implemented for {system}")


def io_counters(pernic: bool) -> list[IOCountersStat]:
    """Return I/O counters per interface, or their total when pernic is false."""
    system = _platform()
    if system == "linux":
        return net_linux.io_counters(pernic)
    if system == "darwin":
        return net_darwin.io_counters(pernic)
    if system == "freebsd":
        return net_freebsd.io_counters(pernic)
    if system == "openbsd":
        return net_openbsd.io_counters(pernic)
    raise _unsupported("NetIOCounters", system)


def io_counters_by_file(pernic: bool, filename: str) -> list[IOCountersStat]:
    """Read counters from a /proc/net/dev style file; other systems ignore filename."""
    if _platform() == "linux":
        return net_linux.io_counters_by_file(pernic, filename)
    return io_counters(pernic)


def connections(kind: str) -> list[ConnectionStat]:
    """Return all open connections of the given kind."""
    system = _platform()
    if system == "linux":
        return net_linux_conn.connections(kind)
    if system in ("darwin", "freebsd"):
        return net_lsof.connections(kind)
    if system == "openbsd":
        return net_openbsd.connections(kind)
    raise _unsupported("NetConnections", system)


def connections_max(kind: str, max_count: int) -> list[ConnectionStat]:
    """Return connections, looking at no more than max_count descriptors per process."""
    system = _platform()
    if system == "linux":
        return net_linux_conn.connections_max(kind, max_count)
    raise _unsupported("NetConnectionsMax", system)


def connections_pid(kind: str, pid: int) -> list[ConnectionStat]:
    """Return connections opened by one process."""
    system = _platform()
    if system == "linux":
        return net_linux_conn.connections_pid(kind, pid)
    if system in ("darwin", "freebsd"):
        return net_lsof.connections_pid(kind, pid)
    raise _unsupported("NetConnectionsPid", system)


def proto_counters(protocols: Iterable[str] | None) -> list[ProtoCountersStat]:
    """Return system-wide protocol statistics; all protocols when none are given."""
    system = _platform()
    if system == "linux":
        return net_linux.proto_counters(protocols)
    raise _unsupported("NetProtoCounters", system)


def filter_counters() -> list[FilterStat]:
    """Return the conntrack table usage and its maximum."""
    system = _platform()
    if system == "linux":
        return net_linux.filter_counters()
    raise _unsupported("NetFilterCounters", system)


def conntrack_stats(percpu: bool) -> list[ConntrackStat]:
    """Return conntrack statistics, per CPU or summed."""
    system = _platform()
    if system == "linux":
        return net_linux.conntrack_stats(percpu)
    raise _unsupported("ConntrackStats", system)