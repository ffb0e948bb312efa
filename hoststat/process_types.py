"""Records describing a process and its resource use."""

from __future__ import annotations

from dataclasses import dataclass, fields

from .net_types import _JsonRecord, _key


@dataclass
class CPUTimes(_JsonRecord):
    """CPU time, in seconds, that a process or processor has spent in each mode."""

    cpu: str = _key("cpu", "")
    user: float = _key("user", 0.0)
    system: float = _key("system", 0.0)
    idle: float = _key("idle", 0.0)
    nice: float = _key("nice", 0.0)
    iowait: float = _key("iowait", 0.0)
    irq: float = _key("irq", 0.0)
    softirq: float = _key("softirq", 0.0)
    steal: float = _key("steal", 0.0)
    guest: float = _key("guest", 0.0)
    guest_nice: float = _key("guestNice", 0.0)

    def total(self) -> float:
        """Return the sum of the time spent in every mode."""
        return sum(getattr(self, f.name) for f in fields(self) if f.name != "cpu")


@dataclass
class OpenFilesStat(_JsonRecord):
    """A file held open by a process."""

    path: str = _key("path", "")
    fd: int = _key("fd")


@dataclass
class MemoryInfoStat(_JsonRecord):
    """Memory use of a process, in bytes."""

    rss: int = _key("rss")
    vms: int = _key("vms")
    hwm: int = _key("hwm")
    data: int = _key("data")
    stack: int = _key("stack")
    locked: int = _key("locked")
    swap: int = _key("swap")


@dataclass
class SignalInfoStat(_JsonRecord):
    """Signal masks of a process."""

    pending_process: int = _key("pending_process")
    pending_thread: int = _key("pending_thread")
    blocked: int = _key("blocked")
    ignored: int = _key("ignored")
    caught: int = _key("caught")


@dataclass
class RlimitStat(_JsonRecord):
    """One resource limit of a process and its current use."""

    resource: int = _key("resource")
    soft: int = _key("soft")
    hard: int = _key("hard")
    used: int = _key("used")


@dataclass
class IOCountersStat(_JsonRecord):
    """Disk I/O counters of a process."""

    read_count: int = _key("readCount")
    write_count: int = _key("writeCount")
    read_bytes: int = _key("readBytes")
    write_bytes: int = _key("writeBytes")


@dataclass
class NumCtxSwitchesStat(_JsonRecord):
    """Voluntary and involuntary context switches of a process."""

    voluntary: int = _key("voluntary")
    involuntary: int = _key("involuntary")


@dataclass
class PageFaultsStat(_JsonRecord):
    """Page faults of a process and of its waited-for children."""

    minor_faults: int = _key("minorFaults")
    major_faults: int = _key("majorFaults")
    child_minor_faults: int = _key("childMinorFaults")
    child_major_faults: int = _key("childMajorFaults")


def calculate_percent(t1: CPUTimes, t2: CPUTimes, delta: float, numcpu: int) -> float:
    """Return CPU use between two samples as a percentage clamped to 0..100."""
    if delta == 0:
        return 0.0
    delta_proc = t2.total() - t1.total()
    overall = ((delta_proc / delta) * 100) * numcpu
    return min(100.0, max(0.0, overall))