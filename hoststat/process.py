"""Process information gathered from ps, lsof and pgrep."""

from __future__ import annotations

import json
import os
import re
import shutil
import subprocess
import time
from dataclasses import dataclass, field

from . import net
from .net_types import ConnectionStat
from .process_types import CPUTimes, MemoryInfoStat, calculate_percent
from .ps import call_ps, convert_cpu_times, parse_elapsed

_SIGNED = re.compile(r"[+-]?[0-9]+")


def _atoi(text: str) -> int:
    if not _SIGNED.fullmatch(text):
        raise ValueError(f"invalid integer, {text}")
    return int(text)


def _which(name: str) -> str:
    path = shutil.which(name)
    if path is None:
        raise FileNotFoundError(f"{name} not found in PATH")
    return path


def _run(cmd: list[str]) -> str:
    return subprocess.run(cmd, capture_output=True, text=True, check=True).stdout


@dataclass
class Process:
    """A process identified by its pid."""

    pid: int
    _last_cpu_times: CPUTimes | None = field(default=None, repr=False, compare=False)
    _last_cpu_time: float = field(default=0.0, repr=False, compare=False)

    def __str__(self) -> str:
        return json.dumps({"pid": self.pid}, separators=(",", ":"))

    def ppid(self) -> int:
        """Return the pid of the parent process."""
        rows = call_ps("ppid", self.pid, False)
        return _atoi(rows[0][0])

    def exe(self) -> str:
        """Return the path of the executable, as found by lsof."""
        lsof = _which("lsof")
        try:
            output = _run([lsof, "-p", str(self.pid), "-Fpfn"])
        except subprocess.CalledProcessError as exc:
            raise OSError(f"bad call to lsof: {exc}") from exc
        lines = output.split("\n")
        txt_found = 0
        for i in range(1, len(lines), 2):
            if lines[i] == "ftxt":
                txt_found += 1
                if txt_found == 2:
                    return lines[i - 1][1:]
        raise ValueError("missing txt data returned by lsof")

    def cmdline(self) -> str:
        """Return the command line with arguments joined by spaces."""
        return " ".join(self.cmdline_slice())

    def cmdline_slice(self) -> list[str]:
        """Return the command line split on spaces."""
        return call_ps("command", self.pid, False)[0]

    def create_time(self) -> int:
        """Return the creation time in milliseconds since the epoch."""
        rows = call_ps("etime", self.pid, False)
        elapsed = parse_elapsed(rows[0][0])
        start = time.time() - elapsed.total_seconds()
        return int(start) * 1000

    def parent(self) -> Process:
        """Return the parent process, as reported by lsof."""
        lsof = _which("lsof")
        output = _run([lsof, "-p", str(self.pid), "-FR"])
        for line in output.split("\n"):
            if not line or line.startswith("p"):
                continue
            return new_process(_atoi(line.replace("R", "", 1)))
        raise ValueError("could not find parent line")

    def status(self) -> str:
        """Return the process state letters."""
        return call_ps("state", self.pid, False)[0][0]

    def foreground(self) -> bool:
        """True when the process is in the foreground process group of its terminal."""
        ps = _which("ps")
        output = _run([ps, "-o", "stat=", "-p", str(self.pid)])
        return "+" in output

    def background(self) -> bool:
        """True when the process is not in the foreground."""
        return not self.foreground()

    def num_threads(self) -> int:
        """Return the number of threads."""
        return len(call_ps("utime,stime", self.pid, True))

    def times(self) -> CPUTimes:
        """Return the user and system CPU time of the process."""
        row = call_ps("utime,stime", self.pid, False)[0]
        return CPUTimes(
            cpu="cpu",
            user=convert_cpu_times(row[0]),
            system=convert_cpu_times(row[1]),
        )

    def memory_info(self) -> MemoryInfoStat:
        """Return resident and virtual size in bytes and the page-in count."""
        row = call_ps("rss,vsize,pagein", self.pid, False)[0]
        rss, vms, pagein = (_atoi(value) for value in row[:3])
        return MemoryInfoStat(rss=rss * 1024, vms=vms * 1024, swap=pagein)

    def children(self) -> list[Process]:
        """Return the direct children of the process."""
        pgrep = _which("pgrep")
        cmd = [pgrep, "-P", str(self.pid)]
        completed = subprocess.run(cmd, capture_output=True, text=True)
        if completed.returncode != 0:
            if completed.returncode == 1 and not completed.stdout.strip():
                raise ValueError("process does not have children")
            raise subprocess.CalledProcessError(
                completed.returncode, cmd, completed.stdout, completed.stderr
            )
        return [new_process(_atoi(line.strip())) for line in completed.stdout.split("\n") if line.strip()]

    def connections(self) -> list[ConnectionStat]:
        """Return the network connections opened by the process."""
        return net.connections_pid("all", self.pid)

    def percent(self, interval: float) -> float:
        """CPU use in percent.

        With interval 0 the value is measured since the previous call (0 on the
        first call); otherwise the process is sampled over interval seconds.
        """
        cpu_times = self.times()
        now = time.monotonic()
        if interval > 0:
            self._last_cpu_times = cpu_times
            self._last_cpu_time = now
            time.sleep(interval)
            cpu_times = self.times()
            now = time.monotonic()
        elif self._last_cpu_times is None:
            self._last_cpu_times = cpu_times
            self._last_cpu_time = now
            return 0.0

        numcpu = os.cpu_count() or 1
        delta = (now - self._last_cpu_time) * numcpu
        result = calculate_percent(self._last_cpu_times, cpu_times, delta, numcpu)
        self._last_cpu_times = cpu_times
        self._last_cpu_time = now
        return result

    def cpu_percent(self) -> float:
        """Return the CPU time used over the life of the process, in percent."""
        created_ms = self.create_time()
        cpu_times = self.times()
        total_time = time.time() - created_ms / 1000
        if total_time <= 0:
            return 0.0
        return min(100.0, max(0.0, 100 * cpu_times.total() / total_time))


def pids() -> list[int]:
    """Return the pids of all processes."""
    return [_atoi(row[0]) for row in call_ps("pid", 0, False)]


def processes() -> list[Process]:
    """Return a Process for every running process."""
    return [new_process(pid) for pid in pids()]


def pid_exists(pid: int) -> bool:
    """True when a process with this pid is running."""
    return pid in pids()


def new_process(pid: int) -> Process:
    """Return a Process for the given pid."""
    return Process(pid=pid)