"""Open network connections as reported by lsof."""

from __future__ import annotations

import shutil
import subprocess

from .net_types import ConnectionStat, parse_net_line

_KIND_ARGS = {
    "inet4": ["4"],
    "inet6": ["6"],
    "tcp": ["tcp"],
    "tcp4": ["4tcp"],
    "tcp6": ["6tcp"],
    "udp": ["udp"],
    "udp4": ["6udp"],
    "udp6": ["6udp"],
}


def lsof_args(kind: str) -> list[str]:
    """Return the lsof selection arguments for a connection kind."""
    kind = kind.lower()
    if kind == "unix":
        return ["-U"]
    return ["-i", *_KIND_ARGS.get(kind, ["tcp", "-i", "udp"])]


def _call_lsof(pid: int, args: list[str]) -> list[str]:
    lsof = shutil.which("lsof")
    if lsof is None:
        raise FileNotFoundError("lsof not found in PATH")
    cmd = [lsof, "-a", "-n", "-P"]
    if pid != 0:
        cmd += ["-p", str(pid)]
    cmd += args
    completed = subprocess.run(cmd, capture_output=True, text=True)
    if completed.returncode != 0:
        # lsof exits with 1 and prints nothing when no file matches.
        if completed.returncode == 1 and not completed.stdout:
            return []
        raise subprocess.CalledProcessError(
            completed.returncode, cmd, completed.stdout, completed.stderr
        )
    return [line for line in completed.stdout.split("\n")[1:] if line]


def connections(kind: str) -> list[ConnectionStat]:
    """Return all open connections of the given kind."""
    return connections_pid(kind, 0)


def connections_pid(kind: str, pid: int) -> list[ConnectionStat]:
    """Return connections of one process, or of all processes when pid is 0."""
    result = []
    for line in _call_lsof(pid, lsof_args(kind)):
        if line.startswith("COMMAND"):
            continue
        try:
            result.append(parse_net_line(line))
        except ValueError:
            continue
    return result