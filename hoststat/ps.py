"""Helpers that run and parse the ps command."""

from __future__ import annotations

import datetime
import re
import shutil
import subprocess

CLOCK_TICKS = 100

_SIGNED = re.compile(r"[+-]?[0-9]+")


def _atoi(text: str) -> int:
    if not _SIGNED.fullmatch(text):
        raise ValueError(f"invalid integer, {text}")
    return int(text)


def _atoi_or_zero(text: str) -> int:
    try:
        return _atoi(text)
    except ValueError:
        return 0


def parse_ps_output(output: str) -> list[list[str]]:
    """Split ps output into rows of fields, dropping the header line and blank rows."""
    rows = []
    for line in output.split("\n")[1:]:
        row = [token.strip() for token in line.split(" ") if token]
        if row:
            rows.append(row)
    return rows


def call_ps(arg: str, pid: int, thread_option: bool) -> list[list[str]]:
    """Run ps for the -o columns in arg; pid 0 means every process."""
    ps = shutil.which("ps")
    if ps is None:
        raise FileNotFoundError("ps not found in PATH")
    if pid == 0:
        args = ["-ax", "-o", arg]
    elif thread_option:
        args = ["-x", "-o", arg, "-M", "-p", str(pid)]
    else:
        args = ["-x", "-o", arg, "-p", str(pid)]
    completed = subprocess.run(
        [ps, *args], capture_output=True, text=True, check=True
    )
    return parse_ps_output(completed.stdout)


def convert_cpu_times(text: str) -> float:
    """Convert a ps time such as '1:02:03.45' or '0:01.50' to seconds."""
    ticks = 0
    rest = text
    if ":" in text:
        parts = text.split(":")
        if len(parts) == 3:
            ticks += _atoi(parts[0]) * 60 * 60 * CLOCK_TICKS
            ticks += _atoi(parts[1]) * 60 * CLOCK_TICKS
            rest = parts[2]
        elif len(parts) == 2:
            ticks += _atoi(parts[0]) * 60 * CLOCK_TICKS
            rest = parts[1]
        else:
            raise ValueError("wrong cpu time string")
    seconds, dot, fraction = rest.partition(".")
    if not dot:
        raise ValueError(f"wrong cpu time string, {text}")
    ticks += _atoi_or_zero(seconds) * CLOCK_TICKS
    ticks += _atoi_or_zero(fraction.split(".")[0])
    return ticks / CLOCK_TICKS


def parse_elapsed(text: str) -> datetime.timedelta:
    """Parse ps elapsed time in the form [[dd-]hh:]mm:ss."""
    segments = text.replace("-", ":", 1).split(":")
    values = [_atoi(segment) for segment in reversed(segments)]
    units = ("seconds", "minutes", "hours", "days")
    return datetime.timedelta(**dict(zip(units, values)))