# hoststat

Network and process statistics for the running host, returned as plain
Python dataclasses. On Linux the network figures come from `/proc`. On macOS
and the BSDs they come from the output of `netstat` and `lsof`. Process
information comes from `ps`, `lsof` and `pgrep` on every system.

The package is a library only. It has no dependencies beyond the standard
library.

## Install

```
pip install hoststat
```

## Network

`hoststat.net` picks the right implementation for the running platform:

```python
from hoststat import net

# Totals for every interface, added up under the name "all"
print(net.io_counters(False))

# One IOCountersStat for each interface
for nic in net.io_counters(True):
    print(nic.name, nic.bytes_recv, nic.bytes_sent)

# Open connections. kind is one of "all", "tcp", "tcp4", "tcp6", "udp",
# "udp4", "udp6", "unix", "inet", "inet4" or "inet6".
for conn in net.connections("inet"):
    print(conn.laddr, conn.raddr, conn.status, conn.pid)

# Connections of one process
print(net.connections_pid("tcp", 1))

# Linux only
print(net.connections_max("tcp", 10))    # at most 10 descriptors per process
print(net.proto_counters(["tcp", "ip"]))  # from /proc/net/snmp; None means all
print(net.filter_counters())              # conntrack count and maximum
print(net.conntrack_stats(False))         # summed; True gives one per CPU
```

Support for each platform:

- Linux: everything above. It reads `/proc`, or the directory named by the
  `HOST_PROC` environment variable when that is set. Connections carry the
  owning process's uids.
- macOS and FreeBSD: `io_counters` comes from `netstat -ibdnW`.
  `connections` and `connections_pid` come from `lsof`.
- OpenBSD: `io_counters` comes from `netstat -inb` and `netstat -ind`.
  `connections` comes from `netstat -na`. The `"unix"` kind is not supported.

A call that the current platform does not support raises
`NotImplementedError`. `net.io_counters_by_file(pernic, filename)` reads the
given file on Linux. Elsewhere it ignores `filename` and behaves like
`io_counters`.

`hoststat.net_types.interfaces()` lists the interfaces with their MTU,
hardware address, flags (`up`, `broadcast`, `loopback`, `pointtopoint`,
`multicast`) and addresses in CIDR form. The MTU, hardware address, flags
and addresses are read from Linux's `/sys/class/net` and `/proc`. On other
systems only the names are filled in.

## Records

The statistics classes are dataclasses. `str()` turns them into compact
JSON:

```python
from hoststat.net_types import Addr

str(Addr(ip="192.168.0.1", port=8000))
# '{"ip":"192.168.0.1","port":8000}'
```

`hoststat.net_types.ConntrackStatList` collects `ConntrackStat` items.
`items()` returns copies of them. `summary()` returns a single item that
holds their totals.

## Parsing captured output

The parsers take text, so you can feed them saved output:

- `hoststat.net_linux.io_counters_by_file`, `proto_counters_from_file` and
  `conntrack_stats_from_file` read copies of `/proc/net/dev`,
  `/proc/net/snmp` and `/proc/net/stat/nf_conntrack`.
- `hoststat.net_linux_conn.decode_address` decodes `/proc/net/tcp` style
  addresses. For example, `"0500000A:0016"` becomes `10.0.0.5`, port 22.
- `hoststat.net_darwin.parse_netstat_output` and `parse_netstat_line` read
  macOS `netstat -ibdnW` output. `interface_name_usage` detects interface
  names that netstat has truncated.
- `hoststat.net_freebsd.parse_netstat` reads FreeBSD `netstat -ibdnW`
  output.
- `hoststat.net_openbsd.parse_netstat` and `parse_netstat_line` read OpenBSD
  `netstat` output.
- `hoststat.net_types.parse_net_line` reads one line of `lsof` network
  output.
- `hoststat.ps.parse_ps_output`, `convert_cpu_times` and `parse_elapsed`
  read `ps` output and its time formats.

Malformed input raises `ValueError`. A command that is not on `PATH` raises
`FileNotFoundError`. A command that fails raises
`subprocess.CalledProcessError`.

## Processes

```python
import os
from hoststat.process import new_process, pids, pid_exists, processes

p = new_process(os.getpid())
print(p.ppid(), p.status(), p.cmdline(), p.cmdline_slice())
print(p.create_time())             # milliseconds since the epoch
print(p.times().total(), p.memory_info().rss)
print(p.num_threads(), p.foreground(), p.background())
print(p.parent(), p.children(), p.exe(), p.connections())

# With interval 0 the first call returns 0.0. Each later call returns the
# usage since the previous call. A positive interval samples for that many
# seconds.
p.percent(0)
print(p.percent(0))
print(p.cpu_percent())             # over the life of the process

print(pid_exists(1), len(pids()), len(processes()))
```

Some behaviour to be aware of:

- `children()` raises `ValueError` when the process has none.
- `exe()` and `parent()` need `lsof`.
- `num_threads()` uses the `ps -M` option found on macOS.

`hoststat.process_types` defines the records used here (`CPUTimes`,
`MemoryInfoStat` and others) and `calculate_percent`.

## What it does not do

- There is no command-line tool.
- `Process` has no methods for the name, working directory, terminal,
  uids/gids, nice values, resource limits, I/O counters, open files, memory
  maps, page faults or context switches. Some of these have record classes
  in `process_types` (`OpenFilesStat`, `RlimitStat`, `IOCountersStat`,
  `PageFaultsStat`, `NumCtxSwitchesStat`, `SignalInfoStat`), but nothing
  fills them in.
- `Process` cannot send signals, suspend, resume or kill a process.
- There is no Windows support.

## Tests

```
pip install -e ".[test]"
pytest
```