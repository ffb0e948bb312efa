"""Network and process statistics for Linux, macOS and the BSDs."""

__version__ = "0.1.0"
__all__ = [
    "net",
    "net_types",
    "net_linux",
    "net_linux_conn",
    "net_darwin",
    "net_freebsd",
    "net_openbsd",
    "net_lsof",
    "process",
    "process_types",
    "ps",
]