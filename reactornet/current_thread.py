"""Cached identifier of the calling thread."""

import threading

_local = threading.local()


def tid() -> int:
    """Return the operating-system id of the calling thread."""
    cached = getattr(_local, "tid", 0)
    if cached == 0:
        cached = threading.get_native_id()
        _local.tid = cached
    return cached