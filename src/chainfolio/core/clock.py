"""Time and identifier helpers."""

import os
import threading
import time
import uuid

_id_lock = threading.Lock()
_last_ms = 0
_sequence = 0


def now_ms() -> int:
    """Return the current time as epoch milliseconds."""
    return int(time.time() * 1000)


def new_request_id() -> str:
    """
    Return a time-ordered UUID (version 7 layout).

    The first 48 bits are the epoch millisecond timestamp, followed by a
    12-bit sequence that increases for ids minted within the same millisecond,
    so string order matches creation order inside one process.
    """
    global _last_ms, _sequence

    with _id_lock:
        ms = now_ms()
        if ms <= _last_ms:
            ms = _last_ms
            _sequence += 1
            if _sequence > 0xFFF:
                ms += 1
                _sequence = 0
        else:
            _sequence = 0
        _last_ms = ms
        seq = _sequence

    rand_b = int.from_bytes(os.urandom(8), "big") & ((1 << 62) - 1)
    value = (ms & ((1 << 48) - 1)) << 80
    value |= 0x7 << 76
    value |= seq << 64
    value |= 0b10 << 62
    value |= rand_b
    return str(uuid.UUID(int=value))
