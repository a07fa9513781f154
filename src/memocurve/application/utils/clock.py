"""Epoch-millisecond helpers. All card timestamps are integer milliseconds."""

import time
from datetime import datetime


def now_ms() -> int:
    return int(time.time() * 1000)


def format_ms(ts: int, fmt: str) -> str:
    """Format an epoch-ms timestamp in local time."""
    return datetime.fromtimestamp(ts / 1000).strftime(fmt)


def humanize_delta(delta_ms: int) -> str:
    """Rough 'in 3h' / '2d ago' rendering of a signed duration."""
    seconds = abs(delta_ms) // 1000
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        if seconds >= size:
            text = f"{seconds // size}{unit}"
            break
    else:
        text = f"{seconds}s"
    return f"in {text}" if delta_ms >= 0 else f"{text} ago"
