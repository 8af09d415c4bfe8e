# helper_func/progress_bar.py

import asyncio
import logging
import time

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL = 2


class TransferProgress:
    """Byte counter shared between a download and its progress reporter."""

    def __init__(self, name, total=None):
        self.name = name
        self.total = total
        self.current = 0
        self.start = time.time()

    def add(self, size):
        self.current += size

    def describe(self):
        if self.total:
            return f"Downloaded {self.current} of {self.total} bytes"
        return f"Downloaded {self.current} bytes"


async def report_progress(progress, interval=PROGRESS_INTERVAL):
    """Log `progress` every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        elapsed = time.time() - progress.start
        speed   = progress.current / elapsed if elapsed else 0
        logger.info(f"{progress.name}: {progress.describe()} ({humanbytes(speed)}/s)")


def humanbytes(size):
    """Convert bytes -> human-readable string."""
    if not size:
        return "0 B"
    power = 2**10
    n = 0
    units = ['B', 'KiB', 'MiB', 'GiB', 'TiB']
    while size >= power and n < len(units)-1:
        size /= power
        n += 1
    return f"{round(size, 2)} {units[n]}"


def TimeFormatter(milliseconds: int) -> str:
    """Convert ms -> 'Xd, Xh, Xm, Xs, Xms'."""
    seconds, ms = divmod(int(milliseconds), 1000)
    minutes, sec = divmod(seconds, 60)
    hours, min_ = divmod(minutes, 60)
    days, hr   = divmod(hours, 24)

    parts = []
    if days:   parts.append(f"{days}d")
    if hr:     parts.append(f"{hr}h")
    if min_:   parts.append(f"{min_}m")
    if sec:    parts.append(f"{sec}s")
    if ms:     parts.append(f"{ms}ms")

    return ", ".join(parts) if parts else "0ms"
