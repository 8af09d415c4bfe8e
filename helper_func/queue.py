# helper_func/queue.py

import asyncio
from typing import NamedTuple, Optional, Union
from pyrogram.types import Message


class RemoteFileRef(NamedTuple):
    file_id: str        # Telegram file id, Bot API compatible


class UrlRef(NamedTuple):
    address: str        # absolute http(s) URL


class TransferJob(NamedTuple):
    origin_msg: Message                     # the message that asked for the file
    status_msg: Message                     # our reply, edited as the job moves on
    source: Union[RemoteFileRef, UrlRef]
    requested_name: Optional[str] = None    # user supplied filename hint


class FileQueue:
    """
    Pending transfer jobs in arrival order.

    The list is only touched under `_lock`, and the lock is never held
    across network or disk I/O. Producers call `notify()` once per pushed
    job; the worker blocks in `wait()` and then drains the queue.
    `admission` serializes producers so the position a user is told is
    the slot the job lands in.
    """

    def __init__(self):
        self._jobs: list[TransferJob] = []
        self._lock = asyncio.Lock()
        self._wakeups: asyncio.Queue = asyncio.Queue()
        self.admission = asyncio.Lock()

    async def push(self, job: TransferJob) -> int:
        async with self._lock:
            self._jobs.append(job)
            return len(self._jobs)

    async def peek_front(self) -> Optional[TransferJob]:
        async with self._lock:
            return self._jobs[0] if self._jobs else None

    async def pop_front(self) -> Optional[TransferJob]:
        async with self._lock:
            return self._jobs.pop(0) if self._jobs else None

    async def length(self) -> int:
        async with self._lock:
            return len(self._jobs)

    def notify(self):
        self._wakeups.put_nowait(None)

    async def wait(self):
        await self._wakeups.get()
