# plugins/transfer.py

import html
import logging
import os
import time
from urllib.parse import quote

from pyrogram.enums import ParseMode

from chat import Chat
from helper_func.downloader import open_url, save_stream
from helper_func.errors import TransferError
from helper_func.naming import final_name
from helper_func.progress_bar import TimeFormatter, humanbytes
from helper_func.queue import RemoteFileRef, UrlRef
from helper_func.retry import backoff_delay, fixed_delay, retry

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
FILE_INFO_DELAY = 5


async def edit_status(client, job, text, parse_mode=None):
    await client.edit_message_text(
        chat_id=job.status_msg.chat.id,
        message_id=job.status_msg.id,
        text=text,
        parse_mode=parse_mode
    )


async def announce_processing(client, job):
    """Best effort: the job goes ahead even if the status can't be updated."""
    try:
        await retry(
            lambda: edit_status(client, job, Chat.PROCESSING),
            attempts=MAX_ATTEMPTS, delay=backoff_delay, what='edit message'
        )
    except Exception as e:
        logger.warning(f"Failed to edit message text after {MAX_ATTEMPTS} attempts: {e!r}")


async def fetch_file_info(client, file_id):
    try:
        return await retry(
            lambda: client.get_file_info(file_id),
            attempts=MAX_ATTEMPTS, delay=fixed_delay(FILE_INFO_DELAY), what='get file info'
        )
    except Exception as e:
        logger.error(f"Failed to get file info after {MAX_ATTEMPTS} attempts: {e!r}")
        raise TransferError("Failed to get file info")


async def send_file_link(client, job, file_name, size):
    domain = client.config.FILE_DOMAIN
    href = html.escape(domain + quote(file_name))
    text = html.escape(domain + file_name, quote=False)
    try:
        await edit_status(client, job, Chat.DOWNLOADED.format(size, href, text), ParseMode.HTML)
    except Exception as e:
        # the file is saved either way, only the notice is lost
        logger.error(f"Failed to edit message: {e!r}")


async def download_from_telegram(client, job, file_id):
    logger.info(f"Starting download for file ID: {file_id}")

    info = await fetch_file_info(client, file_id)
    logger.info(f"File path obtained: {info.path}")

    file_name = final_name(job, info.path)
    dest = os.path.join(client.config.DOWNLOAD_DIR, file_name)
    size = await save_stream(dest, client.stream_file(info.path), info.size)
    return file_name, size


async def download_from_url(client, job, url):
    logger.info(f"Starting download from URL: {url}")

    source_name, chunks = await open_url(url)
    try:
        file_name = final_name(job, source_name)
    except TransferError:
        await chunks.aclose()
        raise

    dest = os.path.join(client.config.DOWNLOAD_DIR, file_name)
    size = await save_stream(dest, chunks)
    return file_name, size


async def process_job(client, job):
    logger.debug(f"Processing file: {job}")
    start = time.time()

    await announce_processing(client, job)

    if isinstance(job.source, RemoteFileRef):
        file_name, size = await download_from_telegram(client, job, job.source.file_id)
    elif isinstance(job.source, UrlRef):
        file_name, size = await download_from_url(client, job, job.source.address)
    else:
        raise TransferError(f"Unknown job source: {job.source!r}")

    logger.info(
        f"Saved {file_name} ({humanbytes(size)}) in {TimeFormatter((time.time() - start) * 1000)}"
    )
    await send_file_link(client, job, file_name, size)


async def advance_queue(client):
    """Drop the finished head and tell the next job how many are left."""
    file_queue = client.file_queue
    await file_queue.pop_front()
    remaining = await file_queue.length()
    head = await file_queue.peek_front()

    if head is not None:
        try:
            await edit_status(client, head, Chat.REMAINING.format(remaining))
        except Exception as e:
            logger.error(f"Failed to edit message: {e!r}")

    logger.info(f"Removed item from queue. Remaining items in queue: {remaining}")


# ------------------------------------------------------------------------------
# worker: processes exactly one job at a time
# ------------------------------------------------------------------------------
async def queue_worker(client):
    file_queue = client.file_queue
    while True:
        await file_queue.wait()

        while True:
            job = await file_queue.peek_front()
            if job is None:
                break

            try:
                await process_job(client, job)
            except TransferError as e:
                logger.error(f"Failed to process file: {e}")
            except Exception:
                logger.exception(f"Unexpected error while processing {job.source}")

            await advance_queue(client)
