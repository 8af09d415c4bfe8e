# helper_func/downloader.py

import asyncio
import logging
import os
import re
from urllib.parse import unquote

import requests

from helper_func.errors import TransferError
from helper_func.naming import file_name_from_path, file_name_from_url
from helper_func.progress_bar import TransferProgress, report_progress

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
# connect / read timeouts; there is no limit on the whole transfer
URL_TIMEOUT = (5, 300)

_cd_extended = re.compile(r"filename\*\s*=\s*(?:[\w-]+)?'[^']*'([^;]+)", re.IGNORECASE)
_cd_plain = re.compile(r'filename\s*=\s*"?([^";]+)"?', re.IGNORECASE)


def filename_from_disposition(header):
    if not header:
        return None
    m = _cd_extended.search(header)
    if m:
        return file_name_from_path(unquote(m.group(1).strip())) or None
    m = _cd_plain.search(header)
    if m:
        return file_name_from_path(m.group(1).strip()) or None
    return None


class ResponseStream:
    """
    Async iterator over the body of a streamed `requests` response.

    Reads run in a worker thread so the bot keeps answering updates. The
    response is closed when the body runs out, on a read error, or on
    `aclose()`, which also works before the first chunk was read.
    """

    def __init__(self, resp, chunk_size=CHUNK_SIZE):
        self.resp = resp
        self._chunks = resp.iter_content(chunk_size=chunk_size)

    def __aiter__(self):
        return self

    async def __anext__(self):
        while True:
            try:
                chunk = await asyncio.to_thread(next, self._chunks, None)
            except BaseException:
                self.resp.close()
                raise
            if chunk is None:
                self.resp.close()
                raise StopAsyncIteration
            if chunk:
                return chunk

    async def aclose(self):
        self.resp.close()


async def open_url(url, session=None):
    """
    Start a streamed GET for `url`.

    Returns `(name, chunks)` where `name` comes from Content-Disposition,
    else from the last URL path segment, and is None if neither has one.
    """
    get = session.get if session else requests.get
    try:
        resp = await asyncio.to_thread(
            get, url, stream=True, allow_redirects=True, timeout=URL_TIMEOUT
        )
        resp.raise_for_status()
    except requests.RequestException as e:
        raise TransferError(f"Failed to download file: {e}")

    name = (
        filename_from_disposition(resp.headers.get('content-disposition'))
        or file_name_from_url(url)
        or None
    )
    return name, ResponseStream(resp)


async def save_stream(dest, chunks, total=None):
    """
    Write `chunks` to a new file at `dest` and return the number of bytes.

    The file is created exclusively; an existing file is never replaced.
    A failed transfer leaves whatever was written so far on disk.
    """
    folder = os.path.dirname(dest)
    try:
        if folder:
            os.makedirs(folder, exist_ok=True)
        f = open(dest, 'xb')
    except OSError as e:
        await chunks.aclose()
        raise TransferError(f"Failed to create file: {e}")

    progress = TransferProgress(os.path.basename(dest), total)
    reporter = asyncio.create_task(report_progress(progress))
    try:
        with f:
            async for chunk in chunks:
                f.write(chunk)
                progress.add(len(chunk))
    except (requests.RequestException, OSError) as e:
        logger.warning(f"Error: {e}")
        raise TransferError(f"Failed to download the file: {e}")
    finally:
        reporter.cancel()

    return progress.current
