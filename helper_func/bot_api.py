# helper_func/bot_api.py

import asyncio
import logging
import posixpath
from typing import NamedTuple

import requests

from helper_func.downloader import URL_TIMEOUT, ResponseStream
from helper_func.errors import TransferError

logger = logging.getLogger(__name__)


class RemoteFile(NamedTuple):
    path: str       # file_path as reported by getFile
    size: int


def download_path(file_path):
    """
    Path to request from the /file/ endpoint.

    A local Bot API server reports absolute paths on its own disk; only
    the "<folder>/<file>" tail of those is addressable over HTTP.
    """
    if not file_path.startswith('/'):
        return file_path
    folder, name = posixpath.split(file_path)
    return posixpath.join(posixpath.basename(folder), name)


class BotFileApi:
    """File metadata and downloads through the Telegram Bot API."""

    def __init__(self, api_url, bot_token, session=None):
        self.api_url = api_url.rstrip('/')
        self.bot_token = bot_token
        self.session = session or requests.Session()

    def _get(self, url, **kwargs):
        return self.session.get(url, timeout=URL_TIMEOUT, **kwargs)

    async def get_file(self, file_id) -> RemoteFile:
        resp = await asyncio.to_thread(
            self._get, f"{self.api_url}/bot{self.bot_token}/getFile", params={'file_id': file_id}
        )
        data = resp.json()
        if not data.get('ok'):
            raise TransferError(f"getFile failed: {data.get('description', resp.status_code)}")
        result = data['result']
        return RemoteFile(result['file_path'], result.get('file_size', 0))

    async def stream_file(self, file_path):
        url = f"{self.api_url}/file/bot{self.bot_token}/{download_path(file_path)}"
        resp = await asyncio.to_thread(self._get, url, stream=True)
        resp.raise_for_status()
        body = ResponseStream(resp)
        try:
            async for chunk in body:
                yield chunk
        finally:
            await body.aclose()
