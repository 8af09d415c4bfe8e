# plugins/file_link.py

import logging
import re

from pyrogram import Client, filters

from chat import Chat
from helper_func.queue import RemoteFileRef, TransferJob, UrlRef

logger = logging.getLogger(__name__)

link_pattern = re.compile(r'https?://\S+')


async def _check_user(filt, client, message):
    if message.from_user is None:
        logger.info("Message does not have a sender")
        return False

    chat_id = str(message.chat.id)
    user_id = str(message.from_user.id)
    if not client.permissions.user_has_access(chat_id, user_id):
        logger.info(f"User {user_id} does not have access to chat {chat_id}")
        return False
    return True

check_user = filters.create(_check_user)


def extract_first_link(text):
    m = link_pattern.search(text or '')
    return m.group(0) if m else None


def is_url_command(text):
    """`/url`, in any case and optionally addressed as `/url@bot`."""
    words = (text or '').split(maxsplit=1)
    return bool(words) and words[0].split('@', 1)[0].lower() == '/url'


def url_from_command(message):
    """
    Link and optional custom name for a `/url` message.

    `/url <link> [| name]` uses the argument; a bare `/url` sent as a
    reply takes the first link of the replied-to message.
    """
    parts = (message.text or '').split(maxsplit=1)
    if len(parts) > 1:
        arg, name = parts[1], None
        if '|' in arg:
            arg, name = [x.strip() for x in arg.split('|', 1)]
        return extract_first_link(arg), name or None

    reply = message.reply_to_message
    if reply is not None:
        return extract_first_link(reply.text or reply.caption), None
    return None, None


def classify_message(message):
    """Return `(source, requested_name)` for a transfer request, else None."""
    if message.document:
        logger.info(f"Processing document file with ID: {message.document.file_id}")
        return RemoteFileRef(message.document.file_id), message.document.file_name
    if message.photo:
        logger.info(f"Processing photo file with ID: {message.photo.file_id}")
        return RemoteFileRef(message.photo.file_id), None
    if message.video:
        logger.info(f"Processing video file with ID: {message.video.file_id}")
        return RemoteFileRef(message.video.file_id), message.video.file_name
    if message.animation:
        logger.info(f"Processing animation file with ID: {message.animation.file_id}")
        return RemoteFileRef(message.animation.file_id), message.animation.file_name

    if is_url_command(message.text):
        url, name = url_from_command(message)
        if url:
            return UrlRef(url), name
    return None


async def enqueue_transfer(client, message, source, requested_name=None):
    """
    Reply with the queue position, queue the job, wake the worker.

    A failed reply is raised to the caller: without a status message
    the job could never be reported on.
    """
    file_queue = client.file_queue
    async with file_queue.admission:
        position = await file_queue.length() + 1
        status_msg = await client.send_message(
            message.chat.id,
            Chat.QUEUE_POSITION.format(position),
            reply_to_message_id=message.id
        )
        await file_queue.push(TransferJob(message, status_msg, source, requested_name))

    logger.info(f"Added item to queue. Current queue position: {position}")
    file_queue.notify()
    return position


@Client.on_message(
    (filters.document | filters.photo | filters.video | filters.animation | filters.command('url'))
    & check_user
)
async def save_file(client, message):
    request = classify_message(message)
    if request is None:
        logger.debug("Received a non-file message")
        return

    source, requested_name = request
    await enqueue_transfer(client, message, source, requested_name)
