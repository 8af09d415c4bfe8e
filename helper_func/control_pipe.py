# helper_func/control_pipe.py

import asyncio
import logging
import os
import stat

from helper_func.permissions import PermissionsError, load_permissions

logger = logging.getLogger(__name__)

UPDATE_PERMISSIONS = 'update_permissions'
SHUTDOWN = 'shutdown'


class ControlPipeError(Exception):
    pass


def ensure_fifo(path):
    if not os.path.exists(path):
        try:
            os.mkfifo(path, 0o644)
        except OSError as e:
            raise ControlPipeError(f"Failed to create FIFO at {path}: {e}")
        return
    if not stat.S_ISFIFO(os.stat(path).st_mode):
        raise ControlPipeError(f"Path is not a FIFO: {path}")


def handle_command(client, line):
    """Apply one control command. Returns False once the bot should stop."""
    command = line.strip()
    if command == UPDATE_PERMISSIONS:
        try:
            client.permissions = load_permissions(client.config.PERMISSIONS_PATH)
        except (PermissionsError, OSError) as e:
            logger.warning(f"Failed to load new permissions config, using old one. Error: {e}")
        else:
            logger.info('Permissions updated successfully')
    elif command == SHUTDOWN:
        logger.info('Shutdown command received')
        return False
    elif command:
        logger.warning(f"Unknown control command: {command!r}")
    return True


async def listen(client):
    """Serve commands from the control FIFO until `shutdown` arrives."""
    path = client.config.PIPE_PATH
    ensure_fifo(path)
    logger.info(f"Listening for commands on {path}")

    # read-write keeps a writer attached, so the pipe never reports EOF
    # between two CLI invocations
    fd = os.open(path, os.O_RDWR | os.O_NONBLOCK)
    pipe = os.fdopen(fd, 'rb', buffering=0)

    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    transport, _ = await loop.connect_read_pipe(
        lambda: asyncio.StreamReaderProtocol(reader), pipe
    )
    try:
        while True:
            line = await reader.readline()
            if not line:
                return
            if not handle_command(client, line.decode(errors='ignore')):
                return
    finally:
        transport.close()
