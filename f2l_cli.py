import argparse
import errno
import logging
import os
import stat
import sys

from helper_func.control_pipe import SHUTDOWN, UPDATE_PERMISSIONS

logger = logging.getLogger(__name__)

DEFAULT_PIPE_PATH = '/tmp/file2link.pipe'

COMMANDS = {
    'update-permissions': UPDATE_PERMISSIONS,
    'shutdown': SHUTDOWN,
}


def send_command(path, command):
    # never create the path: only the bot makes the FIFO
    if not stat.S_ISFIFO(os.stat(path).st_mode):
        raise OSError(errno.EINVAL, 'Not a FIFO', path)

    # opening a FIFO for writing waits until the bot is reading it
    with os.fdopen(os.open(path, os.O_WRONLY), 'w') as pipe:
        pipe.write(f"{command}\n")
        pipe.flush()


def build_parser():
    parser = argparse.ArgumentParser(prog='f2l-cli', description='CLI tool for file2link')
    parser.add_argument(
        '--path',
        default=os.getenv('F2L_PIPE_PATH', DEFAULT_PIPE_PATH),
        help='Path to the FIFO (default: %(default)s, env: F2L_PIPE_PATH)'
    )
    sub = parser.add_subparsers(dest='command', required=True)
    sub.add_parser('update-permissions', help='Updates the permissions from the config file')
    sub.add_parser('shutdown', help='Shutting down the system')
    return parser


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')
    args = build_parser().parse_args(argv)
    command = COMMANDS[args.command]

    try:
        send_command(args.path, command)
    except OSError as e:
        logger.error(f"Failed to send command '{command}' to {args.path}: {e}")
        return 1

    logger.info(f"Command '{command}' sent to {args.path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
