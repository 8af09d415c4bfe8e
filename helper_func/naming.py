# helper_func/naming.py

import os
import secrets
import string
from urllib.parse import unquote, urlsplit

from helper_func.errors import TransferError

TOKEN_ALPHABET = string.ascii_letters + string.digits
TOKEN_LENGTH = 5


def random_token(length=TOKEN_LENGTH):
    return ''.join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def file_name_from_path(path):
    """Last segment of a file path or URL, '' when there is none."""
    return os.path.basename(path.replace('\\', '/').rstrip('/'))


def file_name_from_url(url):
    return unquote(file_name_from_path(urlsplit(url).path))


def final_name(job, source_name):
    """
    Name a downloaded file is stored and served under.

    A random token keeps unrelated uploads with the same name apart. The
    user supplied name wins over the one derived from `source_name`.
    """
    if job.requested_name:
        name = file_name_from_path(job.requested_name.strip()).replace(' ', '_')
    else:
        name = file_name_from_path(source_name or '')

    if not name:
        raise TransferError('Could not determine file name')

    return f"{random_token()}_{name}"
