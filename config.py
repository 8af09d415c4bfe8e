import os
import logging
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    pass


def _env_bool(value):
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def _with_slash(url):
    return url if url.endswith('/') else url + '/'


@dataclass(frozen=True)
class Config:
    """Runtime settings, read once at startup and handed to the bot client."""

    BOT_TOKEN: str
    APP_ID: int = 0
    API_HASH: str = ''
    SERVER_PORT: int = 8080
    DOMAIN: str = 'http://localhost:8080/'
    TELEGRAM_API_URL: str = 'https://api.telegram.org'
    PIPE_PATH: str = '/tmp/file2link.pipe'
    ENABLE_FILES_ROUTE: bool = False
    DOWNLOAD_DIR: str = 'files'
    PERMISSIONS_PATH: str = 'config/permissions.json'
    LOG_LEVEL: str = 'INFO'

    @property
    def FILE_DOMAIN(self):
        # prefix for shareable links, matches the /files/ route
        return self.DOMAIN + 'files/'

    @classmethod
    def from_env(cls, dotenv_path='.env'):
        if os.path.exists(dotenv_path):
            load_dotenv(dotenv_path)
            logger.info('Successfully loaded .env file')
        else:
            logger.warning('Failed to find .env file. Using system environment variables instead.')

        bot_token = os.getenv('BOT_TOKEN')
        if not bot_token:
            raise ConfigError("environment variable 'BOT_TOKEN' is not set")

        try:
            app_id = int(os.getenv('APP_ID', ''))
        except ValueError:
            raise ConfigError("environment variable 'APP_ID' must be an integer")

        api_hash = os.getenv('API_HASH')
        if not api_hash:
            raise ConfigError("environment variable 'API_HASH' is not set")

        try:
            port = int(os.getenv('SERVER_PORT', '8080'))
        except ValueError:
            logger.warning('SERVER_PORT is not a number. Defaulting to 8080.')
            port = 8080

        domain = os.getenv('APP_DOMAIN') or f'http://localhost:{port}'

        api_url = os.getenv('TELEGRAM_API_URL')
        if not api_url:
            logger.info('TELEGRAM_API_URL environment variable is not set')
            api_url = 'https://api.telegram.org'

        files_route = os.getenv('ENABLE_FILES_ROUTE')
        if files_route is None:
            logger.warning('ENABLE_FILES_ROUTE environment variable is not set. Defaulting to false.')
            files_route = 'false'

        return cls(
            BOT_TOKEN=bot_token,
            APP_ID=app_id,
            API_HASH=api_hash,
            SERVER_PORT=port,
            DOMAIN=_with_slash(domain),
            TELEGRAM_API_URL=api_url.rstrip('/'),
            PIPE_PATH=os.getenv('F2L_PIPE_PATH', '/tmp/file2link.pipe'),
            ENABLE_FILES_ROUTE=_env_bool(files_route),
            DOWNLOAD_DIR=os.getenv('DOWNLOAD_DIR', 'files'),
            PERMISSIONS_PATH=os.getenv('PERMISSIONS_PATH', 'config/permissions.json'),
            LOG_LEVEL=os.getenv('LOG_LEVEL', 'INFO').upper(),
        )
