import logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

import os

import pyrogram

from config import Config
from helper_func import control_pipe
from helper_func.bot_api import BotFileApi
from helper_func.file_server import start_server
from helper_func.permissions import load_permissions
from helper_func.queue import FileQueue
from plugins.transfer import queue_worker


class QueueBot(pyrogram.Client):
    """Bot client carrying the transfer queue and everything the handlers need."""

    def __init__(self, config: Config, permissions):
        super().__init__(
            'file2link',
            bot_token=config.BOT_TOKEN,
            api_id=config.APP_ID,
            api_hash=config.API_HASH,
            plugins=dict(root='plugins')
        )
        self.config = config
        self.permissions = permissions
        self.file_queue = FileQueue()
        self.bot_files = BotFileApi(config.TELEGRAM_API_URL, config.BOT_TOKEN)
        self.queue_task = None

    async def get_file_info(self, file_id):
        return await self.bot_files.get_file(file_id)

    def stream_file(self, file_path):
        return self.bot_files.stream_file(file_path)

    async def start(self):
        # first do the normal Pyrogram startup
        await super().start()
        # then launch the background queue worker
        self.queue_task = self.loop.create_task(queue_worker(self))

    async def stop(self, *args, **kwargs):
        if self.queue_task is not None:
            self.queue_task.cancel()
        return await super().stop(*args, **kwargs)


async def run(app: QueueBot):
    config = app.config
    await app.start()
    runner = await start_server(config)
    try:
        await control_pipe.listen(app)
    except (control_pipe.ControlPipeError, OSError) as e:
        logger.error(f"Control pipe unavailable, running until interrupted: {e}")
        await pyrogram.idle()
    finally:
        await runner.cleanup()
        await app.stop()


def main():
    config = Config.from_env()

    logging.getLogger().setLevel(config.LOG_LEVEL)
    # quiet down pyrogram internals
    logging.getLogger('pyrogram').setLevel(logging.WARNING)

    os.makedirs(config.DOWNLOAD_DIR, exist_ok=True)

    app = QueueBot(config, load_permissions(config.PERMISSIONS_PATH))
    app.run(run(app))


if __name__ == '__main__':
    main()
