# helper_func/file_server.py

import logging
import mimetypes
import os

from aiohttp import web

logger = logging.getLogger(__name__)

DOWNLOAD_DIR = web.AppKey('download_dir', str)


async def root(request):
    return web.Response(text="Server working")


async def serve_file(request):
    name = request.match_info['name']
    if name != os.path.basename(name) or name in ('', '.', '..'):
        raise web.HTTPNotFound()

    path = os.path.join(request.app[DOWNLOAD_DIR], name)
    if not os.path.isfile(path):
        raise web.HTTPNotFound()

    content_type = mimetypes.guess_type(name)[0] or 'application/octet-stream'
    return web.FileResponse(path, headers={
        'Content-Type': content_type,
        'Content-Disposition': f'attachment; filename="{name}"',
    })


def create_app(config):
    app = web.Application()
    app[DOWNLOAD_DIR] = config.DOWNLOAD_DIR
    app.router.add_get('/', root)
    if config.ENABLE_FILES_ROUTE:
        app.router.add_get('/files/{name}', serve_file)
    return app


async def start_server(config):
    runner = web.AppRunner(create_app(config))
    await runner.setup()
    site = web.TCPSite(runner, '0.0.0.0', config.SERVER_PORT)
    await site.start()
    logger.info(f"File server listening on port {config.SERVER_PORT}")
    return runner
