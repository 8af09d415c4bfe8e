# plugins/commands.py

from pyrogram import Client, filters
from pyrogram.enums import ParseMode

from chat import Chat
from plugins.file_link import check_user


@Client.on_message(filters.command('start') & check_user)
async def start(client, message):
    await message.reply_text(Chat.START_TEXT, parse_mode=ParseMode.HTML)


@Client.on_message(filters.command('help') & check_user)
async def help_user(client, message):
    await message.reply_text(Chat.HELP_TEXT, parse_mode=ParseMode.HTML)
