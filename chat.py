class Chat:

    START_TEXT = """👋 <b>Hello there!</b>

📌 <b>Send me a file and I will give you a direct download link.</b>

➡️ Documents, photos, videos and animations are supported.
ℹ️ Type <code>/help</code> for more details.
    """

    HELP_TEXT = """🆘 <b>Help</b>

✅ <b>How to Use:</b>
1️⃣ Send or forward a file to this chat.
2️⃣ Wait for your turn in the queue, files are handled one at a time.
3️⃣ Open the link from the status message.

🌐 <b>Download by URL:</b>
<code>/url https://example.com/file.zip</code>
or reply to a message containing a link with <code>/url</code>.

📌 <b>Custom File Name:</b>
Add it after the URL separated by <code>|</code>.
Example: <i>/url https://example.com/a.zip | my_archive.zip</i>
    """

    QUEUE_POSITION = "Queue position: {}"

    PROCESSING = "Processing file..."

    DOWNLOADED = 'Downloaded. Size: {} bytes\n\n<b><a href="{}">{}</a></b>'

    REMAINING = "File processed. Remaining files in queue: {}"
