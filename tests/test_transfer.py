import asyncio
import os
import re
import tempfile
import unittest
from unittest.mock import AsyncMock, patch

from fakes import FakeBot, make_message, media
from helper_func.errors import TransferError
from helper_func.queue import TransferJob, UrlRef
from plugins.file_link import enqueue_transfer, classify_message
from plugins.transfer import (
    advance_queue,
    announce_processing,
    fetch_file_info,
    process_job,
    queue_worker,
)

REPORT = [b"%PDF-1.4 ", b"hello ", b"world"]


async def chunks_of(*parts):
    for part in parts:
        yield part


class TransferTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.files_dir = os.path.join(self.tmp.name, "files")
        self.bot = FakeBot(self.files_dir, files={
            "F1": ("documents/file_1.pdf", REPORT),
            "F2": ("photos/file_2.jpg", [b"\xff\xd8", b"\xff\xd9"]),
        })
        sleep = patch("helper_func.retry.sleep", new_callable=AsyncMock)
        self.sleep = sleep.start()
        self.addCleanup(sleep.stop)

    async def enqueue(self, message):
        source, name = classify_message(message)
        await enqueue_transfer(self.bot, message, source, name)
        return await self.last_job()

    async def last_job(self):
        return self.bot.file_queue._jobs[-1]


class TestProcessJob(TransferTestCase):
    async def test_document_end_to_end(self) -> None:
        job = await self.enqueue(make_message(document=media("F1", "report.pdf")))
        self.assertEqual(self.bot.sent[0][1], "Queue position: 1")

        await process_job(self.bot, job)

        edits = self.bot.edits_for(job.status_msg.id)
        self.assertEqual(edits[0], "Processing file...")
        size = sum(len(c) for c in REPORT)
        self.assertTrue(edits[1].startswith(f"Downloaded. Size: {size} bytes"))
        m = re.search(r'href="http://files\.example\.com/files/([A-Za-z0-9]{5}_report\.pdf)"', edits[1])
        self.assertIsNotNone(m)

        with open(os.path.join(self.files_dir, m.group(1)), "rb") as f:
            self.assertEqual(f.read(), b"".join(REPORT))

    async def test_photo_named_after_file_path(self) -> None:
        job = await self.enqueue(make_message(photo=media("F2")))
        await process_job(self.bot, job)
        saved = os.listdir(self.files_dir)
        self.assertEqual(len(saved), 1)
        self.assertRegex(saved[0], r"^[A-Za-z0-9]{5}_file_2\.jpg$")

    async def test_url_download(self) -> None:
        job = await self.enqueue(make_message(text="/url https://example.com/dl?id=3"))
        opener = AsyncMock(return_value=("movie.mkv", chunks_of(b"abc", b"def")))
        with patch("plugins.transfer.open_url", opener):
            await process_job(self.bot, job)

        opener.assert_awaited_once_with("https://example.com/dl?id=3")
        saved = os.listdir(self.files_dir)
        self.assertRegex(saved[0], r"^[A-Za-z0-9]{5}_movie\.mkv$")
        self.assertIn("Downloaded. Size: 6 bytes", self.bot.edits_for(job.status_msg.id)[-1])

    async def test_url_without_name_fails(self) -> None:
        job = await self.enqueue(make_message(text="/url https://example.com/"))
        opener = AsyncMock(return_value=(None, chunks_of(b"abc")))
        with patch("plugins.transfer.open_url", opener):
            with self.assertRaises(TransferError):
                await process_job(self.bot, job)
        self.assertFalse(os.path.exists(self.files_dir))

    async def test_url_custom_name_used_when_server_gives_none(self) -> None:
        job = await self.enqueue(make_message(text="/url https://example.com/ | my file.bin"))
        opener = AsyncMock(return_value=(None, chunks_of(b"abc")))
        with patch("plugins.transfer.open_url", opener):
            await process_job(self.bot, job)
        self.assertRegex(os.listdir(self.files_dir)[0], r"^[A-Za-z0-9]{5}_my_file\.bin$")

    async def test_link_escaped_for_html(self) -> None:
        job = await self.enqueue(make_message(document=media("F1", "a<b> & #1.pdf")))
        await process_job(self.bot, job)

        saved = os.listdir(self.files_dir)
        self.assertRegex(saved[0], r"^[A-Za-z0-9]{5}_a<b>_&_#1\.pdf$")
        token = saved[0][:5]

        text = self.bot.edits_for(job.status_msg.id)[-1]
        self.assertIn(f'href="http://files.example.com/files/{token}_a%3Cb%3E_%26_%231.pdf"', text)
        self.assertIn(f">http://files.example.com/files/{token}_a&lt;b&gt;_&amp;_#1.pdf</a>", text)
        self.assertNotIn("a<b>", text)

    async def test_unusable_name_closes_url_stream(self) -> None:
        message = make_message(text="/url https://example.com/a.bin")
        await enqueue_transfer(self.bot, message, UrlRef("https://example.com/a.bin"), "   ")
        job = await self.last_job()

        chunks = AsyncMock()
        with patch("plugins.transfer.open_url", AsyncMock(return_value=("a.bin", chunks))):
            with self.assertRaises(TransferError):
                await process_job(self.bot, job)
        chunks.aclose.assert_awaited_once()
        self.assertFalse(os.path.exists(self.files_dir))

    async def test_stream_error_leaves_partial_file(self) -> None:
        self.bot.stream_error = ConnectionError("connection reset")
        job = await self.enqueue(make_message(document=media("F1", "report.pdf")))
        with self.assertRaises(TransferError):
            await process_job(self.bot, job)

        saved = os.listdir(self.files_dir)
        with open(os.path.join(self.files_dir, saved[0]), "rb") as f:
            self.assertEqual(f.read(), REPORT[0])
        self.assertEqual(self.bot.edits_for(job.status_msg.id), ["Processing file..."])

    async def test_link_edit_failure_still_completes(self) -> None:
        job = await self.enqueue(make_message(document=media("F1", "report.pdf")))
        original = self.bot.edit_message_text
        calls = []

        async def fail_on_link(chat_id, message_id, text, parse_mode=None):
            calls.append(text)
            if text.startswith("Downloaded"):
                raise ConnectionError("edit failed")
            await original(chat_id, message_id, text, parse_mode)

        self.bot.edit_message_text = fail_on_link
        await process_job(self.bot, job)
        self.assertEqual(len(os.listdir(self.files_dir)), 1)
        self.assertTrue(calls[-1].startswith("Downloaded"))


class TestRetries(TransferTestCase):
    async def test_status_edit_succeeds_on_third_attempt(self) -> None:
        job = await self.enqueue(make_message(document=media("F1", "report.pdf")))
        self.bot.edit_failures = 2

        await announce_processing(self.bot, job)

        self.assertEqual(self.bot.edits_for(job.status_msg.id), ["Processing file..."])
        self.assertEqual([c.args[0] for c in self.sleep.await_args_list], [1, 2])

    async def test_status_edit_exhaustion_is_not_fatal(self) -> None:
        job = await self.enqueue(make_message(document=media("F1", "report.pdf")))
        self.bot.edit_failures = 3

        await process_job(self.bot, job)

        self.assertEqual([c.args[0] for c in self.sleep.await_args_list], [1, 2])
        self.assertEqual(len(os.listdir(self.files_dir)), 1)
        self.assertTrue(self.bot.edits_for(job.status_msg.id)[-1].startswith("Downloaded"))

    async def test_file_info_retried_with_fixed_delay(self) -> None:
        self.bot.file_info_failures = 2
        info = await fetch_file_info(self.bot, "F1")
        self.assertEqual(info.path, "documents/file_1.pdf")
        self.assertEqual([c.args[0] for c in self.sleep.await_args_list], [5, 5])

    async def test_file_info_exhaustion_fails_job(self) -> None:
        self.bot.file_info_failures = 3
        with self.assertRaises(TransferError):
            await fetch_file_info(self.bot, "F1")
        self.assertEqual(self.sleep.await_count, 2)


class TestAdvanceQueue(TransferTestCase):
    async def test_next_head_hears_remaining_count(self) -> None:
        await self.enqueue(make_message(1, document=media("F1", "a.pdf")))
        second = await self.enqueue(make_message(2, document=media("F1", "b.pdf")))
        await self.enqueue(make_message(3, document=media("F1", "c.pdf")))

        await advance_queue(self.bot)

        self.assertEqual(await self.bot.file_queue.length(), 2)
        self.assertIs(await self.bot.file_queue.peek_front(), second)
        self.assertEqual(
            self.bot.edits_for(second.status_msg.id),
            ["File processed. Remaining files in queue: 2"],
        )

    async def test_edit_failure_on_new_head_is_contained(self) -> None:
        await self.enqueue(make_message(1, document=media("F1", "a.pdf")))
        await self.enqueue(make_message(2, document=media("F1", "b.pdf")))
        self.bot.edit_failures = 1

        await advance_queue(self.bot)
        self.assertEqual(await self.bot.file_queue.length(), 1)


class TestQueueWorker(TransferTestCase):
    async def run_until_drained(self):
        worker = asyncio.create_task(queue_worker(self.bot))
        try:
            for _ in range(200):
                if not await self.bot.file_queue.length():
                    break
                await asyncio.sleep(0.01)
        finally:
            worker.cancel()
            with self.assertRaises(asyncio.CancelledError):
                await worker

    async def test_drains_jobs_in_order_one_at_a_time(self) -> None:
        names = ["one.pdf", "two.pdf", "three.pdf"]
        jobs = [await self.enqueue(make_message(i, document=media("F1", n))) for i, n in enumerate(names)]

        await self.run_until_drained()

        self.assertEqual(await self.bot.file_queue.length(), 0)
        saved = sorted(name.split("_", 1)[1] for name in os.listdir(self.files_dir))
        self.assertEqual(saved, sorted(names))

        order = [mid for mid, text in self.bot.edits if text == "Processing file..."]
        self.assertEqual(order, [j.status_msg.id for j in jobs])
        self.assertEqual(
            self.bot.edits_for(jobs[1].status_msg.id)[0],
            "File processed. Remaining files in queue: 2",
        )

    async def test_failed_job_still_advances(self) -> None:
        self.bot.stream_error = ConnectionError("connection reset")
        first = await self.enqueue(make_message(1, document=media("F1", "a.pdf")))
        second = await self.enqueue(make_message(2, text="/url https://example.com/b.bin"))

        opener = AsyncMock(return_value=("b.bin", chunks_of(b"12345")))
        with patch("plugins.transfer.open_url", opener):
            await self.run_until_drained()

        self.assertEqual(await self.bot.file_queue.length(), 0)
        self.assertEqual(self.bot.edits_for(first.status_msg.id), ["Processing file..."])
        second_edits = self.bot.edits_for(second.status_msg.id)
        self.assertEqual(second_edits[0], "File processed. Remaining files in queue: 1")
        self.assertIn("Downloaded. Size: 5 bytes", second_edits[-1])

    async def test_spurious_wake_is_harmless(self) -> None:
        worker = asyncio.create_task(queue_worker(self.bot))
        self.bot.file_queue.notify()
        await asyncio.sleep(0.05)

        self.assertFalse(worker.done())
        self.assertEqual(self.bot.edits, [])
        worker.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await worker

    async def test_job_with_unknown_source_is_dropped(self) -> None:
        bogus = TransferJob(make_message(1), make_message(2), ("neither",))
        await self.bot.file_queue.push(bogus)
        self.bot.file_queue.notify()
        await self.run_until_drained()
        self.assertEqual(await self.bot.file_queue.length(), 0)


if __name__ == "__main__":
    unittest.main()
