import re
import unittest

from fakes import make_message
from helper_func.errors import TransferError
from helper_func.naming import (
    file_name_from_path,
    file_name_from_url,
    final_name,
    random_token,
)
from helper_func.queue import RemoteFileRef, TransferJob


def job(requested_name=None):
    return TransferJob(make_message(1), make_message(2), RemoteFileRef("F1"), requested_name)


class TestNaming(unittest.TestCase):
    def test_token_shape(self) -> None:
        self.assertRegex(random_token(), r"^[A-Za-z0-9]{5}$")
        self.assertEqual(len(random_token(8)), 8)

    def test_requested_name_is_sanitized(self) -> None:
        name = final_name(job("my annual report.pdf"), "documents/file_3.pdf")
        self.assertRegex(name, r"^[A-Za-z0-9]{5}_my_annual_report\.pdf$")

    def test_falls_back_to_source_path(self) -> None:
        name = final_name(job(), "documents/file_3.pdf")
        self.assertRegex(name, r"^[A-Za-z0-9]{5}_file_3\.pdf$")

    def test_directories_are_stripped(self) -> None:
        name = final_name(job("../../etc/passwd"), "x")
        self.assertTrue(name.endswith("_passwd"))
        self.assertNotIn("/", name)

    def test_no_name_fails(self) -> None:
        with self.assertRaises(TransferError):
            final_name(job(), "")
        with self.assertRaises(TransferError):
            final_name(job("   "), None)

    def test_same_requested_name_does_not_collide(self) -> None:
        names = {final_name(job("report.pdf"), "") for _ in range(500)}
        self.assertEqual(len(names), 500)
        for name in names:
            self.assertTrue(re.match(r"^[A-Za-z0-9]{5}_report\.pdf$", name))

    def test_path_helpers(self) -> None:
        self.assertEqual(file_name_from_path("/var/lib/bot/photos/file_1.jpg"), "file_1.jpg")
        self.assertEqual(file_name_from_path(""), "")
        self.assertEqual(file_name_from_url("https://host/a/b%20c.zip?x=1"), "b c.zip")
        self.assertEqual(file_name_from_url("https://host"), "")


if __name__ == "__main__":
    unittest.main()
