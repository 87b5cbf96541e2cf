"""Tests for beershop.services.files: traversal rejection, sniffing and storage."""

import os
import tempfile
import unittest
from pathlib import Path

from beershop.core.errors import (
    ContentTypeMismatch,
    NotFound,
    PathTraversalRejected,
    UnsupportedFileType,
)
from beershop.services.files import PathResolver, sniff_content_type

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 32


class ResolverTestCase(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name) / "uploads"
        self.resolver = PathResolver(self.root)
        self.resolver.ensure_root()


class TestResolve(ResolverTestCase):
    def test_plain_name_resolves_under_root(self) -> None:
        path = self.resolver.resolve("lager.png")
        self.assertEqual(path, self.root.resolve() / "lager.png")

    def test_directory_components_rejected(self) -> None:
        for name in (
            "../../etc/passwd",
            "../secret.png",
            "sub/lager.png",
            "..\\..\\windows\\win.ini",
            "sub\\lager.png",
            "/etc/passwd.png",
            "C:\\boot.png",
            "..",
            ".",
        ):
            with self.subTest(name=name):
                with self.assertRaises(PathTraversalRejected):
                    self.resolver.resolve(name)

    def test_traversal_rejected_before_extension_check(self) -> None:
        with self.assertRaises(PathTraversalRejected):
            self.resolver.resolve("../../etc/passwd")

    def test_extension_allow_list(self) -> None:
        for name in ("notes.txt", "script.png.php", "noext", "lager.PNG.exe"):
            with self.subTest(name=name):
                with self.assertRaises(UnsupportedFileType):
                    self.resolver.resolve(name)
        self.resolver.resolve("LAGER.JPEG")

    def test_nul_rejected(self) -> None:
        with self.assertRaises(UnsupportedFileType):
            self.resolver.resolve("lager.png\x00.txt")

    def test_symlink_out_of_root_rejected(self) -> None:
        outside = self.root.parent / "outside.png"
        outside.write_bytes(PNG)
        os.symlink(outside, self.root / "link.png")
        with self.assertRaises(PathTraversalRejected):
            self.resolver.read("link.png")

    def test_missing_file_is_not_found(self) -> None:
        with self.assertRaises(NotFound):
            self.resolver.read("missing.png")


class TestSniff(unittest.TestCase):
    def test_signatures(self) -> None:
        self.assertEqual(sniff_content_type(PNG), "image/png")
        self.assertEqual(sniff_content_type(JPEG), "image/jpeg")
        self.assertIsNone(sniff_content_type(b"GIF89a"))
        self.assertIsNone(sniff_content_type(b"<?php echo 1; ?>"))
        self.assertIsNone(sniff_content_type(b""))


class TestStoreImage(ResolverTestCase):
    def test_stores_under_random_name(self) -> None:
        asset = self.resolver.store_image("../../evil name.png", PNG)
        self.assertRegex(asset.stored_name, r"^[0-9a-f]{32}\.png$")
        self.assertEqual(asset.content_type, "image/png")
        self.assertEqual(asset.byte_size, len(PNG))
        self.assertEqual((self.root / asset.stored_name).read_bytes(), PNG)
        self.assertEqual(self.resolver.read(asset.stored_name), PNG)

    def test_names_never_collide(self) -> None:
        first = self.resolver.store_image("a.png", PNG)
        second = self.resolver.store_image("a.png", PNG)
        self.assertNotEqual(first.stored_name, second.stored_name)

    def test_content_must_match_extension(self) -> None:
        with self.assertRaises(ContentTypeMismatch):
            self.resolver.store_image("photo.png", JPEG)
        with self.assertRaises(ContentTypeMismatch):
            self.resolver.store_image("photo.jpg", b"<svg onload=alert(1)>")
        self.assertEqual(list(self.root.iterdir()), [])

    def test_extension_checked_first(self) -> None:
        with self.assertRaises(UnsupportedFileType):
            self.resolver.store_image("shell.php", PNG)

    def test_jpeg_accepted_for_both_extensions(self) -> None:
        self.assertTrue(self.resolver.store_image("a.jpg", JPEG).stored_name.endswith(".jpg"))
        self.assertTrue(self.resolver.store_image("a.jpeg", JPEG).stored_name.endswith(".jpeg"))


if __name__ == "__main__":
    unittest.main()
