"""Tests for manifest parsing and the override store."""

import os
import shutil
import tempfile
import unittest

from CrunchKit.config import ResizeMode
from CrunchKit.core import (
    ManifestReadError, OverrideStore, TargetOverride,
    parse_manifest, parse_manifest_line, read_manifest,
)


class TestParseManifestLine(unittest.TestCase):
    def test_quality_and_resize_are_stripped(self):
        target, override = parse_manifest_line("foo/bar.png 0.8 border")
        self.assertEqual(target, "foo/bar.png")
        self.assertEqual(override.quality, 0.8)
        self.assertEqual(override.resize, ResizeMode.BORDER)

    def test_quality_only(self):
        target, override = parse_manifest_line("sprites/*.png 1")
        self.assertEqual(target, "sprites/*.png")
        self.assertEqual(override.quality, 1.0)
        self.assertIsNone(override.resize)

    def test_resize_only(self):
        target, override = parse_manifest_line("ui scale")
        self.assertEqual(target, "ui")
        self.assertIsNone(override.quality)
        self.assertEqual(override.resize, ResizeMode.SCALE)

    def test_bare_target_has_no_override(self):
        target, override = parse_manifest_line("  textures/hero.png  ")
        self.assertEqual(target, "textures/hero.png")
        self.assertTrue(override.is_empty)

    def test_target_with_spaces_is_kept(self):
        target, override = parse_manifest_line("my textures/a b.png 0.25")
        self.assertEqual(target, "my textures/a b.png")
        self.assertEqual(override.quality, 0.25)

    def test_keyword_alone_is_a_target(self):
        target, override = parse_manifest_line("border")
        self.assertEqual(target, "border")
        self.assertTrue(override.is_empty)

    def test_blank_and_comment_lines(self):
        self.assertIsNone(parse_manifest_line(""))
        self.assertIsNone(parse_manifest_line("   \t"))
        self.assertIsNone(parse_manifest_line("# generated by exporter"))

    def test_unrepresentable_quality_is_ignored(self):
        with self.assertLogs("crunchkit.overrides", level="WARNING"):
            target, override = parse_manifest_line("a.png " + "9" * 400 + " border")
        self.assertEqual(target, "a.png")
        self.assertIsNone(override.quality)
        self.assertEqual(override.resize, ResizeMode.BORDER)


class TestParseManifest(unittest.TestCase):
    def test_blank_lines_dropped_and_overrides_recorded(self):
        store = OverrideStore()
        text = "a.png 0.7\r\n\r\n   \nb/*.png border\nc\n"
        targets = parse_manifest(text, store)
        self.assertEqual(targets, ["a.png", "b/*.png", "c"])
        self.assertEqual(store.get("a.png"), TargetOverride(quality=0.7))
        self.assertEqual(store.get("b/*.png"), TargetOverride(resize=ResizeMode.BORDER))
        self.assertNotIn("c", store)
        self.assertTrue(store.get("c").is_empty)

    def test_read_manifest_missing_file_raises_oserror(self):
        with self.assertRaises(OSError) as ctx:
            read_manifest("/nonexistent/dir/list.txt", OverrideStore())
        self.assertIsInstance(ctx.exception, ManifestReadError)
        self.assertIn("list.txt", str(ctx.exception))

    def test_read_manifest_utf8(self):
        tmpdir = tempfile.mkdtemp()
        try:
            path = os.path.join(tmpdir, "list.txt")
            with open(path, "w", encoding="utf-8") as f:
                f.write("\ufefftextures/ü.png 0.3 scale\n")
            store = OverrideStore()
            targets = read_manifest(path, store)
            self.assertEqual(targets, ["textures/ü.png"])
            self.assertEqual(
                store.get("textures/ü.png"),
                TargetOverride(quality=0.3, resize=ResizeMode.SCALE),
            )
        finally:
            shutil.rmtree(tmpdir, ignore_errors=True)


class TestOverrideStore(unittest.TestCase):
    def test_copy_to_overwrites(self):
        store = OverrideStore()
        store.set("/abs/a.png", TargetOverride(quality=0.9))
        store.copy_to("pattern/*.png", "/abs/a.png")
        self.assertTrue(store.get("/abs/a.png").is_empty)

    def test_copy_to_propagates(self):
        store = OverrideStore()
        store.set("pattern", TargetOverride(quality=0.2, resize=ResizeMode.SCALE))
        store.copy_to("pattern", "/abs/a.png")
        self.assertEqual(store.get("/abs/a.png").quality, 0.2)
        self.assertEqual(len(store), 2)


if __name__ == "__main__":
    unittest.main(verbosity=2)
