"""Tests for logging setup."""

import logging
import os
import shutil
import tempfile
import unittest

from CrunchKit.core import setup_logging
from CrunchKit.core.logging import TqdmHandler


class TestSetupLogging(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.logger = logging.getLogger("crunchkit")
        self._saved = (list(self.logger.handlers), self.logger.level, self.logger.propagate)

    def tearDown(self):
        handlers, level, propagate = self._saved
        for handler in list(self.logger.handlers):
            if handler not in handlers:
                self.logger.removeHandler(handler)
                handler.close()
        self.logger.setLevel(level)
        self.logger.propagate = propagate
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _owned(self):
        return [h for h in self.logger.handlers if getattr(h, "_crunchkit_handler", False)]

    def test_console_handler_and_level(self):
        setup_logging("DEBUG")
        owned = self._owned()
        self.assertEqual(len(owned), 1)
        self.assertIsInstance(owned[0], TqdmHandler)
        self.assertEqual(self.logger.level, logging.DEBUG)
        self.assertFalse(self.logger.propagate)

    def test_repeated_calls_do_not_stack(self):
        log_file = os.path.join(self.tmpdir, "logs", "crunch.log")
        setup_logging("INFO", log_file)
        setup_logging("INFO", log_file)
        self.assertEqual(len(self._owned()), 2)

    def test_file_handler_writes_child_records(self):
        log_file = os.path.join(self.tmpdir, "logs", "crunch.log")
        setup_logging("INFO", log_file)
        logging.getLogger("crunchkit.compress").info("Crunching hero.png")
        for handler in self._owned():
            handler.flush()
        with open(log_file, "r", encoding="utf-8") as f:
            self.assertIn("crunchkit.compress: Crunching hero.png", f.read())

    def test_invalid_level_defaults_to_info(self):
        with self.assertLogs("crunchkit", level="WARNING") as cm:
            setup_logging("LOUD")
            self.assertEqual(self.logger.level, logging.INFO)
        self.assertTrue(any("LOUD" in msg for msg in cm.output))


if __name__ == "__main__":
    unittest.main(verbosity=2)
