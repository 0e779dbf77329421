#!/usr/bin/python3

import logging
import unittest

from disk_speed_test.logger import get_logger, set_logger


class TestSetLogger(unittest.TestCase):
    def make(self, name, **kwargs):
        logger = set_logger(name, **kwargs)
        self.addCleanup(logger.handlers.clear)
        return logger

    def test_first_call_without_level(self):
        logger = self.make("DISKSPEED-test-nolevel", level=None)
        self.assertEqual(logger.level, logging.NOTSET)
        self.assertEqual(len(logger.handlers), 1)

    def test_second_call_reuses_handlers(self):
        logger = self.make("DISKSPEED-test-reuse", level=logging.INFO)
        again = set_logger("DISKSPEED-test-reuse", level=logging.DEBUG)
        self.assertIs(again, logger)
        self.assertEqual(len(logger.handlers), 1)
        self.assertEqual(logger.level, logging.DEBUG)

    def test_children_share_the_root_name(self):
        self.assertEqual(get_logger("transfer").name, "DISKSPEED.transfer")
        self.assertEqual(get_logger().name, "DISKSPEED")


if __name__ == "__main__":
    unittest.main()
