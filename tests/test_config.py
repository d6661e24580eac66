import os
import unittest
from pathlib import Path
from unittest import mock

from config import Config
from tools.utils import RetryPolicy

REQUIRED = {
    "GEMINI_API_KEY": "gemini-key",
    "GOOGLE_API_KEY": "google-key",
    "GOOGLE_CSE_ID": "cse-id",
    "DB_PATH": "/tmp/edbrief-test.db",
}


class TestConfig(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, REQUIRED, clear=True):
            config = Config.load()
        self.assertIsNone(config.validate())
        self.assertEqual(config.db_path, Path("/tmp/edbrief-test.db"))
        self.assertEqual(config.primary_model, "google-gla:gemini-2.5-pro")
        self.assertEqual(config.secondary_model, "")
        self.assertEqual(config.scrape_concurrency, 3)
        self.assertEqual(config.generation_attempts, 3)
        self.assertEqual(config.generation_retry_delay, 180.0)
        self.assertEqual(config.seen_capacity, 1000)
        self.assertEqual(config.message_type, "edtech_daily_summary")

    def test_missing_required_keys(self):
        with mock.patch.dict(os.environ, {"GEMINI_API_KEY": "k"}, clear=True):
            error = Config.load().validate()
        self.assertIn("GOOGLE_API_KEY", error)
        self.assertIn("GOOGLE_CSE_ID", error)
        self.assertNotIn("GEMINI_API_KEY", error)

    def test_overrides(self):
        env = dict(REQUIRED, SCRAPE_CONCURRENCY="5", BATCH_PAUSE_SECONDS="0.5", ENABLE_LOGFIRE="yes", LOG_LEVEL="debug")
        with mock.patch.dict(os.environ, env, clear=True):
            config = Config.load()
        self.assertEqual(config.scrape_concurrency, 5)
        self.assertEqual(config.batch_pause_seconds, 0.5)
        self.assertTrue(config.enable_logfire)
        self.assertEqual(config.log_level, "DEBUG")

    def test_invalid_integer_raises(self):
        with mock.patch.dict(os.environ, dict(REQUIRED, SEARCH_COUNT="many"), clear=True):
            with self.assertRaises(ValueError):
                Config.load()

    def test_out_of_range_values(self):
        with mock.patch.dict(os.environ, dict(REQUIRED, SCRAPE_CONCURRENCY="0"), clear=True):
            self.assertIn("SCRAPE_CONCURRENCY", Config.load().validate())
        with mock.patch.dict(os.environ, dict(REQUIRED, LOG_FORMAT="xml"), clear=True):
            self.assertIn("LOG_FORMAT", Config.load().validate())
        with mock.patch.dict(os.environ, dict(REQUIRED, NAV_RETRY_DELAY="-1"), clear=True):
            self.assertIn("NAV_RETRY_DELAY", Config.load().validate())
        with mock.patch.dict(os.environ, dict(REQUIRED, DB_PATH=""), clear=True):
            self.assertIn("DB_PATH", Config.load().validate())

    def test_provider_validation_ignores_search_keys(self):
        with mock.patch.dict(os.environ, {"GEMINI_API_KEY": "k"}, clear=True):
            config = Config.load()
        self.assertIsNone(config.validate_providers())
        self.assertIn("GOOGLE_API_KEY", config.validate())

    def test_provider_validation_requires_gemini_key(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertIn("GEMINI_API_KEY", Config.load().validate_providers())


class TestRetryPolicy(unittest.TestCase):
    def test_fixed_schedule(self):
        self.assertEqual(RetryPolicy(max_attempts=3, delay=2.0).schedule(), [2.0, 2.0])

    def test_backoff_with_cap(self):
        policy = RetryPolicy(max_attempts=4, delay=1.0, backoff=3.0, max_delay=5.0)
        self.assertEqual(policy.schedule(), [1.0, 3.0, 5.0])

    def test_single_attempt_has_no_pause(self):
        self.assertEqual(RetryPolicy(max_attempts=1, delay=10.0).schedule(), [])

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            RetryPolicy(max_attempts=0)
        with self.assertRaises(ValueError):
            RetryPolicy(delay=-1.0)


if __name__ == "__main__":
    unittest.main()
