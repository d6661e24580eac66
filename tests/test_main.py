import io
import os
import unittest
from unittest import mock

import main


class TestCommandValidation(unittest.TestCase):
    def _main(self, argv, env):
        stderr = io.StringIO()
        with mock.patch.dict(os.environ, env, clear=True), \
                mock.patch("sys.argv", ["main.py", *argv]), \
                mock.patch("sys.stderr", stderr), \
                mock.patch("main.setup_logging"):
            return main.main(), stderr.getvalue()

    def test_check_needs_only_provider_keys(self):
        with mock.patch("main.cmd_check", return_value=0) as cmd_check:
            code, _ = self._main(["check"], {"GEMINI_API_KEY": "k"})
        self.assertEqual(code, 0)
        cmd_check.assert_called_once()

    def test_check_without_gemini_key_fails(self):
        with mock.patch("main.cmd_check", return_value=0) as cmd_check:
            code, err = self._main(["check"], {})
        self.assertEqual(code, 1)
        self.assertIn("GEMINI_API_KEY", err)
        cmd_check.assert_not_called()

    def test_run_needs_search_keys(self):
        with mock.patch("main.cmd_run", return_value=0) as cmd_run:
            code, err = self._main(["run"], {"GEMINI_API_KEY": "k"})
        self.assertEqual(code, 1)
        self.assertIn("GOOGLE_API_KEY", err)
        cmd_run.assert_not_called()


if __name__ == "__main__":
    unittest.main()
