"""Tests for the expired-session cleanup job."""

import unittest
from datetime import timedelta
from unittest.mock import MagicMock, patch

from beershop import session_cleanup
from beershop.services.session_cleanup import run_session_cleanup


class TestRunSessionCleanup(unittest.TestCase):
    def test_returns_deleted_count(self) -> None:
        manager = MagicMock()
        manager.purge_expired.return_value = 3
        session = MagicMock()
        self.assertEqual(run_session_cleanup(session, manager), 3)
        manager.purge_expired.assert_called_once_with(session)

    def test_nothing_to_delete(self) -> None:
        manager = MagicMock()
        manager.purge_expired.return_value = 0
        self.assertEqual(run_session_cleanup(MagicMock(), manager), 0)


class TestCli(unittest.TestCase):
    @patch("beershop.session_cleanup.SessionLocal")
    @patch("beershop.session_cleanup.run_session_cleanup", return_value=2)
    def test_success_exit_code_and_session_closed(self, run, session_local) -> None:
        self.assertEqual(session_cleanup.main(), 0)
        manager = run.call_args.args[1]
        self.assertEqual(manager.max_age, timedelta(seconds=session_cleanup.get_settings().SESSION_MAX_AGE_SEC))
        session_local.return_value.close.assert_called_once()

    @patch("beershop.session_cleanup.SessionLocal")
    @patch("beershop.session_cleanup.run_session_cleanup", side_effect=RuntimeError("db down"))
    def test_failure_exit_code(self, run, session_local) -> None:
        with self.assertLogs("beershop.session_cleanup", level="ERROR"):
            self.assertEqual(session_cleanup.main(), 1)
        session_local.return_value.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
