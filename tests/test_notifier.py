"""Tests for the notifier module."""

import datetime
import unittest
from unittest.mock import MagicMock, patch

import pytz

from puasa.notifier import (
    NotificationGate,
    PlyerSink,
    _send_plyer,
    build_prayer_notification,
    build_reminder_notification,
)

NOW = pytz.utc.localize(datetime.datetime(2025, 3, 1, 12, 0, 0))


class TestNotificationGate(unittest.TestCase):
    def setUp(self):
        self.gate = NotificationGate()

    def test_allows_first_notification(self):
        self.assertTrue(self.gate.should_notify("Fajr"))
        self.assertTrue(self.gate.allows("Fajr", enabled=True, permitted=True))

    def test_blocks_after_mark(self):
        self.gate.mark_notified("Fajr")
        self.assertFalse(self.gate.should_notify("Fajr"))
        self.assertFalse(self.gate.allows("Fajr", enabled=True, permitted=True))
        self.assertTrue(self.gate.allows("Dhuhr", enabled=True, permitted=True))

    def test_requires_enabled_and_permitted(self):
        self.assertFalse(self.gate.allows("Asr", enabled=False, permitted=True))
        self.assertFalse(self.gate.allows("Asr", enabled=True, permitted=False))

    def test_blocks_repeat_of_last_notified(self):
        self.gate.mark_notified("Isha")
        self.gate._notified.discard("Isha")
        self.assertTrue(self.gate.should_notify("Isha"))
        self.assertFalse(self.gate.allows("Isha", enabled=True, permitted=True))

    def test_reset_allows_yesterdays_prayer_again(self):
        self.gate.mark_notified("Maghrib")
        self.gate.reset_for_new_day()
        self.assertEqual(self.gate.notified, frozenset())
        self.assertIsNone(self.gate.last_notified)
        self.assertTrue(self.gate.allows("Maghrib", enabled=True, permitted=True))


class TestBuildRequests(unittest.TestCase):
    def test_prayer_notification_is_immediate(self):
        request = build_prayer_notification("Maghrib", "18:00")
        self.assertEqual(request.title, "Prayer Time: Maghrib 🌆")
        self.assertEqual(request.body, "It's time for Maghrib prayer (18:00)")
        self.assertIsNone(request.deliver_at)

    def test_unknown_prayer_gets_mosque_icon(self):
        self.assertIn("🕌", build_prayer_notification("Midnight", "00:00").title)

    def test_reminder_mentions_minutes(self):
        request = build_reminder_notification("Fajr", 10, NOW)
        self.assertIn("10", request.title)
        self.assertIn("Fajr", request.body)
        self.assertEqual(request.deliver_at, NOW)


class TestSendPlyer(unittest.TestCase):
    @patch("puasa.notifier.plyer_notification")
    def test_passes_app_name(self, mock_notification):
        _send_plyer("Title", "Body", timeout=5)
        mock_notification.notify.assert_called_once_with(
            app_name="Puasa", title="Title", message="Body", timeout=5
        )


class TestPlyerSink(unittest.TestCase):
    def setUp(self):
        self.callback = MagicMock()
        self.sink = PlyerSink(clock=lambda: NOW, callback=self.callback)

    @patch("puasa.notifier._send_plyer")
    def test_immediate_request_sends_now(self, mock_plyer):
        self.sink.deliver(build_prayer_notification("Asr", "15:30"))
        mock_plyer.assert_called_once()
        self.assertIn("Asr", mock_plyer.call_args[0][0])
        self.callback.assert_called_once()

    @patch("puasa.notifier._send_plyer")
    def test_immediate_errors_propagate(self, mock_plyer):
        mock_plyer.side_effect = NotImplementedError("no backend")
        with self.assertRaises(NotImplementedError):
            self.sink.deliver(build_prayer_notification("Asr", "15:30"))

    @patch("puasa.notifier._send_plyer")
    def test_past_deliver_at_sends_now(self, mock_plyer):
        self.sink.deliver(build_reminder_notification("Asr", 5, NOW - datetime.timedelta(seconds=1)))
        mock_plyer.assert_called_once()

    def test_future_request_uses_timer(self):
        with patch("puasa.notifier.threading.Timer") as mock_timer_cls:
            mock_timer = MagicMock()
            mock_timer_cls.return_value = mock_timer
            self.sink.deliver(build_reminder_notification("Isha", 10, NOW + datetime.timedelta(minutes=10)))
            self.assertEqual(mock_timer_cls.call_args[0][0], 600)
            mock_timer.start.assert_called_once()
            self.assertEqual(self.sink.pending, 1)

    def test_cancel_pending_cancels_timers(self):
        with patch("puasa.notifier.threading.Timer") as mock_timer_cls:
            timers = [MagicMock(), MagicMock()]
            mock_timer_cls.side_effect = timers
            for minutes in (10, 5):
                self.sink.deliver(build_reminder_notification("Isha", minutes, NOW + datetime.timedelta(minutes=minutes)))
            self.sink.cancel_pending()
            for timer in timers:
                timer.cancel.assert_called_once()
            self.assertEqual(self.sink.pending, 0)

    @patch("puasa.notifier._send_plyer")
    def test_timer_delivery_logs_errors(self, mock_plyer):
        mock_plyer.side_effect = RuntimeError("dbus gone")
        with self.assertLogs("puasa.notifier", level="ERROR"):
            self.sink._send_logged(build_prayer_notification("Fajr", "04:30"))


if __name__ == "__main__":
    unittest.main()
