"""Desktop notifications for prayer times, and the once-per-day gate."""

import datetime
import logging
import threading
from collections import namedtuple

import pytz
from plyer import notification as plyer_notification

from puasa.schedule import PRAYER_ICONS

logger = logging.getLogger(__name__)

APP_NAME = "Puasa"
APP_ICON = ""  # Path to icon file; empty = default

# deliver_at is a tz-aware datetime, or None for immediate delivery
NotificationRequest = namedtuple("NotificationRequest", "title body deliver_at")


def build_prayer_notification(prayer_name: str, clock_time: str) -> NotificationRequest:
    icon = PRAYER_ICONS.get(prayer_name, "🕌")
    return NotificationRequest(
        title=f"Prayer Time: {prayer_name} {icon}",
        body=f"It's time for {prayer_name} prayer ({clock_time})",
        deliver_at=None,
    )


def build_reminder_notification(prayer_name: str, minutes: int, deliver_at=None) -> NotificationRequest:
    icon = PRAYER_ICONS.get(prayer_name, "🕌")
    return NotificationRequest(
        title=f"{icon} {prayer_name} in {minutes} minutes",
        body=f"{prayer_name} starts in {minutes} minutes. Prepare for prayer.",
        deliver_at=deliver_at,
    )


class NotificationGate:
    """Remembers which prayers were notified today."""

    def __init__(self):
        self._notified = set()
        self.last_notified = None

    def should_notify(self, prayer_name: str) -> bool:
        return prayer_name not in self._notified

    def mark_notified(self, prayer_name: str) -> None:
        self._notified.add(prayer_name)
        self.last_notified = prayer_name

    def reset_for_new_day(self) -> None:
        logger.info("[NOTIFY] New day, clearing notified prayers %s", sorted(self._notified))
        self._notified.clear()
        self.last_notified = None

    def allows(self, prayer_name: str, enabled: bool, permitted: bool) -> bool:
        return (
            enabled
            and permitted
            and self.should_notify(prayer_name)
            and prayer_name != self.last_notified
        )

    @property
    def notified(self) -> frozenset:
        return frozenset(self._notified)


def _send_plyer(title: str, message: str, timeout: int = 10) -> None:
    """Send a desktop notification via plyer (cross-platform)."""
    kwargs = dict(
        app_name=APP_NAME,
        title=title,
        message=message,
        timeout=timeout,
    )
    if APP_ICON:
        kwargs["app_icon"] = APP_ICON
    plyer_notification.notify(**kwargs)


class PlyerSink:
    """
    Deliver NotificationRequests as desktop notifications.

    Immediate requests are sent on the caller's thread and errors propagate.
    Requests with a future deliver_at go onto a daemon threading.Timer;
    errors there are logged, since nobody is waiting on the timer.
    """

    has_permission = True

    def __init__(self, clock=None, timeout: int = 30, callback=None):
        self._clock = clock or (lambda: datetime.datetime.now(pytz.utc))
        self._timeout = timeout
        self._callback = callback
        self._timers = []
        self._lock = threading.Lock()

    def deliver(self, request: NotificationRequest) -> None:
        if request.deliver_at is None:
            self._send(request)
            return

        delay = (request.deliver_at - self._clock()).total_seconds()
        if delay <= 0:
            self._send(request)
            return

        t = threading.Timer(delay, self._send_logged, args=(request,))
        t.daemon = True
        with self._lock:
            self._timers = [timer for timer in self._timers if timer.is_alive()]
            self._timers.append(t)
        t.start()
        logger.debug("[NOTIFY] Queued %r in %.0fs", request.title, delay)

    def cancel_pending(self) -> None:
        with self._lock:
            timers, self._timers = self._timers, []
        for t in timers:
            t.cancel()

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for t in self._timers if t.is_alive())

    def _send(self, request: NotificationRequest) -> None:
        _send_plyer(request.title, request.body, timeout=self._timeout)
        if self._callback:
            self._callback(request.title, request.body)

    def _send_logged(self, request: NotificationRequest) -> None:
        try:
            self._send(request)
        except Exception:
            logger.exception("[NOTIFY] Failed to deliver %r", request.title)
