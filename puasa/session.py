"""
Prayer schedule session.

Owns the day's ResolvedSchedule, the current NextPrayerState, the
NotificationGate and the CountdownTicker. Every method here must run on the
scheduler's context (the Tk main loop in the app). Background threads hand
schedules over through ScheduleHandoff.
"""

import datetime
import logging
import queue
from collections import namedtuple

from puasa.notifier import NotificationGate, build_prayer_notification, build_reminder_notification
from puasa.prayer_api import get_timezone
from puasa.schedule import NO_COUNTDOWN, ResolvedSchedule, fmt_countdown, get_next_prayer, local_date
from puasa.ticker import REFRESH_MS, CountdownTicker, utc_now

logger = logging.getLogger(__name__)

IDLE = "idle"
LOADED = "loaded"
TICKING = "ticking"
STOPPED = "stopped"

DEFAULT_REMINDER_MINUTES = (10, 5)

ScheduleUpdate = namedtuple("ScheduleUpdate", "timings timezone context")


class PrayerScheduleSession:
    def __init__(self, scheduler, sink, clock=utc_now, notifications_enabled: bool = True,
                 reminder_minutes=DEFAULT_REMINDER_MINUTES, on_update=None, on_error=None,
                 interval_ms: int = REFRESH_MS):
        self._scheduler = scheduler
        self._sink = sink
        self._clock = clock
        self._interval_ms = interval_ms
        self._notifications_enabled = bool(notifications_enabled)
        self.reminder_minutes = tuple(reminder_minutes or ())
        self.on_update = on_update
        self.on_error = on_error

        self.gate = NotificationGate()
        self.state = IDLE
        self.schedule = None
        self.timezone = None
        self.next_prayer = None
        self.countdown = NO_COUNTDOWN
        self._ticker = None

    # ──────────────────────────────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────────────────────────────
    def load(self, timings: dict, timezone: str = None) -> None:
        """Install a new day's timings, replacing any running countdown."""
        if self.state == STOPPED:
            logger.warning("[SESSION] load() after stop() ignored")
            return

        self._stop_ticker()
        self._cancel_reminders()

        previous_day = self.schedule.day if self.schedule is not None else None
        self.timezone = get_timezone(timezone)
        now = self._clock()
        self.schedule = ResolvedSchedule.build(timings or {}, local_date(now, self.timezone), self.timezone)
        if previous_day is not None and self.schedule.day > previous_day:
            # Reloaded on a later day before the old countdown rolled over.
            self.gate.reset_for_new_day()
        logger.info("[SESSION] Loaded %d prayers for %s (%s)", len(self.schedule), self.schedule.day, self.timezone)

        self.next_prayer = get_next_prayer(self.schedule, now)
        if self.next_prayer is None:
            logger.info("[SESSION] No parseable prayer times; countdown cleared")
            self.countdown = NO_COUNTDOWN
            self.state = LOADED
            self._notify_update()
            return

        logger.info("[SESSION] Next=%s at %s", self.next_prayer.name, self.next_prayer.target)
        self.countdown = fmt_countdown(self.next_prayer.remaining_seconds)
        self._schedule_reminders()
        self._ticker = CountdownTicker(
            self._scheduler,
            self.next_prayer.target,
            clock=self._clock,
            on_tick=self._on_tick,
            on_reached=self._on_reached,
            interval_ms=self._interval_ms,
        )
        self.state = TICKING
        self._ticker.start()

    def stop(self) -> None:
        """Cancel the countdown and any queued reminders. Safe to call twice."""
        if self.state == STOPPED:
            return
        self.state = STOPPED
        self._stop_ticker()
        self._cancel_reminders()
        logger.info("[SESSION] Stopped")

    @property
    def notifications_enabled(self) -> bool:
        return self._notifications_enabled

    @notifications_enabled.setter
    def notifications_enabled(self, enabled: bool) -> None:
        enabled = bool(enabled)
        if enabled == self._notifications_enabled:
            return
        self._notifications_enabled = enabled
        logger.info("[NOTIFY] Notifications %s", "enabled" if enabled else "disabled")
        if not enabled:
            self._cancel_reminders()
        elif self.state == TICKING and self.next_prayer is not None:
            self._schedule_reminders()

    @property
    def ticking(self) -> bool:
        return self._ticker is not None and self._ticker.running

    # ──────────────────────────────────────────────────────────────────────
    # Ticker callbacks
    # ──────────────────────────────────────────────────────────────────────
    def _on_tick(self, remaining: int, text: str) -> None:
        self.countdown = text
        if self.next_prayer is not None:
            self.next_prayer = self.next_prayer._replace(remaining_seconds=remaining)
        self._notify_update()

    def _on_reached(self) -> None:
        if self.state != TICKING or self.next_prayer is None:
            return

        reached = self.next_prayer
        now = self._clock()
        today = local_date(now, self.timezone)
        if self.schedule.day != today:
            self.schedule = self.schedule.for_day(today)

        logger.info("[SESSION] %s reached", reached.name)
        self._send_notification_if_needed(reached.name)
        if self.state != TICKING:
            return

        self.next_prayer = get_next_prayer(self.schedule, now)
        if self.next_prayer is None:
            self._stop_ticker()
            self.state = LOADED
            self._notify_update()
            return

        if self._crossed_day(reached.target, self.next_prayer.target):
            self.gate.reset_for_new_day()

        logger.info("[SESSION] Next=%s at %s", self.next_prayer.name, self.next_prayer.target)
        self.countdown = fmt_countdown(self.next_prayer.remaining_seconds)
        self._ticker.retarget(self.next_prayer.target)
        self._schedule_reminders()
        self._notify_update()

    # ──────────────────────────────────────────────────────────────────────
    # Notifications
    # ──────────────────────────────────────────────────────────────────────
    def _send_notification_if_needed(self, prayer_name: str) -> None:
        permitted = getattr(self._sink, "has_permission", True)
        if not self.gate.allows(prayer_name, self.notifications_enabled, permitted):
            logger.debug("[NOTIFY] %s suppressed", prayer_name)
            return

        # Marked before delivery: a failing sink must not retry every tick.
        self.gate.mark_notified(prayer_name)
        request = build_prayer_notification(prayer_name, self.schedule.clock_time(prayer_name))
        try:
            self._sink.deliver(request)
        except Exception as exc:
            logger.error("[NOTIFY] Failed to deliver %s notification: %s", prayer_name, exc, exc_info=True)
            if self.on_error:
                self.on_error(exc)
            return
        logger.info("[NOTIFY] Sent %s notification", prayer_name)

    def _schedule_reminders(self) -> None:
        self._cancel_reminders()
        if not self.reminder_minutes or not self.notifications_enabled:
            return
        if not getattr(self._sink, "has_permission", True):
            return

        now = self._clock()
        for minutes in self.reminder_minutes:
            deliver_at = self.next_prayer.target - datetime.timedelta(minutes=minutes)
            if deliver_at <= now:
                continue
            request = build_reminder_notification(self.next_prayer.name, minutes, deliver_at)
            try:
                self._sink.deliver(request)
            except Exception as exc:
                logger.error("[NOTIFY] Failed to queue reminder: %s", exc)
                if self.on_error:
                    self.on_error(exc)

    def _cancel_reminders(self) -> None:
        cancel = getattr(self._sink, "cancel_pending", None)
        if cancel is not None:
            cancel()

    # ──────────────────────────────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────────────────────────────
    def _crossed_day(self, previous: datetime.datetime, current: datetime.datetime) -> bool:
        return local_date(current, self.timezone) > local_date(previous, self.timezone)

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.stop()
            self._ticker = None

    def _notify_update(self) -> None:
        if self.on_update:
            self.on_update(self.next_prayer, self.countdown)


class ScheduleHandoff:
    """
    Thread-safe mailbox between fetch threads and the session's context.

    `context` (location, Hijri date) stays paired with the timings it was
    fetched with.
    """

    def __init__(self):
        self._queue = queue.Queue()

    def put(self, timings: dict, timezone: str = None, context: dict = None) -> None:
        self._queue.put(ScheduleUpdate(timings, timezone, context or {}))

    def drain(self, session: PrayerScheduleSession):
        """
        Load the newest pending schedule into `session`; older ones are dropped.

        Returns the applied ScheduleUpdate, or None if nothing was pending.
        """
        latest = None
        while True:
            try:
                latest = self._queue.get_nowait()
            except queue.Empty:
                break
        if latest is None:
            return None
        session.load(latest.timings, latest.timezone)
        return latest
