"""One-second countdown driven by a tkinter-style after() scheduler."""

import datetime
import logging

import pytz

from puasa.schedule import NO_COUNTDOWN, fmt_countdown, seconds_until

logger = logging.getLogger(__name__)

REFRESH_MS = 1000  # update countdown every second


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(pytz.utc)


class CountdownTicker:
    """
    Recompute the time left to `target` every `interval_ms`.

    `scheduler` needs the two methods tkinter's Tk exposes: after(ms, fn)
    returning an id, and after_cancel(id). Every callback runs on that
    scheduler's context.

    on_tick(remaining_seconds, text) runs on every tick. on_reached() runs
    once, on the first tick where the remaining time is zero, and again only
    after retarget() or a fresh start().
    """

    def __init__(self, scheduler, target, clock=utc_now, on_tick=None, on_reached=None,
                 interval_ms: int = REFRESH_MS):
        self._scheduler = scheduler
        self._clock = clock
        self._on_tick = on_tick
        self._on_reached = on_reached
        self._interval_ms = interval_ms
        self.target = target
        self.remaining_seconds = None
        self.text = NO_COUNTDOWN
        self._handle = None
        self._running = False
        self._reached = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._reached = False
        self._tick()

    def retarget(self, target) -> None:
        """Follow a new target without starting a second callback chain."""
        self.target = target
        self._reached = False

    def stop(self) -> None:
        self._running = False
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            self._scheduler.after_cancel(handle)
        except Exception as exc:
            # Tk raises if the callback already ran or the root is gone.
            logger.debug("[TICK] after_cancel(%r) ignored: %s", handle, exc)

    def _tick(self) -> None:
        self._handle = None
        if not self._running:
            return

        remaining = seconds_until(self.target, self._clock())
        self.remaining_seconds = remaining
        self.text = fmt_countdown(remaining)

        if self._on_tick:
            self._on_tick(remaining, self.text)

        if remaining == 0 and not self._reached and self._running:
            self._reached = True
            if self._on_reached:
                self._on_reached()

        if self._running and self._handle is None:
            self._handle = self._scheduler.after(self._interval_ms, self._tick)
