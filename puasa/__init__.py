"""Prayer-time countdown and notification engine for the Puasa desktop widget."""

from .notifier import NotificationGate, NotificationRequest, PlyerSink
from .schedule import PRAYER_NAMES, NextPrayerState, ResolvedSchedule, get_next_prayer, parse_clock_time
from .session import PrayerScheduleSession, ScheduleHandoff
from .ticker import CountdownTicker

__all__ = [
    "PRAYER_NAMES",
    "NextPrayerState",
    "ResolvedSchedule",
    "get_next_prayer",
    "parse_clock_time",
    "CountdownTicker",
    "NotificationGate",
    "NotificationRequest",
    "PlyerSink",
    "PrayerScheduleSession",
    "ScheduleHandoff",
]
