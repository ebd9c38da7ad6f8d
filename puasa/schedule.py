"""Turn the day's "HH:MM" prayer times into instants and find the next one."""

import datetime
import logging
import math
import re
from collections import namedtuple

logger = logging.getLogger(__name__)

# Declared order, used for display and tie-breaks only. Imsak comes before
# Fajr on the clock, so never treat this list as chronological.
PRAYER_NAMES = ["Fajr", "Sunrise", "Dhuhr", "Asr", "Sunset", "Maghrib", "Isha", "Imsak"]
PRAYER_ICONS = {
    "Fajr": "🌅",
    "Sunrise": "🌄",
    "Dhuhr": "☀️",
    "Asr": "🌤️",
    "Sunset": "🌅",
    "Maghrib": "🌆",
    "Isha": "🌙",
    "Imsak": "🤲",
}
PRAYER_DISPLAY = {
    "Fajr": "Subuh / Fajr",
    "Sunrise": "Sunrise / Syuruq",
    "Dhuhr": "Dzuhur / Dhuhr",
    "Asr": "Ashar / Asr",
    "Sunset": "Sunset / Terbenam",
    "Maghrib": "Maghrib",
    "Isha": "Isya / Isha",
    "Imsak": "Imsak",
}

_CLOCK_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

PrayerTime = namedtuple("PrayerTime", "name clock_time icon")
NextPrayerState = namedtuple("NextPrayerState", "name target remaining_seconds")


def parse_clock_time(time_str: str, day: datetime.date, tz) -> datetime.datetime:
    """
    Convert an 'HH:MM' string to a timezone-aware datetime on `day`.

    `tz` is a pytz timezone. Raises ValueError if the string is not a
    24-hour two-field clock time.
    """
    match = _CLOCK_RE.match(time_str.strip()) if isinstance(time_str, str) else None
    if match is None:
        raise ValueError(f"Invalid clock time: {time_str!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    naive = datetime.datetime.combine(day, datetime.time(hour, minute))
    return tz.localize(naive)


def seconds_until(target_dt: datetime.datetime, now: datetime.datetime) -> int:
    """Whole seconds from now until target_dt, rounded up and never negative."""
    delta = (target_dt - now).total_seconds()
    if delta <= 0:
        return 0
    return int(math.ceil(delta))


# Shown while there is no upcoming prayer to count down to
NO_COUNTDOWN = "--:--:--"


def fmt_countdown(seconds: int) -> str:
    """Format seconds into HH:MM:SS countdown string."""
    if seconds < 0:
        seconds = 0
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


class ResolvedSchedule:
    """One calendar day of prayer instants in a single timezone."""

    def __init__(self, day: datetime.date, tz, entries: list):
        self.day = day
        self.tz = tz
        # (name, clock_time, instant) in declared order
        self._entries = entries

    @classmethod
    def build(cls, timings: dict, day: datetime.date, tz) -> "ResolvedSchedule":
        entries = []
        for name in PRAYER_NAMES:
            raw = timings.get(name)
            if raw is None:
                continue
            try:
                instant = parse_clock_time(raw, day, tz)
            except ValueError:
                logger.debug("[SCHED] Skipping %s: unparseable time %r", name, raw)
                continue
            entries.append((name, raw.strip(), instant))
        return cls(day, tz, entries)

    def for_day(self, day: datetime.date) -> "ResolvedSchedule":
        """Rebuild the same clock times for another calendar day."""
        return ResolvedSchedule.build(self.timings(), day, self.tz)

    def timings(self) -> dict:
        return {name: clock for name, clock, _ in self._entries}

    def prayer_times(self) -> list:
        return [PrayerTime(name, clock, PRAYER_ICONS.get(name, "🕌")) for name, clock, _ in self._entries]

    def instant(self, name: str) -> datetime.datetime:
        for entry_name, _, instant in self._entries:
            if entry_name == name:
                return instant
        raise KeyError(name)

    def clock_time(self, name: str) -> str:
        for entry_name, clock, _ in self._entries:
            if entry_name == name:
                return clock
        raise KeyError(name)

    def next_day_instant(self, name: str) -> datetime.datetime:
        return parse_clock_time(self.clock_time(name), self.day + datetime.timedelta(days=1), self.tz)

    def names(self) -> list:
        return [name for name, _, _ in self._entries]

    def __iter__(self):
        for name, _, instant in self._entries:
            yield name, instant

    def __contains__(self, name):
        return name in self.names()

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return f"ResolvedSchedule(day={self.day}, tz={self.tz}, prayers={self.names()})"


def local_date(now: datetime.datetime, tz) -> datetime.date:
    return now.astimezone(tz).date()


def get_next_prayer(schedule: ResolvedSchedule, now: datetime.datetime):
    """
    Return the NextPrayerState for the soonest upcoming prayer.

    A prayer whose instant today is at or before `now` counts at the same
    clock time tomorrow. Ties go to the prayer declared first. Returns None
    when the schedule is empty.
    """
    today = local_date(now, schedule.tz)
    if schedule.day != today:
        schedule = schedule.for_day(today)

    soonest_name = None
    soonest_dt = None
    for name, instant in schedule:
        if instant <= now:
            instant = schedule.next_day_instant(name)
        if soonest_dt is None or instant < soonest_dt:
            soonest_name = name
            soonest_dt = instant

    if soonest_name is None:
        return None
    return NextPrayerState(soonest_name, soonest_dt, seconds_until(soonest_dt, now))
