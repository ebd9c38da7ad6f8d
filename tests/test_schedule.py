"""Tests for the schedule module."""

import datetime
import unittest

import pytz

from puasa.schedule import (
    NO_COUNTDOWN,
    PRAYER_NAMES,
    ResolvedSchedule,
    fmt_countdown,
    get_next_prayer,
    parse_clock_time,
    seconds_until,
)

JAKARTA = pytz.timezone("Asia/Jakarta")
DAY = datetime.date(2025, 3, 1)

TIMINGS = {
    "Fajr": "04:30",
    "Dhuhr": "12:00",
    "Asr": "15:30",
    "Maghrib": "18:00",
    "Isha": "19:15",
}

FULL_TIMINGS = {
    "Fajr": "04:30",
    "Sunrise": "05:50",
    "Dhuhr": "12:00",
    "Asr": "15:20",
    "Sunset": "17:55",
    "Maghrib": "18:00",
    "Isha": "19:15",
    "Imsak": "04:20",
}


def local(hour, minute, second=0, day=DAY, tz=JAKARTA):
    return tz.localize(datetime.datetime.combine(day, datetime.time(hour, minute, second)))


class TestParseClockTime(unittest.TestCase):
    def test_converts_to_aware_datetime(self):
        dt = parse_clock_time("12:05", DAY, JAKARTA)
        self.assertEqual((dt.hour, dt.minute, dt.second), (12, 5, 0))
        self.assertEqual(dt.date(), DAY)
        self.assertEqual(dt.utcoffset(), datetime.timedelta(hours=7))

    def test_accepts_single_digit_hour_and_whitespace(self):
        self.assertEqual(parse_clock_time(" 4:30 ", DAY, JAKARTA), local(4, 30))

    def test_rejects_malformed(self):
        for bad in ("", "4.30", "24:00", "12:60", "12:5", "12:00:00", "noon", None):
            with self.subTest(bad=bad):
                with self.assertRaises(ValueError):
                    parse_clock_time(bad, DAY, JAKARTA)

    def test_uses_local_offset_across_dst(self):
        ny = pytz.timezone("America/New_York")
        winter = parse_clock_time("12:00", datetime.date(2025, 1, 15), ny)
        summer = parse_clock_time("12:00", datetime.date(2025, 7, 15), ny)
        self.assertEqual(winter.utcoffset(), datetime.timedelta(hours=-5))
        self.assertEqual(summer.utcoffset(), datetime.timedelta(hours=-4))


class TestResolvedSchedule(unittest.TestCase):
    def test_keeps_declared_order(self):
        schedule = ResolvedSchedule.build(FULL_TIMINGS, DAY, JAKARTA)
        self.assertEqual(schedule.names(), PRAYER_NAMES)

    def test_skips_malformed_and_missing(self):
        schedule = ResolvedSchedule.build({"Fajr": "4.30", "Dhuhr": "12:00", "Isha": "late"}, DAY, JAKARTA)
        self.assertEqual(schedule.names(), ["Dhuhr"])
        self.assertNotIn("Fajr", schedule)
        self.assertEqual(len(schedule), 1)

    def test_for_day_rebuilds_same_clock_times(self):
        schedule = ResolvedSchedule.build(TIMINGS, DAY, JAKARTA)
        tomorrow = schedule.for_day(DAY + datetime.timedelta(days=1))
        self.assertEqual(tomorrow.instant("Isha"), local(19, 15, day=datetime.date(2025, 3, 2)))
        self.assertEqual(tomorrow.timings(), schedule.timings())

    def test_prayer_times_carry_icons(self):
        schedule = ResolvedSchedule.build({"Isha": "19:15"}, DAY, JAKARTA)
        (prayer,) = schedule.prayer_times()
        self.assertEqual(prayer.name, "Isha")
        self.assertEqual(prayer.clock_time, "19:15")
        self.assertEqual(prayer.icon, "🌙")


class TestGetNextPrayer(unittest.TestCase):
    def setUp(self):
        self.schedule = ResolvedSchedule.build(TIMINGS, DAY, JAKARTA)

    def test_evening_returns_isha_today(self):
        state = get_next_prayer(self.schedule, local(18, 5))
        self.assertEqual(state.name, "Isha")
        self.assertEqual(state.target, local(19, 15))
        self.assertEqual(state.remaining_seconds, 4200)

    def test_after_isha_rolls_to_fajr_tomorrow(self):
        state = get_next_prayer(self.schedule, local(19, 20))
        self.assertEqual(state.name, "Fajr")
        self.assertEqual(state.target, local(4, 30, day=datetime.date(2025, 3, 2)))

    def test_prayer_at_exactly_now_counts_as_tomorrow(self):
        state = get_next_prayer(self.schedule, local(12, 0))
        self.assertEqual(state.name, "Asr")

    def test_is_deterministic(self):
        now = local(9, 41, 17)
        first = get_next_prayer(self.schedule, now)
        for _ in range(5):
            self.assertEqual(get_next_prayer(self.schedule, now), first)

    def test_accepts_utc_now(self):
        now = local(18, 5).astimezone(pytz.utc)
        self.assertEqual(get_next_prayer(self.schedule, now).name, "Isha")

    def test_imsak_precedes_fajr_despite_declared_order(self):
        schedule = ResolvedSchedule.build(FULL_TIMINGS, DAY, JAKARTA)
        state = get_next_prayer(schedule, local(21, 0))
        self.assertEqual(state.name, "Imsak")
        self.assertEqual(state.target, local(4, 20, day=datetime.date(2025, 3, 2)))

    def test_tie_goes_to_first_declared(self):
        schedule = ResolvedSchedule.build({"Sunset": "18:00", "Maghrib": "18:00"}, DAY, JAKARTA)
        self.assertEqual(get_next_prayer(schedule, local(17, 0)).name, "Sunset")

    def test_stale_schedule_is_rebuilt_for_today(self):
        yesterday = ResolvedSchedule.build(TIMINGS, DAY - datetime.timedelta(days=1), JAKARTA)
        state = get_next_prayer(yesterday, local(13, 0))
        self.assertEqual(state.name, "Asr")
        self.assertEqual(state.target, local(15, 30))

    def test_empty_schedule_returns_none(self):
        self.assertIsNone(get_next_prayer(ResolvedSchedule.build({}, DAY, JAKARTA), local(12, 0)))


class TestSecondsUntil(unittest.TestCase):
    def test_rounds_up_partial_seconds(self):
        now = local(10, 0)
        self.assertEqual(seconds_until(now + datetime.timedelta(seconds=2.1), now), 3)

    def test_never_negative(self):
        now = local(10, 0)
        self.assertEqual(seconds_until(now - datetime.timedelta(seconds=60), now), 0)


class TestFmtCountdown(unittest.TestCase):
    def test_zero_padded(self):
        self.assertEqual(fmt_countdown(4200), "01:10:00")
        self.assertEqual(fmt_countdown(59), "00:00:59")

    def test_negative_clamps(self):
        self.assertEqual(fmt_countdown(-5), "00:00:00")

    def test_placeholder_matches_countdown_width(self):
        self.assertEqual(NO_COUNTDOWN, "--:--:--")
        self.assertTrue(NO_COUNTDOWN.isascii())
        self.assertEqual(len(NO_COUNTDOWN), len(fmt_countdown(0)))


if __name__ == "__main__":
    unittest.main()
