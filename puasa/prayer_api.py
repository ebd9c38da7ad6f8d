"""Fetch prayer times and Hijri date from the Aladhan API."""

import datetime
import logging

import pytz
import requests

from puasa.schedule import PRAYER_NAMES

logger = logging.getLogger(__name__)

ALADHAN_BASE = "https://api.aladhan.com/v1"

DEFAULT_TIMEZONE = "Asia/Jakarta"

# Calculation method: 2 = ISNA (default)
# 3 = MWL, 4 = Mecca, 5 = Karachi, 11 = Egypt, 15 = Dubai, 20 = Turkey
DEFAULT_METHOD = 2


class APIError(ValueError):
    """The Aladhan API answered, but not with a usable schedule."""


def get_timezone(name: str = None):
    """Return a pytz timezone for `name`, falling back to DEFAULT_TIMEZONE."""
    if not name:
        return pytz.timezone(DEFAULT_TIMEZONE)
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning("[PRAYER] Unknown timezone %r, using %s", name, DEFAULT_TIMEZONE)
        return pytz.timezone(DEFAULT_TIMEZONE)


def fetch_prayer_times(lat: float, lon: float, date: datetime.date = None, method: int = DEFAULT_METHOD) -> dict:
    """
    Fetch prayer times and Hijri date for given coordinates and date.

    Returns a dict with:
        timings: {prayer_name: "HH:MM"} for every name in PRAYER_NAMES
        timezone: IANA name reported by the API, or None
        hijri: {day, month_name, month_ar, year}
        gregorian: {date_str, weekday}
    Raises requests.RequestException or APIError on failure.
    """
    if date is None:
        date = datetime.date.today()
    url = f"{ALADHAN_BASE}/timings/{date.strftime('%d-%m-%Y')}"
    params = {
        "latitude": lat,
        "longitude": lon,
        "method": method,
        "school": 0,
    }
    logger.info("[PRAYER] Fetching prayer times (%.4f, %.4f)", lat, lon)
    return _get_timings(url, params, date)


def fetch_prayer_times_by_city(city: str, country: str, date: datetime.date = None,
                               method: int = DEFAULT_METHOD) -> dict:
    """Same as fetch_prayer_times, but looked up by city and country name."""
    if date is None:
        date = datetime.date.today()
    url = f"{ALADHAN_BASE}/timingsByCity/{date.strftime('%d-%m-%Y')}"
    params = {
        "city": city,
        "country": country,
        "method": method,
    }
    logger.info("[PRAYER] Fetching prayer times (%s, %s)", city, country)
    return _get_timings(url, params, date)


def fetch_for_location(location: dict, date: datetime.date = None, method: int = DEFAULT_METHOD) -> dict:
    """
    Fetch by coordinates when `location` has lat/lon, otherwise by city and
    country. Raises APIError if it has neither.
    """
    if location.get("lat") is not None and location.get("lon") is not None:
        return fetch_prayer_times(float(location["lat"]), float(location["lon"]), date, method)
    if location.get("city") and location.get("country"):
        return fetch_prayer_times_by_city(location["city"], location["country"], date, method)
    raise APIError("Location needs lat/lon or city and country")


def _get_timings(url: str, params: dict, date: datetime.date) -> dict:
    resp = requests.get(url, params=params, timeout=30)
    resp.raise_for_status()
    body = resp.json()
    if body.get("code") != 200:
        raise APIError(f"Aladhan API error: {body.get('status')}")

    try:
        data = body["data"]
        raw_timings = data["timings"]
    except (KeyError, TypeError) as exc:
        raise APIError(f"Aladhan API returned no timings: {exc}") from exc

    # Strip any "(WIB)"-style suffix; the schedule parser rejects what's left
    # if it still isn't HH:MM.
    timings = {}
    for name in PRAYER_NAMES:
        raw = raw_timings.get(name)
        if raw is None:
            logger.warning("[PRAYER] %s missing from response", name)
            continue
        timings[name] = str(raw)[:5].strip()

    date_info = data.get("date", {})
    hijri_data = date_info.get("hijri") or {}
    hijri = {}
    if hijri_data:
        hijri = {
            "day": hijri_data.get("day", ""),
            "month_name": hijri_data.get("month", {}).get("en", ""),
            "month_ar": hijri_data.get("month", {}).get("ar", ""),
            "year": hijri_data.get("year", ""),
        }

    greg_data = date_info.get("gregorian") or {}
    gregorian = {
        "date_str": greg_data.get("date", date.strftime("%d-%m-%Y")),
        "weekday": greg_data.get("weekday", {}).get("en", ""),
    }

    timezone = (data.get("meta") or {}).get("timezone") or data.get("timezone")

    return {"timings": timings, "timezone": timezone, "hijri": hijri, "gregorian": gregorian}
