"""User settings persisted as JSON under ~/.puasa."""

import json
import logging
import os

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".puasa")
SETTINGS_FILE = os.path.join(CONFIG_DIR, "settings.json")

DEFAULT_SETTINGS = {
    "notifications_enabled": True,
    "reminder_minutes": [10, 5],
    "method": 2,
    "location": None,
}

# A manual location needs coordinates or a city/country pair.
COORD_KEYS = ("lat", "lon")
CITY_KEYS = ("city", "country")


def load_settings() -> dict:
    """Return the saved settings merged over DEFAULT_SETTINGS."""
    settings = dict(DEFAULT_SETTINGS)
    if not os.path.isfile(SETTINGS_FILE):
        return settings
    try:
        with open(SETTINGS_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("[CONFIG] Ignoring unreadable %s: %s", SETTINGS_FILE, exc)
        return settings
    if not isinstance(data, dict):
        logger.warning("[CONFIG] Ignoring %s: not a JSON object", SETTINGS_FILE)
        return settings
    for key in DEFAULT_SETTINGS:
        if key in data:
            settings[key] = data[key]
    return settings


def save_settings(settings: dict) -> None:
    os.makedirs(CONFIG_DIR, exist_ok=True)
    with open(SETTINGS_FILE, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)


def save_manual_location(location: dict) -> None:
    """Save a manually-set location alongside the other settings."""
    settings = load_settings()
    settings["location"] = location
    save_settings(settings)


def parse_manual_location(fields: dict) -> dict:
    """
    Build a manual location from the location dialog's text fields.

    Latitude and longitude are optional but must come as a numeric pair;
    without them a city and country are required. Raises ValueError.
    """
    location = {key: (fields.get(key) or "").strip() for key in ("city", "region", "country", "timezone")}
    lat, lon = (fields.get("lat") or "").strip(), (fields.get("lon") or "").strip()
    if lat or lon:
        if not (lat and lon):
            raise ValueError("Latitude and Longitude must be given together.")
        try:
            location["lat"], location["lon"] = float(lat), float(lon)
        except ValueError:
            raise ValueError("Latitude and Longitude must be numbers.") from None
    elif not (location["city"] and location["country"]):
        raise ValueError("Enter a city and country, or coordinates.")
    return location


def load_manual_location() -> dict | None:
    """Load a previously saved manual location, or return None."""
    location = load_settings().get("location")
    if not isinstance(location, dict):
        return None
    if all(location.get(k) is not None for k in COORD_KEYS):
        return location
    if all(location.get(k) for k in CITY_KEYS):
        return location
    return None


def clear_manual_location() -> None:
    """Forget the saved manual location, keeping other settings."""
    if not os.path.isfile(SETTINGS_FILE):
        return
    settings = load_settings()
    settings["location"] = None
    save_settings(settings)
