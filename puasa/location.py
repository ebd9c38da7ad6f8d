"""Location detection using IP geolocation."""

import logging

import requests

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = {
    "city": "Jakarta",
    "region": "Jakarta",
    "country": "ID",
    "lat": -6.2088,
    "lon": 106.8456,
    "timezone": "Asia/Jakarta",
}

IPAPI_URL = "http://ip-api.com/json/"


def get_location(timeout: int = 5) -> dict:
    """
    Detect current location via IP geolocation.

    Returns a dict with: city, region, country, lat, lon, timezone.
    Falls back to DEFAULT_LOCATION when the lookup fails.
    """
    try:
        resp = requests.get(
            IPAPI_URL,
            params={"fields": "city,regionName,country,lat,lon,timezone,status,message"},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("[LOCATION] IP lookup failed, using %s: %s", DEFAULT_LOCATION["city"], exc)
        return dict(DEFAULT_LOCATION)

    if data.get("status") != "success":
        logger.warning("[LOCATION] IP lookup refused: %s", data.get("message", "unknown"))
        return dict(DEFAULT_LOCATION)

    location = {
        "city": data.get("city", DEFAULT_LOCATION["city"]),
        "region": data.get("regionName", DEFAULT_LOCATION["region"]),
        "country": data.get("country", DEFAULT_LOCATION["country"]),
        "lat": float(data.get("lat", DEFAULT_LOCATION["lat"])),
        "lon": float(data.get("lon", DEFAULT_LOCATION["lon"])),
        "timezone": data.get("timezone", DEFAULT_LOCATION["timezone"]),
    }
    logger.info("[LOCATION] %s, %s (%s)", location["city"], location["country"], location["timezone"])
    return location
