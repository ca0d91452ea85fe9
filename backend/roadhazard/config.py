"""Runtime configuration read from the environment."""

import os
import sys

from loguru import logger

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/road_events.db")

# Reverse geocoding (Nominatim-compatible /reverse endpoint)
GEOCODER_URL = os.getenv("GEOCODER_URL", "https://nominatim.openstreetmap.org/reverse")
GEOCODER_USER_AGENT = os.getenv("GEOCODER_USER_AGENT", "RoadHazardMonitor/1.0")
GEOCODER_TIMEOUT_SEC = float(os.getenv("GEOCODER_TIMEOUT_SEC", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Route loguru output to a single stderr sink at the given level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {name}:{line} - {message}",
    )
