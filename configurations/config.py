"""Configuration settings for the exam centre allotment console."""
import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else None


class Config:
    # Routing backend
    API_BASE_URL: str = os.getenv("ALLOTMENT_API_BASE_URL", "http://localhost:8080")
    REQUEST_TIMEOUT_SECONDS: int = int(os.getenv("ALLOTMENT_REQUEST_TIMEOUT", "300"))
    GRAPH_DETAIL: Optional[str] = os.getenv("ALLOTMENT_GRAPH_DETAIL") or None

    # Random seed for reproducible populations (unset = fresh randomness each run)
    RANDOM_SEED: Optional[int] = _optional_int("ALLOTMENT_RANDOM_SEED")

    # Earth model shared with the map layer
    EARTH_RADIUS_METERS: float = 6371000.0

    # Population simulation
    CATCHMENT_PADDING_FACTOR: float = 1.25
    MIN_CATCHMENT_RADIUS_METERS: float = 2000.0
    SAMPLING_ATTEMPT_MULTIPLIER: int = 100
    CATEGORY_DISTRIBUTION = (
        ("pwd", 0.05),
        ("female", 0.15),
        ("male", 0.80),
    )
    DEFAULT_STUDENT_COUNT: int = 1000
    DEFAULT_CENTRE_CAPACITY: int = 500

    # Travel times at or above this many seconds mean "no route"
    UNREACHABLE_TRAVEL_TIME_SECONDS: float = 9000000.0

    # Exports
    EXPORT_DIR: Optional[str] = os.getenv("ALLOTMENT_EXPORT_DIR") or None

    # API settings
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8081

    # Logging
    LOG_LEVEL: str = os.getenv("ALLOTMENT_LOG_LEVEL", "INFO")
