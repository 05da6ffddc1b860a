"""Internal constants shared across the library."""

DEFAULT_INTERVAL_MS = 10_000
DEFAULT_FIX_TIMEOUT_MS = 5_000

# 10 s, 60 s and 5 min: the cadences offered to users.
INTERVAL_PRESETS_MS: tuple[int, ...] = (10_000, 60_000, 300_000)

# ------------------------------------------------------------------
# Coordinate bounds (degrees)
# ------------------------------------------------------------------

LATITUDE_MIN = -90.0
LATITUDE_MAX = 90.0
LONGITUDE_MIN = -180.0
LONGITUDE_MAX = 180.0

HISTORY_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

USER_AGENT = "pygeotrack"


def require_interval_ms(value: object) -> int:
    """Return *value* as a positive integer interval in milliseconds.

    Raises :class:`ValueError` for booleans, non-integers and values ``<= 0``.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"interval must be a positive integer of milliseconds, got {value!r}")
    if value <= 0:
        raise ValueError(f"interval must be a positive integer of milliseconds, got {value}")
    return value
