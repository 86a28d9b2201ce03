"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MIN_SEMESTER = 1
MAX_SEMESTER = 8
TOP_SEMESTER = 6

DEFAULT_CACHE_TTL_SECONDS = 5 * 60
DEFAULT_UNDO_WINDOW_HOURS = 24
DEFAULT_STORE_TIMEOUT_MS = 5000
DEFAULT_MAX_POOL_SIZE = 20

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500
