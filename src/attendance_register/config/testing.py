import os

SECRET_KEY = "test-secret"

MONGO_CONFIG = {
    "uri": os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
    "database": os.getenv("MONGODB_DATABASE", "attendance_test"),
    "max_pool_size": 5,
    "timeout_ms": 2000,
}

CACHE_TTL_SECONDS = 300
UNDO_WINDOW_HOURS = 24

RATE_LIMIT_API = "1000 per minute"

LOG_FILE = None
LOG_LEVEL = "WARNING"

DEBUG = False
TESTING = True

AUTO_INIT_DB = False
