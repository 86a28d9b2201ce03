import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

MONGO_CONFIG = {
    "uri": os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
    "database": os.getenv("MONGODB_DATABASE", "Attendance"),
    "max_pool_size": int(os.getenv("MONGODB_MAX_POOL_SIZE", "20")),
    "timeout_ms": int(os.getenv("MONGODB_TIMEOUT_MS", "5000")),
}

CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "300"))
UNDO_WINDOW_HOURS = int(os.getenv("UNDO_WINDOW_HOURS", "24"))

RATE_LIMIT_API = os.getenv("RATE_LIMIT_API", "100 per minute")

LOG_FILE = os.getenv("LOG_FILE", "attendance_register.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

DEBUG = True

# If enabled, app will create the collection indexes on startup (idempotent)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
