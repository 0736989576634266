import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# "mysql" or "sheets"
REMOTE_BACKEND = os.getenv("REMOTE_BACKEND", "mysql")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "gym_db"),
}

SHEETS_API_URL = os.getenv("SHEETS_API_URL", "")
SHEETS_API_KEY = os.getenv("SHEETS_API_KEY") or None
REMOTE_TIMEOUT_SECONDS = float(os.getenv("REMOTE_TIMEOUT_SECONDS", "10"))

CACHE_PATH = os.getenv("CACHE_PATH", "instance/gym_cache.sqlite3")
SYNC_INTERVAL_SECONDS = int(os.getenv("SYNC_INTERVAL_SECONDS", "300"))

# 0 disables the QR age check
QR_MAX_AGE_DAYS = int(os.getenv("QR_MAX_AGE_DAYS", "365"))
# Cached credentials can be stale; turn off to require the remote store for login
ALLOW_OFFLINE_LOGIN = bool(int(os.getenv("ALLOW_OFFLINE_LOGIN", "1")))
ALLOW_OFFLINE_REGISTRATION = bool(int(os.getenv("ALLOW_OFFLINE_REGISTRATION", "0")))

GYM_NAME = os.getenv("GYM_NAME", "DADA GYM")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also create the demo admin/member accounts on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
