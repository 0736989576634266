import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

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

QR_MAX_AGE_DAYS = int(os.getenv("QR_MAX_AGE_DAYS", "365"))
ALLOW_OFFLINE_LOGIN = bool(int(os.getenv("ALLOW_OFFLINE_LOGIN", "0")))
ALLOW_OFFLINE_REGISTRATION = bool(int(os.getenv("ALLOW_OFFLINE_REGISTRATION", "0")))

GYM_NAME = os.getenv("GYM_NAME", "DADA GYM")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
