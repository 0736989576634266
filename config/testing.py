import os

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

REMOTE_BACKEND = os.getenv("REMOTE_BACKEND", "mysql")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "gym_test_db"),
}

SHEETS_API_URL = os.getenv("SHEETS_API_URL", "")
SHEETS_API_KEY = None
REMOTE_TIMEOUT_SECONDS = 2.0

CACHE_PATH = os.getenv("CACHE_PATH", "instance/gym_cache_test.sqlite3")
# Tests drive sync explicitly
SYNC_INTERVAL_SECONDS = 0

QR_MAX_AGE_DAYS = 365
ALLOW_OFFLINE_LOGIN = True
ALLOW_OFFLINE_REGISTRATION = False

GYM_NAME = "DADA GYM"

AUTO_INIT_DB = False
AUTO_SEED_DB = False
