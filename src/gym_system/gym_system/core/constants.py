"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EXPIRING_SOON_DAYS = 7
DEFAULT_REMOTE_TIMEOUT_SECONDS = 10
DEFAULT_SYNC_INTERVAL_SECONDS = 300
DEFAULT_QR_MAX_AGE_DAYS = 365
DEFAULT_GYM_NAME = "DADA GYM"

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"

# Cache keys
CACHE_KEY_USERS = "users"
CACHE_KEY_SUBSCRIPTIONS = "subscriptions"
CACHE_KEY_ATTENDANCE = "attendance"
CACHE_KEY_PENDING_USERS = "pending_users"
CACHE_KEY_SIGNED_IN_USERS = "signedInUsers"

GYM_CHECKIN_QR_TYPE = "gym_checkin"
