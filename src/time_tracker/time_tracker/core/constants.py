"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

TOKEN_TTL_HOURS = 24
TOKEN_SALT = "time-tracker.session-token"
DEFAULT_HISTORY_LIMIT = 50
DEFAULT_RECENT_ACTIVITY_LIMIT = 100
MAX_QUERY_LIMIT = 500
MIN_PASSWORD_LENGTH = 6
