"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MIN_IDENTIFIER_LENGTH = 20
IDENTIFIER_KEYS = ("uid", "userId", "id")
IDENTIFIER_PREFIXES = ("user", "uid", "id")
DEFAULT_BADGE_PREFIX = "uid"
COMPLETION_LOG_NOTE = "Completed all required events"
