"""Centralized constants for the studydeck application.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Review Model ----------
INITIAL_EASE = 2.5
MIN_EASE = 1.3
MAX_EASE = 3.0
EASE_BONUS = 0.1  # applied on a correct answer
EASE_PENALTY = 0.2  # applied on an incorrect answer

FIRST_INTERVAL_DAYS = 1.0
SECOND_INTERVAL_DAYS = 3.0
MAX_INTERVAL_DAYS = 180.0
RELAPSE_INTERVAL_DAYS = 0.007  # ~10 minutes

# ---------- Session Selector ----------
DEFAULT_SESSION_LIMIT = 10
DUE_SHARE = 0.7
NEW_SHARE = 0.2

# ---------- Persistence ----------
MAX_STATE_WRITE_ATTEMPTS = 3

# ---------- Question Generation ----------
GEMINI_DEFAULT_MODEL = "gemini-2.0-flash"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
REQUEST_TIMEOUT = 60.0

QUESTION_TYPES = ("short", "explanation", "extra")
DIFFICULTIES = ("easy", "medium", "hard")
DEFAULT_QUESTION_TYPE = "short"
DEFAULT_DIFFICULTY = "medium"

# ---------- Uploads ----------
DEFAULT_UPLOAD_EXT = ".png"
PUBLIC_UPLOADS_PREFIX = "/api/uploads"
UPLOAD_CACHE_CONTROL = "public, max-age=31536000"

CONTENT_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".pdf": "application/pdf",
}
