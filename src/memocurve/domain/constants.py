"""Centralized constants for MemoCurve.

The review curve, grace window and storage keys live here so every layer
imports from a single source of truth.
"""

# ---------- Ebbinghaus curve ----------
# Minutes after creation: 30m, 1h, 12h, 1d, 2d, 4d, 7d, 15d, 30d, 3m, 6m, 1y
INTERVAL_MINUTES = (30, 60, 720, 1440, 2880, 5760, 10080, 21600, 43200, 129600, 259200, 525600)
STAGE_COUNT = len(INTERVAL_MINUTES)
MS_PER_MINUTE = 60_000

STAGE_LABELS = (
    "Short-term consolidation (30m)",
    "Short-term consolidation (1h)",
    "Short-term consolidation (12h)",
    "Mid-term formation (1d)",
    "Mid-term formation (2d)",
    "Mid-term enhancement (4d)",
    "Long-term formation (7d)",
    "Long-term enhancement (15d)",
    "Long-term consolidation (30d)",
    "Long-term deepening (3m)",
    "Long-term solidification (6m)",
    "Long-term permanence (1y)",
)
UNKNOWN_STAGE_LABEL = "Unknown Stage"

# ---------- Review session ----------
GRACE_MS = 10 * MS_PER_MINUTE
TICK_INTERVAL = 1.0  # seconds
DEFAULT_REVIEW_DURATION_TRIGGER = 10  # seconds
MIN_REVIEW_DURATION_TRIGGER = 1
MAX_REVIEW_DURATION_TRIGGER = 60
AI_QUESTION_PLACEHOLDER = "Generating question..."
FALLBACK_QUESTION = 'What does "{content}" mean?'

# ---------- Manual progress editor ----------
ORDER_VIOLATION_MESSAGE = (
    "Please complete reviews in order, or uncheck only the most recent review."
)

# ---------- Persistence ----------
CARDS_KEY = "memocurve_data"
CONFIG_KEY = "memocurve_config"

# ---------- Reminders ----------
REMINDER_POLL_INTERVAL = 60.0  # seconds
PERMISSION_DENIED_MESSAGE = (
    "Notifications are blocked. Enable them in your system settings to receive review reminders."
)

# ---------- Import / Export ----------
EXPORT_COLUMNS = [
    "Content",
    "Meaning",
    "Example",
    "RecordedTime",
    "ReviewCount",
    "ReviewDateList",
    "CompletedReviewDates",
    "NextScheduledReview",
]
EXPORT_SHEET_TITLE = "Review Data"
EXPORT_FILE_PREFIX = "Ebbinghaus_Review_Data_"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
SCHEDULE_FORMAT = "%Y-%m-%d %H:%M"
