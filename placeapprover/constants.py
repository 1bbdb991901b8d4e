"""Thresholds and operational limits for the approval pipeline."""

# Clear match: both conditions must hold
CLEAR_MATCH_NAME_THRESHOLD = 85.0  # name similarity % (strictly greater)
CLEAR_MATCH_DISTANCE_METERS = 100  # strictly less

# Clear mismatch: either condition triggers it
CLEAR_MISMATCH_NAME_THRESHOLD = 50.0  # strictly less
CLEAR_MISMATCH_DISTANCE_METERS = 500  # strictly greater

# Extraction retry
MAX_RETRY_ATTEMPTS = 3
RETRY_BASE_DELAY_SECONDS = 2.0
SCRAPER_TIMEOUT_SECONDS = 30

# Run limits
MAX_SUBMISSIONS_PER_RUN = 10
SUBMISSION_DELAY_SECONDS = 1.0
BATCH_SIZE = 20
MAX_BATCHES = 5
BATCH_PAUSE_SECONDS = 2.0

# Duplicate detection
DUPLICATE_CHECK_RADIUS_METERS = 200
DUPLICATE_NAME_THRESHOLD = 80.0
DUPLICATE_CANDIDATE_LIMIT = 20

# Text completion
DEFAULT_MODEL = "claude-3-haiku-20240307"
DEFAULT_MAX_TOKENS = 500

EARTH_RADIUS_METERS = 6_371_000

# Submission statuses
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"

# Classifications
CLEAR_MATCH = "clear_match"
CLEAR_MISMATCH = "clear_mismatch"
BORDERLINE = "borderline"

# Processing actions
ACTION_APPROVED = "approved"
ACTION_REJECTED = "rejected"
ACTION_FLAGGED = "flagged"
ACTION_SKIPPED = "skipped"
ACTION_ERROR = "error"
