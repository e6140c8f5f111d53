import os

# Base directory
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Paths
STATIC_DIR = os.path.join(BASE_DIR, "static")
LOG_FILE = os.path.join(BASE_DIR, "launch.log")
DATA_DIR = os.getenv("CBT_DATA_DIR", os.path.join(BASE_DIR, "data"))

# Server
DEFAULT_HOST = os.getenv("HOST", "0.0.0.0")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))
SESSION_TTL_SECONDS = 3600  # 1 hour

# Exam backend
BACKEND_URL = os.getenv("CBT_BACKEND_URL", "http://127.0.0.1:9000/api")
BACKEND_TIMEOUT_SECONDS = float(os.getenv("CBT_BACKEND_TIMEOUT", "10"))

# Timing rules
DEFAULT_EXAM_DURATION_MINUTES = 180
RESTRICTED_UNLOCK_MINUTES = 90      # restricted subjects open this long before end / after start
EARLY_ENTRY_GRACE_MINUTES = 3       # scheduled exams may be entered this early
SCHEDULED_GRACE_MINUTES = 30        # "continue" still allowed this long after end_time
MIN_PLAUSIBLE_MINUTES = 30          # shorter configured durations get a warning
MAX_PLAUSIBLE_MINUTES = 300

# Session loop
TICK_INTERVAL_SECONDS = 1.0
WARNING_THRESHOLDS = (300, 60, 30, 10)
RECONNECT_DEBOUNCE_SECONDS = 2.0
UNLOCK_CACHE_SIZE = 64
