import os
from pathlib import Path


# Base project directory (two levels up from this file)
BASE_DIR = Path(__file__).resolve().parent.parent

# Paths
DB_PATH = Path(os.getenv("NAME_TESTER_DB", str(BASE_DIR / "name_tester.db")))

# Telegram bot token
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")

# Public base URL used when building share links
BASE_URL = os.getenv("NAME_TESTER_BASE_URL", "https://name-tester-app.fly.dev")

# Display sampling
COMBINATION_THRESHOLD = int(os.getenv("NAME_TESTER_THRESHOLD", "200"))
DEFAULT_SAMPLE_SIZE = int(os.getenv("NAME_TESTER_SAMPLE_SIZE", "200"))

# Client-local state
STORAGE_KEY = "name-tester-data"

# Shortlinks
SHORTLINK_LENGTH = 16
SHORTLINK_MAX_ATTEMPTS = 5

# Name suggestions (OpenAI-compatible chat completions endpoint)
SUGGESTION_API_URL = os.getenv("SUGGESTION_API_URL", "https://api.openai.com/v1/chat/completions")
SUGGESTION_API_KEY = os.getenv("OPENAI_API_KEY", "")
SUGGESTION_MODEL = os.getenv("SUGGESTION_MODEL", "gpt-4.1-mini")
SUGGESTION_TEMPERATURE = 0.8
SUGGESTION_COUNT = 5
REQUEST_TIMEOUT = 30

# Retry policy for callers of the store
MAX_RETRIES = 3
RETRY_BASE_DELAY = 8.0
RETRY_MAX_DELAY = 15.0

# Name slots
SLOT_FIRST = "first"
SLOT_MIDDLE = "middle"
SLOT_LAST = "last"
NAME_SLOTS = (SLOT_FIRST, SLOT_MIDDLE, SLOT_LAST)

# Display modes
DISPLAY_FULL = "full"
DISPLAY_SHORT = "short"
DISPLAY_BOTH = "both"
