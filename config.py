"""Runtime configuration and game constants for the Wordle Golf bot."""

import os
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()
BOT_TOKEN = os.getenv("BOT_TOKEN")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# storage
DB_PATH = os.getenv("DB_PATH", "wordle_golf.db")
DB_TIMEOUT = float(os.getenv("DB_TIMEOUT", "10"))

# scheduler
TZ = ZoneInfo(os.getenv("TZ", "America/New_York"))
DAILY_TICK_HOUR = int(os.getenv("DAILY_TICK_HOUR", "9"))
DAILY_TICK_MINUTE = int(os.getenv("DAILY_TICK_MINUTE", "0"))

# how long a /wordle setup conversation may sit idle, in seconds
CONVERSATION_TIMEOUT = float(os.getenv("CONVERSATION_TIMEOUT", "600"))

# puzzle metadata service, keyed by the Eastern calendar date
PUZZLE_TZ = ZoneInfo("America/New_York")
PUZZLE_API_BASE = os.getenv("PUZZLE_API_BASE", "https://www.nytimes.com/svc/wordle/v2")
PUZZLE_API_TIMEOUT = float(os.getenv("PUZZLE_API_TIMEOUT", "15"))
PUZZLE_API_RETRIES = int(os.getenv("PUZZLE_API_RETRIES", "3"))
PUZZLE_API_BACKOFF = float(os.getenv("PUZZLE_API_BACKOFF", "1.0"))

# game rules
MAX_GUESSES = 6
DNF_LABEL = "X"
DNF_VALUE = 6.5
MISSED_VALUE = 7
MULLIGAN_VALUE = 0
ALL_CORRECT = "🟩🟩🟩🟩🟩"
