# calendar_config.py
"""
Reads configuration from environment variables (a .env file is honoured):
  - CALENDAR_API_BASE     base URL of the calendar API (calendars + events)
  - CALENDAR_API_KEY      optional API key sent as ?key=
  - CALENDAR_ID           calendar to show (otherwise the first listed one)
  - CALENDAR_TZ           IANA zone used for UTC timestamps (default: system local)
  - LAYOUT_STRATEGY       "dynamic" (default) or "fixed"
  - SLOT_HEIGHT_PX        pixels per hour slot (default 50)
  - MIN_EVENT_HEIGHT      minimum event box height in px (default 30)
  - COLUMN_GAP            gap between fixed percentage columns (default 4)
  - DAY_COLUMN_WIDTH_PX   width of one day column in px (default 160)
  - CACHE_TTL_SECONDS     event cache lifetime (default 300)
  - LAYOUT_DEBUG=1        log cluster/record details on every layout pass
  - SERVER_PORT           port for server.py (default 8000)
"""
import os

from dotenv import load_dotenv
load_dotenv()

try:
    from zoneinfo import ZoneInfo
except ImportError:
    ZoneInfo = None

# --- Remote source ---------------------------------------------------
CALENDAR_API_BASE = os.environ.get("CALENDAR_API_BASE", "")
CALENDAR_API_KEY = os.environ.get("CALENDAR_API_KEY", "")
CALENDAR_ID = os.environ.get("CALENDAR_ID", "")

# --- Layout ----------------------------------------------------------
LAYOUT_STRATEGY = os.environ.get("LAYOUT_STRATEGY", "dynamic")
SLOT_HEIGHT_PX = int(os.environ.get("SLOT_HEIGHT_PX", "50"))
MIN_EVENT_HEIGHT = int(os.environ.get("MIN_EVENT_HEIGHT", "30"))
COLUMN_GAP = float(os.environ.get("COLUMN_GAP", "4"))
DAY_COLUMN_WIDTH_PX = int(os.environ.get("DAY_COLUMN_WIDTH_PX", "160"))
LAYOUT_DEBUG = os.environ.get("LAYOUT_DEBUG", "") == "1"

# The visible day runs from 05:00 through 04:00 the next morning.
DAY_START_HOUR = 5
HOURS_PER_VIEW = 24

# --- Cache / server --------------------------------------------------
CACHE_TTL_SECONDS = int(os.environ.get("CACHE_TTL_SECONDS", "300"))
SERVER_PORT = int(os.environ.get("SERVER_PORT", "8000"))

CALENDAR_TZ = os.environ.get("CALENDAR_TZ", "")
TZ = None
if CALENDAR_TZ and ZoneInfo is not None:
    try:
        TZ = ZoneInfo(CALENDAR_TZ)
    except (KeyError, ValueError):
        print(f"[WARN] unknown CALENDAR_TZ {CALENDAR_TZ!r}: falling back to system local time")
        TZ = None


def px_per_minute():
    return SLOT_HEIGHT_PX / 60.0
