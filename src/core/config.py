"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(
    os.environ.get("RECORDS_DB_PATH", str(PROJECT_ROOT / "data" / "db" / "tour-records.db"))
)
OUTPUT_DIR = PROJECT_ROOT / "output"

# =============================================================================
# MS GRAPH SOURCE (from environment)
# =============================================================================

GRAPH_TENANT_ID = os.environ.get("MICROSOFT_GRAPH_TENANT_ID", "")
GRAPH_APP_ID = os.environ.get("MICROSOFT_GRAPH_APP_ID", "")
GRAPH_CLIENT_SECRET = os.environ.get("MICROSOFT_GRAPH_CLIENT_SECRET", "")

# Mailbox whose calendar and inbox hold the historical records
GRAPH_MAILBOX = os.environ.get("GRAPH_MAILBOX", "")
# Empty means the mailbox's default calendar
GRAPH_CALENDAR_ID = os.environ.get("GRAPH_CALENDAR_ID", "")
# Name of the persistent token cache shared across runs (empty disables it)
GRAPH_TOKEN_CACHE_NAME = os.environ.get("GRAPH_TOKEN_CACHE_NAME", "")

# Time zone Graph renders event times in (Windows zone name)
CALENDAR_TIME_ZONE = os.environ.get("CALENDAR_TIME_ZONE", "Pacific Standard Time")
CALENDAR_PAGE_SIZE = 100
MAIL_PAGE_SIZE = 100
DEFAULT_EMAIL_LIMIT = 500
DEFAULT_LOOKBACK_MONTHS = 18

# =============================================================================
# RELEVANCE FILTERS
# =============================================================================

# Attendees on these domains are staff, never customers
COMPANY_EMAIL_DOMAINS = ("nwtouring.com", "wallawalla.travel")

TOUR_KEYWORDS = (
    "tour",
    "wine",
    "party",
    "guests",
    "pax",
    "pickup",
    "winery",
    "tasting",
    "group",
)
INTERNAL_KEYWORDS = ("meeting", "call", "interview", "internal", "staff", "office")

EMAIL_SUBJECT_KEYWORDS = ("tour", "booking", "confirmation", "reservation", "winery")
EXCLUDED_EMAIL_LABELS = {"social", "promotions"}

# =============================================================================
# PARSING DEFAULTS
# =============================================================================

DEFAULT_PARTY_SIZE = 2
MIN_PARTY_SIZE = 1
MAX_PARTY_SIZE = 50

# All-day events carry no time-of-day signal
ALL_DAY_START_TIME = "10:00"
ALL_DAY_DURATION_HOURS = 6.0

MIN_DURATION_HOURS = 1
MAX_DURATION_HOURS = 24

# Walla Walla area venues recognised by substring
KNOWN_VENUES = [
    "L'Ecole No 41",
    "Pepper Bridge",
    "Leonetti Cellar",
    "Woodward Canyon",
    "Seven Hills",
    "Dunham Cellars",
    "Amavi Cellars",
    "Basel Cellars",
    "Saviah Cellars",
    "Long Shadows",
    "Sleight of Hand",
    "Va Piano",
    "Reininger",
    "Gramercy Cellars",
    "Beresan",
    "Foundry Vineyards",
    "Otis Kenyon",
    "Revelry Vintners",
    "Rotie Cellars",
    "Balboa Winery",
    "Charles Smith",
    "K Vintners",
    "Northstar",
    "Canoe Ridge",
    "Waterbrook",
    "Walla Walla Vintners",
]

# =============================================================================
# BOOKING STORE CONVENTIONS
# =============================================================================

# Imported bookings get their own number sequence, e.g. HIST-00042
IMPORT_BOOKING_PREFIX = "HIST"
BOOKING_NUMBER_PREFIXES = ("WWT", "HIST", "NWT")
IMPORT_SOURCE_TAG = "calendar_import"
IMPORTED_STATUS = "completed"

# =============================================================================
# MATCHING
# =============================================================================

MATCH_WINDOW_DAYS = int(os.environ.get("MATCH_WINDOW_DAYS", "30"))

# =============================================================================
# REPORT CONFIGURATION
# =============================================================================

SUMMARY_SAMPLE_LIMIT = 10
GAP_SAMPLE_LIMIT = 20

GAP_SHEET_HEADERS = [
    "Booking",
    "Date",
    "Customer",
    "Driver",
    "Vehicle",
    "Time Card",
    "Pre-Trip",
    "Post-Trip",
    "Gaps",
]

# =============================================================================
# API CONFIGURATION
# =============================================================================

RECORDS_API_KEY = os.environ.get("RECORDS_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
API_VERSION = "1.0.0"
