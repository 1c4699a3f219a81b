"""
Configuration loader.
Reads settings from .env file and makes them available to the rest of the app.

Scoring constants live here too, so the weights and bucket thresholds can be
revisited without touching the scoring algorithm.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Network settings
COUNTRY = os.getenv("SHIPSCORE_COUNTRY", "us")
LANGUAGE = os.getenv("SHIPSCORE_LANGUAGE", "en")
REQUEST_TIMEOUT = float(os.getenv("SHIPSCORE_REQUEST_TIMEOUT", "15"))
USER_AGENT = os.getenv(
    "SHIPSCORE_USER_AGENT",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

APP_STORE_PAGE_URL = "https://apps.apple.com/{country}/app/id{app_id}"
LOOKUP_URL = "https://itunes.apple.com/lookup"
PLAY_STORE_URL = "https://play.google.com/store/apps/details?id={package}"
PLAY_DEVELOPER_URL = "https://play.google.com/store/apps/developer?id={developer}"

# Gallery database: one SQLite file holds every scanned app
DATABASE_PATH = os.getenv(
    "SHIPSCORE_DATABASE_PATH",
    os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "gallery.db"),
)
SITE_URL = os.getenv("SHIPSCORE_SITE_URL", "https://shipscore.app")

# ============================================================
# Scoring constants
# ============================================================

# Importance of each dimension in the overall score. Sums to 1.0.
DIMENSION_WEIGHTS = {
    "discoverability": 0.18,
    "screenshots": 0.18,
    "reviews": 0.14,
    "update_cadence": 0.12,
    "pricing": 0.08,
    "accessibility": 0.08,
    "category_standing": 0.08,
    "identity": 0.06,
    "privacy": 0.04,
    "legal": 0.04,
}

# (inclusive lower bound, grade), checked top to bottom
GRADE_THRESHOLDS = [
    (92, "A+"),
    (85, "A"),
    (75, "B"),
    (65, "C"),
    (55, "D"),
]
FALLBACK_GRADE = "F"

TOP_IMPROVEMENTS = 3
DIMENSION_MAX_SCORE = 10

# Discoverability
TITLE_LENGTH_RANGE = (10, 30)
DESCRIPTION_LONG = 500
DESCRIPTION_MEDIUM = 200

# Screenshots
PHONE_SCREENSHOTS_FULL = 8
PHONE_SCREENSHOTS_GOOD = 5
PHONE_SCREENSHOTS_MIN = 3
TABLET_SCREENSHOTS_FULL = 3
SCREENSHOT_VARIETY_BONUS = 10

# Pricing
LOW_PRICE_CEILING = 4.99

# Reviews and category standing
RATING_EXCELLENT = 4.5
RATING_GOOD = 4.0
RATING_FAIR = 3.5
REVIEW_COUNT_BUCKETS = [(10000, 5), (1000, 4), (100, 2), (1, 1)]
RANKING_COUNT_BUCKETS = [(50000, 5), (10000, 4), (1000, 3), (100, 2), (1, 1)]

# Update cadence (days since the current version shipped)
UPDATE_AGE_BUCKETS = [(30, 6), (90, 4), (180, 2)]
RELEASE_NOTES_DETAILED = 50
MATURE_MAJOR_VERSION = 3

# Accessibility
LANGUAGE_BUCKETS = [(10, 4), (5, 3), (2, 2), (1, 1)]
DEVICE_BUCKETS = [(20, 3), (10, 2), (1, 1)]
CONTENT_RATING_POINTS = {"4+": 3, "Everyone": 3, "9+": 2, "Everyone 10+": 2}

# Privacy
PRIVACY_DEFAULT_SCORE = 5
PRIVACY_SENSITIVE_GENRES = ["Health & Fitness", "Finance", "Medical", "Social Networking"]
PRIVACY_NOT_COLLECTED_LABEL = "Data Not Collected"

# Identity
ICON_HIGH_RES_TOKENS = ["512x512", "1024x1024", "=s512", "=w512"]

# Google Play
MAX_PLAY_SCREENSHOTS = 20
