"""
App records — what each source hands over, and what the scorer and gallery keep.
Page scrape and lookup API each get their own shape; the merger turns them into one.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional


@dataclass
class RawExtractedRecord:
    """
    Whatever the storefront page gave us. Every field is optional:
    None means "not found on the page", never "empty".
    """
    name: Optional[str] = None
    developer: Optional[str] = None
    icon_url: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    formatted_price: Optional[str] = None
    average_rating: Optional[float] = None
    rating_count: Optional[int] = None
    screenshot_urls: Optional[list[str]] = None
    ipad_screenshot_urls: Optional[list[str]] = None
    genres: Optional[list[str]] = None
    primary_genre: Optional[str] = None
    file_size_bytes: Optional[int] = None
    current_version_release_date: Optional[str] = None
    release_date: Optional[str] = None
    version: Optional[str] = None
    content_rating: Optional[str] = None
    content_advisory_rating: Optional[str] = None
    seller_url: Optional[str] = None
    minimum_os_version: Optional[str] = None
    release_notes: Optional[str] = None
    has_in_app_purchases: Optional[bool] = None
    store_url: Optional[str] = None
    # Page-only fields (the lookup API has no equivalent)
    privacy_labels: Optional[list[str]] = None
    whats_new: Optional[str] = None
    preview_urls: Optional[list[str]] = None
    ratings_histogram: Optional[dict[str, int]] = None
    source: str = "scraper"


@dataclass
class ApiRecord:
    """A complete record from the iTunes Lookup API."""
    name: str = ""
    developer: str = ""
    icon_url: str = ""
    description: str = ""
    price: float = 0.0
    formatted_price: str = ""
    average_rating: float = 0.0
    rating_count: int = 0
    screenshot_urls: list[str] = field(default_factory=list)
    ipad_screenshot_urls: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    primary_genre: str = ""
    file_size_bytes: int = 0
    current_version_release_date: str = ""
    release_date: str = ""
    version: str = ""
    content_rating: str = ""
    content_advisory_rating: str = ""
    advisories: list[str] = field(default_factory=list)
    seller_url: Optional[str] = None
    supported_devices: list[str] = field(default_factory=list)
    language_codes: list[str] = field(default_factory=list)
    minimum_os_version: str = ""
    release_notes: Optional[str] = None
    has_in_app_purchases: bool = False
    is_game_center_enabled: bool = False
    store_url: str = ""
    source: str = "api"


@dataclass
class CanonicalAppRecord:
    """
    The single merged record the scorer consumes.
    Every field the scorer reads has a default, so scoring only ever
    branches on values, never on missing fields.
    """
    app_id: str = ""
    platform: str = "app_store"     # "app_store" or "google_play"
    name: str = ""
    developer: str = ""
    icon_url: str = ""
    description: str = ""
    price: float = 0.0
    formatted_price: str = ""
    average_rating: float = 0.0
    rating_count: int = 0
    screenshot_urls: list[str] = field(default_factory=list)
    ipad_screenshot_urls: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    primary_genre: str = ""
    file_size_bytes: int = 0
    current_version_release_date: str = ""
    release_date: str = ""
    version: str = ""
    content_rating: str = ""
    content_advisory_rating: str = ""
    advisories: list[str] = field(default_factory=list)
    seller_url: Optional[str] = None
    supported_devices: list[str] = field(default_factory=list)
    language_codes: list[str] = field(default_factory=list)
    minimum_os_version: str = ""
    release_notes: Optional[str] = None
    has_in_app_purchases: bool = False
    is_game_center_enabled: bool = False
    store_url: str = ""
    privacy_labels: list[str] = field(default_factory=list)
    whats_new: str = ""
    preview_urls: list[str] = field(default_factory=list)
    ratings_histogram: dict[str, int] = field(default_factory=dict)
    source: str = "scraper"         # "scraper", "api" or "merged"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DimensionScore:
    """One scoring axis, e.g. reviews or pricing."""
    name: str                   # symbolic key, e.g. "reviews"
    label: str                  # display name, e.g. "Reviews"
    score: float
    max_score: float
    details: str = ""
    tip: str = ""


@dataclass
class ScoreReport:
    """Everything the scorer produces for one app."""
    app_name: str
    app_icon: str
    developer: str
    overall_score: int
    grade: str
    dimensions: list[DimensionScore]
    top_improvements: list[str]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GalleryEntry:
    """A scanned app as stored in the gallery."""
    app_id: str
    app_name: str
    app_icon: str
    developer: str
    overall_score: int
    grade: str
    dimensions: list[dict]
    top_improvements: list[str]
    scanned_at: str
    slug: str
    store_url: str
    platform: str = "app_store"
    average_rating: Optional[float] = None
    rating_count: Optional[int] = None
    primary_genre: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def to_float(value) -> float:
    """Coerce a loosely-typed number to float; anything malformed becomes 0."""
    try:
        number = float(str(value).replace(",", ""))
    except (TypeError, ValueError):
        return 0.0
    return number if number == number else 0.0     # NaN -> 0


def to_int(value) -> int:
    """Coerce a loosely-typed number to int; anything malformed becomes 0."""
    number = to_float(value)
    return int(number) if abs(number) != float("inf") else 0
