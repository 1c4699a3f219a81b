"""
Record merger — combines the page scrape and the lookup API into one record.

The lookup API is structurally trustworthy but leaves out visual and legal
assets; the page has richer visuals but unreliable structured text. So the API
record is the base, and the scrape only overrides the fields listed in
MERGE_RULES, each under its own condition.
"""

import copy
from dataclasses import fields
from typing import Callable, Optional

from shipscore.models import ApiRecord, CanonicalAppRecord, RawExtractedRecord


def _scraped_if_found(api_value, scraped_value):
    """The page wins whenever it found something (screenshots, page-only fields)."""
    return scraped_value if scraped_value else api_value


def _longer_text(api_value, scraped_value):
    """Release notes: the richer (longer) text wins."""
    if scraped_value and (not api_value or len(scraped_value) > len(api_value)):
        return scraped_value
    return api_value


def _fill_missing(api_value, scraped_value):
    """Only used when the API has no value at all."""
    return api_value if api_value else (scraped_value or api_value)


def _either_true(api_value, scraped_value):
    return bool(api_value or scraped_value)


# Fields not listed here keep the API value unconditionally.
MERGE_RULES: dict[str, Callable] = {
    "screenshot_urls": _scraped_if_found,
    "ipad_screenshot_urls": _scraped_if_found,
    "privacy_labels": _scraped_if_found,
    "whats_new": _scraped_if_found,
    "preview_urls": _scraped_if_found,
    "ratings_histogram": _scraped_if_found,
    "release_notes": _longer_text,
    "seller_url": _fill_missing,
    "file_size_bytes": _fill_missing,     # a zero size counts as missing
    "has_in_app_purchases": _either_true,
}

API_FIELDS = [f.name for f in fields(ApiRecord) if f.name != "source"]
SCRAPED_FIELDS = [f.name for f in fields(RawExtractedRecord) if f.name != "source"]


def from_api(api: ApiRecord, app_id: str = "", platform: str = "app_store") -> CanonicalAppRecord:
    """Canonical record straight from the API, tagged "api"."""
    record = CanonicalAppRecord(app_id=app_id, platform=platform, source="api")
    for name in API_FIELDS:
        setattr(record, name, copy.copy(getattr(api, name)))
    return record


def from_scraped(scraped: RawExtractedRecord, app_id: str = "",
                 platform: str = "app_store") -> CanonicalAppRecord:
    """
    Canonical record from the page alone, tagged "scraper".
    Starts from the type defaults and overlays whatever the page found.
    """
    record = CanonicalAppRecord(app_id=app_id, platform=platform, source="scraper")
    for name in SCRAPED_FIELDS:
        value = getattr(scraped, name)
        if value is not None:
            setattr(record, name, copy.copy(value))
    return record


def merge_records(scraped: Optional[RawExtractedRecord], api: Optional[ApiRecord],
                  app_id: str = "", platform: str = "app_store") -> Optional[CanonicalAppRecord]:
    """
    Merge the two partial views of an app.

    Returns:
        None if both sources produced nothing; otherwise a canonical record
        tagged "api", "scraper" or "merged" depending on what was available.
    """
    if scraped is None and api is None:
        return None
    if scraped is None:
        return from_api(api, app_id, platform)
    if api is None:
        return from_scraped(scraped, app_id, platform)

    merged = from_api(api, app_id, platform)
    merged.source = "merged"

    for name, rule in MERGE_RULES.items():
        setattr(merged, name, copy.copy(rule(getattr(merged, name), getattr(scraped, name))))

    return merged
