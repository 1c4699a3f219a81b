"""
iTunes Lookup API client.

One request, first result only. The lookup schema is complete and structured,
so whatever it returns is treated as ground truth; merging with the page
scrape happens elsewhere.
"""

from typing import Optional

import requests

from shipscore.config import COUNTRY, LOOKUP_URL, REQUEST_TIMEOUT
from shipscore.models import ApiRecord, to_float, to_int


def fetch_from_api(app_id: str, country: str = COUNTRY) -> Optional[ApiRecord]:
    """
    Look an app up by its numeric App Store id.

    Returns:
        The record tagged "api", or None if the endpoint errors or has no match.
    """
    print(f"Fetching lookup API record for: {app_id}")

    try:
        response = requests.get(
            LOOKUP_URL,
            params={"id": app_id, "country": country},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        print(f"  Lookup API unavailable for {app_id}: {e}")
        return None

    results = data.get("results") if isinstance(data, dict) else None
    if not results or not isinstance(results, list):
        print(f"  Lookup API returned no results for {app_id}")
        return None
    if not isinstance(results[0], dict):
        print(f"  Lookup API returned an unexpected result for {app_id}")
        return None

    return parse_lookup_result(results[0])


def parse_lookup_result(result: dict) -> ApiRecord:
    """Map one iTunes lookup result onto an ApiRecord, coercing bad numbers to 0."""
    return ApiRecord(
        name=result.get("trackName") or "",
        developer=result.get("artistName") or result.get("sellerName") or "",
        icon_url=result.get("artworkUrl512") or result.get("artworkUrl100") or "",
        description=result.get("description") or "",
        price=to_float(result.get("price")),
        formatted_price=result.get("formattedPrice") or "",
        average_rating=to_float(result.get("averageUserRating")),
        rating_count=to_int(result.get("userRatingCount")),
        screenshot_urls=list(result.get("screenshotUrls") or []),
        ipad_screenshot_urls=list(result.get("ipadScreenshotUrls") or []),
        genres=list(result.get("genres") or []),
        primary_genre=result.get("primaryGenreName") or "",
        file_size_bytes=to_int(result.get("fileSizeBytes")),
        current_version_release_date=result.get("currentVersionReleaseDate") or "",
        release_date=result.get("releaseDate") or "",
        version=result.get("version") or "",
        content_rating=result.get("trackContentRating") or "",
        content_advisory_rating=result.get("contentAdvisoryRating") or "",
        advisories=list(result.get("advisories") or []),
        seller_url=result.get("sellerUrl") or None,
        supported_devices=list(result.get("supportedDevices") or []),
        language_codes=list(result.get("languageCodesISO2A") or []),
        minimum_os_version=result.get("minimumOsVersion") or "",
        release_notes=result.get("releaseNotes") or None,
        is_game_center_enabled=bool(result.get("isGameCenterEnabled")),
        store_url=result.get("trackViewUrl") or "",
        source="api",
    )
