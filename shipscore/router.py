"""
Platform router — works out which store a URL points at and fetches the app.

App Store: page scrape and lookup API run concurrently, then get merged.
Google Play: one page fetch, no merge.
"""

import re
from concurrent.futures import Future, ThreadPoolExecutor
from urllib.parse import parse_qs, urlparse

from shipscore import lookup, scraper
from shipscore.config import COUNTRY
from shipscore.merger import merge_records
from shipscore.models import CanonicalAppRecord

APP_STORE = "app_store"
GOOGLE_PLAY = "google_play"

APP_STORE_ID_RE = re.compile(r"/id(\d+)")
BARE_ID_RE = re.compile(r"^\d+$")
PLAY_PACKAGE_RE = re.compile(r"^[a-zA-Z0-9._]+$")


class ShipScoreError(Exception):
    """Base error; `message` is safe to show to the user."""
    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidUrlError(ShipScoreError):
    status = 400


class AppNotFoundError(ShipScoreError):
    status = 404


class UpstreamError(ShipScoreError):
    status = 502


def route_url(url: str) -> tuple[str, str]:
    """
    Detect the store and pull out its identifier.

    Returns:
        (platform, identifier): ("app_store", "389801252") or
        ("google_play", "com.spotify.music").

    Raises:
        InvalidUrlError: for anything that is neither store nor a bare numeric id.
    """
    if not url or not isinstance(url, str):
        raise InvalidUrlError("Please provide an App Store or Google Play URL")

    url = url.strip()

    if BARE_ID_RE.match(url):
        return APP_STORE, url

    if "play.google.com" in url:
        package = parse_qs(urlparse(url).query).get("id", [""])[0]
        if not package or not PLAY_PACKAGE_RE.match(package):
            raise InvalidUrlError(
                "Could not extract the package name. Use format: "
                "https://play.google.com/store/apps/details?id=com.example.app"
            )
        return GOOGLE_PLAY, package

    if "apps.apple.com" in url or "itunes.apple.com" in url:
        match = APP_STORE_ID_RE.search(urlparse(url).path)
        if not match:
            raise InvalidUrlError(
                "Could not extract app ID from URL. Use format: "
                "https://apps.apple.com/us/app/name/id123456789"
            )
        return APP_STORE, match.group(1)

    raise InvalidUrlError("Only Apple App Store and Google Play URLs are supported")


def _result_or_none(future: Future, source: str):
    """A source that blew up counts as a source that found nothing."""
    try:
        return future.result()
    except Exception as e:
        print(f"  {source} failed unexpectedly: {e!r}")
        return None


def fetch_app_store_record(app_id: str, country: str = COUNTRY) -> CanonicalAppRecord:
    """
    Scrape the product page and hit the lookup API at the same time,
    then merge whatever came back. Either source failing is fine.

    Raises:
        AppNotFoundError: only when both sources came back empty.
    """
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="AppStoreFetch") as executor:
        page_future = executor.submit(scraper.scrape_app_store, app_id, country)
        api_future = executor.submit(lookup.fetch_from_api, app_id, country)
        scraped = _result_or_none(page_future, "Store page scrape")
        api = _result_or_none(api_future, "Lookup API")

    record = merge_records(scraped, api, app_id=app_id, platform=APP_STORE)
    if record is None:
        raise AppNotFoundError("App not found. Check the URL and try again.")

    print(f"App found: {record.name} (source: {record.source})")
    return record


def fetch_google_play_record(package: str) -> CanonicalAppRecord:
    """
    Raises:
        UpstreamError: the listing could not be fetched.
    """
    record = scraper.fetch_play_store_data(package)
    if record is None:
        raise UpstreamError("Failed to fetch app data from Google Play")
    print(f"App found: {record.name} (source: {record.source})")
    return record


def fetch_record(url: str) -> CanonicalAppRecord:
    """Route a user-supplied URL and fetch its canonical record."""
    platform, identifier = route_url(url)
    if platform == GOOGLE_PLAY:
        return fetch_google_play_record(identifier)
    return fetch_app_store_record(identifier)
