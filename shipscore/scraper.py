"""
Store page scraper — pulls the data the iTunes Lookup API misses.

App Store: fetches the product page and reads screenshots, privacy labels,
the ratings bar graph, What's New and app previews out of the HTML + JSON-LD.
Google Play: a single page fetch through google-play-scraper, shaped into the
same record the scorer consumes.
"""

import json
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup
from dateutil import parser as date_parser
from google_play_scraper import app as gplay_app
from google_play_scraper.exceptions import GooglePlayScraperException

from shipscore.config import (
    APP_STORE_PAGE_URL,
    COUNTRY,
    LANGUAGE,
    MAX_PLAY_SCREENSHOTS,
    PLAY_DEVELOPER_URL,
    PLAY_STORE_URL,
    REQUEST_TIMEOUT,
    USER_AGENT,
)
from shipscore.models import CanonicalAppRecord, RawExtractedRecord, to_float, to_int

# App Store image URL anatomy:
#   https://is1-ssl.mzstatic.com/image/thumb/PurpleSource221/v4/<aa>/<bb>/<cc>/<uuid>/FILENAME.png/300x650bb-60.jpg
# The uuid + filename is the image; everything after it is a size/format variant.
MZSTATIC_URL_RE = re.compile(r"https://is\d+-ssl\.mzstatic\.com/image/thumb/[^\"'\s><]+")
IMAGE_IDENTITY_RE = re.compile(
    r"/v4/([a-f0-9]{2}/[a-f0-9]{2}/[a-f0-9]{2}/[a-f0-9-]+/[^/]+\.[a-z]+)", re.IGNORECASE
)
TABLET_HINT_RE = re.compile(r"ipad|_pad", re.IGNORECASE)
TABLET_RESOLUTIONS = (
    "2048x2732", "2732x2048",
    "2064x2752", "2752x2064",
    "1668x2388", "2388x1668",
    "1668x2224", "2224x1668",
    "1640x2360", "2360x1640",
    "1536x2048", "2048x1536",
)
EXCLUDED_IMAGE_MARKERS = ("Placeholder", "AppIcon", "{w}")

FILE_SIZE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(KB|MB|GB)\b", re.IGNORECASE)
SIZE_MULTIPLIERS = {"KB": 1024, "MB": 1024 ** 2, "GB": 1024 ** 3}
CONTENT_RATING_RES = [re.compile(r"Rated\s+(\d+\+)", re.IGNORECASE), re.compile(r"\b(\d{1,2}\+)")]
WHATS_NEW_RE = re.compile(r"What[’'`]s New", re.IGNORECASE)
RELEASE_DATE_KEY_RE = re.compile(r'"currentVersionReleaseDate"\s*:\s*"([^"]+)"')
TEXT_DATE_RE = re.compile(r"\b([A-Z][a-z]{2}\s+\d{1,2},\s+\d{4})\b")
STAR_ROW_RE = re.compile(r"we-star-bar-graph__stars--(\d)")
BAR_WIDTH_RE = re.compile(r"width:\s*(\d+(?:\.\d+)?)%")


def _page_headers() -> dict:
    """Browser-like headers so the storefront serves the server-rendered page."""
    return {
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/xhtml+xml",
        "Accept-Language": "en-US,en;q=0.9",
    }


def scrape_app_store(app_id: str, country: str = COUNTRY) -> Optional[RawExtractedRecord]:
    """
    Fetch and parse the App Store product page for an app.

    Returns:
        A partial record, or None when the page could not be fetched
        (non-2xx status or network error). Fetch errors never propagate.
    """
    url = APP_STORE_PAGE_URL.format(country=country, app_id=app_id)
    print(f"Fetching App Store page for: {app_id}")

    try:
        response = requests.get(url, headers=_page_headers(), timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        print(f"  App Store page unavailable for {app_id}: {e}")
        return None

    return parse_app_store_page(response.text, app_id, country)


def parse_app_store_page(html: str, app_id: str, country: str = COUNTRY) -> RawExtractedRecord:
    """
    Turn raw product page HTML into a partial record.

    Each field is extracted independently: one extractor failing leaves
    the others untouched.
    """
    record = RawExtractedRecord(store_url=APP_STORE_PAGE_URL.format(country=country, app_id=app_id))
    soup = BeautifulSoup(html, "lxml")

    for field_name, extract in FIELD_EXTRACTORS:
        try:
            found = extract(soup, html)
        except (AttributeError, TypeError, ValueError, KeyError) as e:
            print(f"  Could not extract {field_name}: {e}")
            continue
        for key, value in found.items():
            setattr(record, key, value)

    return record


# ============================================================
# Field extractors: (soup, html) -> dict of record fields found
# ============================================================

def _json_ld_blocks(soup: BeautifulSoup) -> list[dict]:
    blocks = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or "")
        except json.JSONDecodeError as e:
            print(f"  Skipping unparseable JSON-LD block: {e}")
            continue
        candidates = data if isinstance(data, list) else [data]
        for item in candidates:
            if not isinstance(item, dict):
                continue
            blocks.append(item)
            blocks.extend(g for g in item.get("@graph", []) if isinstance(g, dict))
    return blocks


def _ld_name(ld: dict) -> dict:
    return {"name": ld["name"]} if isinstance(ld.get("name"), str) and ld["name"] else {}


def _ld_developer(ld: dict) -> dict:
    author = ld.get("author")
    if isinstance(author, list):
        author = author[0] if author else None
    if isinstance(author, dict) and isinstance(author.get("name"), str) and author["name"]:
        return {"developer": author["name"]}
    return {}


def _ld_icon(ld: dict) -> dict:
    image = ld.get("image")
    if isinstance(image, dict):
        image = image.get("url")
    return {"icon_url": image} if isinstance(image, str) and image else {}


def _ld_text(key: str, field_name: str):
    def read(ld: dict) -> dict:
        value = ld.get(key)
        return {field_name: value} if isinstance(value, str) and value else {}
    return read


def _ld_category(ld: dict) -> dict:
    category = ld.get("applicationCategory")
    if isinstance(category, list):
        category = next((c for c in category if isinstance(c, str)), None)
    if not isinstance(category, str) or not category:
        return {}
    genre = category.replace("GameCategory", "Games").replace("Category", "")
    return {"primary_genre": genre, "genres": [genre]}


def _ld_rating(ld: dict) -> dict:
    rating = ld.get("aggregateRating")
    if not isinstance(rating, dict):
        return {}
    return {
        "average_rating": to_float(rating.get("ratingValue")),
        "rating_count": to_int(rating.get("ratingCount", rating.get("reviewCount"))),
    }


def _ld_price(ld: dict) -> dict:
    offers = ld.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if not isinstance(offers, dict):
        return {}
    price = to_float(offers.get("price"))
    return {"price": price, "formatted_price": "Free" if price == 0 else f"${price:.2f}"}


# Read one at a time so a malformed key only loses its own fields
JSON_LD_READERS = [
    ("name", _ld_name),
    ("developer", _ld_developer),
    ("icon", _ld_icon),
    ("description", _ld_text("description", "description")),
    ("operating system", _ld_text("operatingSystem", "minimum_os_version")),
    ("category", _ld_category),
    ("rating", _ld_rating),
    ("price", _ld_price),
    ("version", _ld_text("softwareVersion", "version")),
    ("publish date", _ld_text("datePublished", "release_date")),
]


def extract_json_ld(soup: BeautifulSoup, html: str) -> dict:
    """Structured data block, the highest-confidence source on the page."""
    blocks = _json_ld_blocks(soup)
    if not blocks:
        return {}

    ld = next((b for b in blocks if "Application" in str(b.get("@type", ""))), blocks[0])
    found = {}

    for label, read in JSON_LD_READERS:
        try:
            found.update(read(ld))
        except (AttributeError, TypeError, ValueError, KeyError) as e:
            print(f"  Could not read JSON-LD {label}: {e}")

    return found


def screenshot_identity(url: str) -> Optional[str]:
    """The uuid/filename part of a screenshot URL, shared by all its size variants."""
    match = IMAGE_IDENTITY_RE.search(url)
    return match.group(1) if match else None


def is_screenshot(url: str) -> bool:
    if "PurpleSource" not in url:
        return False
    return not any(marker in url for marker in EXCLUDED_IMAGE_MARKERS)


def is_tablet_screenshot(url: str) -> bool:
    identity = screenshot_identity(url) or url
    if TABLET_HINT_RE.search(identity):
        return True
    return any(token in identity for token in TABLET_RESOLUTIONS)


def dedupe_screenshots(urls: list[str]) -> tuple[list[str], list[str]]:
    """
    Collapse size variants of the same screenshot and split phone from tablet.
    First-seen URL per image wins; order is preserved.

    Returns:
        (phone_urls, tablet_urls)
    """
    phone, tablet = [], []
    seen = set()

    for url in urls:
        if not is_screenshot(url):
            continue
        identity = screenshot_identity(url)
        if not identity or identity in seen:
            continue
        seen.add(identity)
        (tablet if is_tablet_screenshot(url) else phone).append(url)

    return phone, tablet


def _candidate_image_urls(soup: BeautifulSoup, html: str) -> list[str]:
    urls = []
    # Pass 1: srcset attributes ("url 300w, url 600w")
    for tag in soup.find_all(srcset=True):
        for part in tag["srcset"].split(","):
            part = part.strip()
            if part:
                urls.append(part.split()[0])
    # Pass 2: bare image URLs anywhere in the markup (embedded JSON, src attributes)
    urls.extend(MZSTATIC_URL_RE.findall(html))
    return urls


def extract_screenshots(soup: BeautifulSoup, html: str) -> dict:
    phone, tablet = dedupe_screenshots(_candidate_image_urls(soup, html))
    found = {}
    if phone:
        found["screenshot_urls"] = phone
    if tablet:
        found["ipad_screenshot_urls"] = tablet
    return found


def extract_preview_urls(soup: BeautifulSoup, html: str) -> dict:
    previews = []
    for tag in soup.find_all(src=True):
        src = tag["src"]
        if src.startswith("https://") and "video" in src.lower() and src not in previews:
            previews.append(src)
    return {"preview_urls": previews} if previews else {}


def extract_whats_new(soup: BeautifulSoup, html: str) -> dict:
    anchor = soup.find(string=WHATS_NEW_RE)
    if anchor is None:
        anchor = soup.find(attrs={"data-test-version-history": True})
    if anchor is None:
        return {}

    paragraph = anchor.find_next("p")
    if paragraph is None:
        return {}
    text = paragraph.get_text("\n", strip=True)
    if not text:
        return {}
    return {"whats_new": text, "release_notes": text}


def extract_privacy_labels(soup: BeautifulSoup, html: str) -> dict:
    labels = []
    for element in soup.select('[class*="privacy-type"]'):
        # Only the element's own text, not its children's
        label = "".join(element.find_all(string=True, recursive=False)).strip()
        if label and label not in labels:
            labels.append(label)
    return {"privacy_labels": labels} if labels else {}


def parse_file_size(text: str) -> Optional[int]:
    """'245.3 MB' -> bytes (binary multiples). None if no size is present."""
    match = FILE_SIZE_RE.search(text)
    if not match:
        return None
    value = float(match.group(1))
    return round(value * SIZE_MULTIPLIERS[match.group(2).upper()])


def extract_file_size(soup: BeautifulSoup, html: str) -> dict:
    size = None
    label = soup.find("dt", string=re.compile(r"^\s*Size\s*$", re.IGNORECASE))
    if label is not None:
        value = label.find_next_sibling("dd")
        if value is not None:
            size = parse_file_size(value.get_text(" ", strip=True))
    if size is None:
        size = parse_file_size(soup.get_text(" "))
    return {"file_size_bytes": size} if size is not None else {}


def extract_content_rating(soup: BeautifulSoup, html: str) -> dict:
    text = soup.get_text(" ")
    for pattern in CONTENT_RATING_RES:
        match = pattern.search(text)
        if match:
            return {"content_rating": match.group(1), "content_advisory_rating": match.group(1)}
    return {}


def extract_seller_url(soup: BeautifulSoup, html: str) -> dict:
    links = soup.find_all("a", href=True)
    for link in links:
        if "developer website" in link.get_text(" ").lower():
            return {"seller_url": link["href"]}
    for link in links:
        if "link" in (link.get("class") or []) and link["href"].startswith("http") \
                and "website" in link.get_text(" ").lower():
            return {"seller_url": link["href"]}
    return {}


def normalize_date(value: str) -> str:
    """Best-effort ISO-8601 date; unparseable input comes back unchanged."""
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat()


def extract_last_updated(soup: BeautifulSoup, html: str) -> dict:
    match = RELEASE_DATE_KEY_RE.search(html)
    if match:
        return {"current_version_release_date": normalize_date(match.group(1))}
    time_tag = soup.find("time", attrs={"datetime": True})
    if time_tag is not None:
        return {"current_version_release_date": normalize_date(time_tag["datetime"])}
    match = TEXT_DATE_RE.search(soup.get_text(" "))
    if match:
        return {"current_version_release_date": normalize_date(match.group(1))}
    return {}


def extract_in_app_purchases(soup: BeautifulSoup, html: str) -> dict:
    if "in-app purchases" in soup.get_text(" ").lower():
        return {"has_in_app_purchases": True}
    return {}


def extract_ratings_histogram(soup: BeautifulSoup, html: str) -> dict:
    histogram = {}
    for row in soup.select(".we-star-bar-graph__row"):
        stars = STAR_ROW_RE.search(str(row))
        width = BAR_WIDTH_RE.search(str(row))
        if stars and width:
            histogram[stars.group(1)] = round(float(width.group(1)))
    return {"ratings_histogram": histogram} if histogram else {}


FIELD_EXTRACTORS = [
    ("json-ld", extract_json_ld),
    ("screenshots", extract_screenshots),
    ("app previews", extract_preview_urls),
    ("what's new", extract_whats_new),
    ("privacy labels", extract_privacy_labels),
    ("file size", extract_file_size),
    ("content rating", extract_content_rating),
    ("seller url", extract_seller_url),
    ("last updated", extract_last_updated),
    ("in-app purchases", extract_in_app_purchases),
    ("ratings histogram", extract_ratings_histogram),
]


# ============================================================
# Google Play: single source, no lookup API to merge with
# ============================================================

def fetch_play_store_data(package: str, lang: str = LANGUAGE,
                          country: str = COUNTRY) -> Optional[CanonicalAppRecord]:
    """
    Fetch a Google Play listing and fill a full record with Android defaults.

    Returns:
        The record tagged "scraper", or None if the page could not be fetched.
    """
    print(f"Fetching Google Play listing for: {package}")
    try:
        details = gplay_app(package, lang=lang, country=country)
        return build_play_record(package, details)
    except (GooglePlayScraperException, OSError) as e:
        print(f"  Google Play listing unavailable for {package}: {e}")
    except (TypeError, IndexError, KeyError, ValueError, AttributeError) as e:
        # Page layout changed under the library
        print(f"  Could not parse Google Play listing for {package}: {e}")
    return None


def build_play_record(package: str, details: dict) -> CanonicalAppRecord:
    """Map a google-play-scraper `app()` result onto a canonical record."""
    developer = details.get("developer") or "Unknown Developer"
    price = to_float(details.get("price"))
    genre = details.get("genre") or "App"

    # Screenshots are referenced by full URL, so a plain set-style dedupe is enough
    screenshots = list(dict.fromkeys(details.get("screenshots") or []))[:MAX_PLAY_SCREENSHOTS]

    updated = details.get("updated")
    if updated:
        last_updated = datetime.fromtimestamp(to_int(updated), tz=timezone.utc).isoformat()
    else:
        last_updated = datetime.now(timezone.utc).isoformat()

    version = details.get("version") or ""
    if not version or version.lower().startswith("varies"):
        version = "1.0"

    release_notes = details.get("recentChanges") or ""
    video = details.get("video")

    return CanonicalAppRecord(
        app_id=package,
        platform="google_play",
        name=(details.get("title") or package).strip(),
        developer=developer,
        icon_url=details.get("icon") or "",
        description=details.get("description") or "",
        price=price,
        formatted_price="Free" if price == 0 else f"${price:.2f}",
        average_rating=to_float(details.get("score")),
        rating_count=to_int(details.get("ratings")),
        screenshot_urls=screenshots,
        ipad_screenshot_urls=[],
        genres=[genre],
        primary_genre=genre,
        file_size_bytes=0,
        current_version_release_date=last_updated,
        release_date=normalize_date(details["released"]) if details.get("released") else "",
        version=version,
        content_rating=details.get("contentRating") or "Everyone",
        content_advisory_rating=details.get("contentRating") or "Everyone",
        advisories=[],
        seller_url=details.get("developerWebsite")
        or PLAY_DEVELOPER_URL.format(developer=quote(developer)),
        supported_devices=[],
        language_codes=["EN"],
        minimum_os_version="",
        release_notes=release_notes,
        has_in_app_purchases=bool(details.get("offersIAP")),
        store_url=details.get("url") or PLAY_STORE_URL.format(package=package),
        whats_new=release_notes,
        preview_urls=[video] if video else [],
        ratings_histogram=_histogram_percentages(details.get("histogram")),
        source="scraper",
    )


def _histogram_percentages(counts) -> dict[str, int]:
    """[n1, n2, n3, n4, n5] star counts -> {"5": pct, ...}; empty when unknown."""
    if not counts or len(counts) != 5:
        return {}
    counts = [to_int(c) for c in counts]
    total = sum(counts)
    if total == 0:
        return {}
    return {str(star): round(100 * counts[star - 1] / total) for star in range(5, 0, -1)}
