import json
from datetime import datetime, timezone

import pytest
import requests

from shipscore.models import ApiRecord, CanonicalAppRecord

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def screenshot_url(n: int, size: str = "300x650bb.webp", filename: str = None) -> str:
    """A realistic mzstatic screenshot URL; same `n` = same image, any `size`."""
    filename = filename or f"IMG_{n:04d}_6.5.png"
    uuid = f"0a1b2c3d-0000-4000-8000-{n:012x}"
    return (f"https://is1-ssl.mzstatic.com/image/thumb/PurpleSource221/v4/"
            f"0a/1b/2c/{uuid}/{filename}/{size}")


PHONE_1 = screenshot_url(1)
PHONE_2 = screenshot_url(2)
PHONE_3 = screenshot_url(3)
TABLET_1 = screenshot_url(10, filename="iPad_Pro_12.9_01.png")
ICON_URL = ("https://is1-ssl.mzstatic.com/image/thumb/Purple221/v4/aa/bb/cc/"
            "aabbccdd-1111-2222-3333-444455556666/AppIcon-0-0-1x_U007emarketing.png/512x512bb.jpg")

JSON_LD = {
    "@context": "http://schema.org",
    "@type": "SoftwareApplication",
    "name": "Focus Timer Pro",
    "author": {"@type": "Person", "name": "Acme Labs"},
    "image": ICON_URL,
    "description": "Plan deep work sessions.",
    "operatingSystem": "Requires iOS 15.0 or later.",
    "applicationCategory": "ProductivityCategory",
    "aggregateRating": {"@type": "AggregateRating", "ratingValue": 4.7, "reviewCount": 1234},
    "offers": {"@type": "Offer", "price": 0, "priceCurrency": "USD", "category": "free"},
    "softwareVersion": "3.2.1",
    "datePublished": "Jan 5, 2020",
}


def build_store_page(json_ld: str = None) -> str:
    json_ld = json.dumps(JSON_LD) if json_ld is None else json_ld
    return f"""<!DOCTYPE html>
<html lang="en-US">
<head>
  <title>Focus Timer Pro on the App Store</title>
  <script name="schema:software-application" type="application/ld+json">{json_ld}</script>
</head>
<body>
  <section class="shelf">
    <picture>
      <source srcset="{PHONE_1} 300w, {screenshot_url(1, '600x1300bb.webp')} 600w" type="image/webp">
      <img src="{screenshot_url(1, '300x650bb.jpg')}" alt="">
    </picture>
    <picture>
      <source srcset="{PHONE_2} 300w, {screenshot_url(2, '600x1300bb.webp')} 600w" type="image/webp">
    </picture>
    <picture>
      <source srcset="{TABLET_1} 300w, {screenshot_url(10, '600x800bb.webp', filename='iPad_Pro_12.9_01.png')} 600w" type="image/webp">
    </picture>
    <img src="https://is1-ssl.mzstatic.com/image/thumb/PurpleSource221/v4/0a/1b/2c/0a1b2c3d-0000-4000-8000-00000000ffff/Placeholder.mill/300x650bb.webp">
    <img src="{ICON_URL}">
  </section>
  <script type="fastboot/shoebox">{{"screenshots": ["{PHONE_3}", "https://is1-ssl.mzstatic.com/image/thumb/PurpleSource221/v4/0a/1b/2c/0a1b2c3d-0000-4000-8000-000000000009/IMG.png/{{w}}x{{h}}bb.{{f}}"]}}</script>
  <video src="https://video-ssl.itunes.apple.com/itunes-assets/Video/preview-1.m3u8"></video>

  <section class="whats-new">
    <h2 class="section__headline">What’s New</h2>
    <time datetime="2026-10-09T00:00:00.000Z">Oct 9, 2026</time>
    <div class="we-truncate"><p>Bug fixes and performance improvements.<br>New lock screen widgets.</p></div>
  </section>

  <section class="app-privacy">
    <div class="app-privacy__card">
      <h3 class="privacy-type__heading">Data Not Linked to You</h3>
      <ul class="privacy-type__items">
        <li class="privacy-type__item"><span class="privacy-type__grid-content">Usage Data</span></li>
        <li class="privacy-type__item"><span class="privacy-type__grid-content">Diagnostics</span></li>
      </ul>
    </div>
  </section>

  <div class="we-star-bar-graph">
    <div class="we-star-bar-graph__row"><span class="we-star-bar-graph__stars we-star-bar-graph__stars--5"></span>
      <div class="we-star-bar-graph__bar"><div class="we-star-bar-graph__bar__foreground-bar" style="width: 82%;"></div></div></div>
    <div class="we-star-bar-graph__row"><span class="we-star-bar-graph__stars we-star-bar-graph__stars--4"></span>
      <div class="we-star-bar-graph__bar"><div class="we-star-bar-graph__bar__foreground-bar" style="width: 10%;"></div></div></div>
    <div class="we-star-bar-graph__row"><span class="we-star-bar-graph__stars we-star-bar-graph__stars--1"></span>
      <div class="we-star-bar-graph__bar"><div class="we-star-bar-graph__bar__foreground-bar" style="width: 3%;"></div></div></div>
  </div>

  <dl class="information-list">
    <div><dt>Size</dt><dd>45.5 MB</dd></div>
    <div><dt>Age Rating</dt><dd>Rated 4+</dd></div>
    <div><dt>In-App Purchases</dt><dd>Pro Monthly $4.99</dd></div>
  </dl>
  <ul><li><a class="link icon icon-after icon-external" href="https://acme.example.com">Developer Website</a></li></ul>
</body>
</html>"""


LOOKUP_RESULT = {
    "trackId": 1234567890,
    "trackName": "Focus Timer: Deep Work",
    "artistName": "Acme Labs LLC",
    "artworkUrl100": "https://is1-ssl.mzstatic.com/image/thumb/Purple/v4/x/AppIcon.png/100x100bb.jpg",
    "artworkUrl512": "https://is1-ssl.mzstatic.com/image/thumb/Purple/v4/x/AppIcon.png/512x512bb.jpg",
    "description": "Plan deep work sessions.\n\nTrack your streaks.",
    "price": 0.0,
    "formattedPrice": "Free",
    "averageUserRating": 4.6,
    "userRatingCount": 2200,
    "screenshotUrls": ["https://example.com/api-1.jpg", "https://example.com/api-2.jpg",
                       "https://example.com/api-3.jpg"],
    "ipadScreenshotUrls": [],
    "genres": ["Productivity", "Education"],
    "primaryGenreName": "Productivity",
    "fileSizeBytes": "0",
    "currentVersionReleaseDate": "2026-10-01T07:00:00Z",
    "releaseDate": "2020-01-05T08:00:00Z",
    "version": "3.2.1",
    "trackContentRating": "4+",
    "contentAdvisoryRating": "4+",
    "advisories": [],
    "supportedDevices": ["iPhone15-iPhone15", "iPadPro11-iPadPro11"],
    "languageCodesISO2A": ["EN", "DE", "FR"],
    "minimumOsVersion": "15.0",
    "releaseNotes": "Bug fixes.",
    "isGameCenterEnabled": False,
    "trackViewUrl": "https://apps.apple.com/us/app/focus-timer/id1234567890?uo=4",
}


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", payload=None):
        self.status_code = status_code
        self.text = text
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


@pytest.fixture
def store_page_html():
    return build_store_page()


@pytest.fixture
def api_record():
    return ApiRecord(
        name="Focus Timer: Deep Work",
        developer="Acme Labs LLC",
        icon_url="https://example.com/icon/512x512bb.jpg",
        description="Plan deep work sessions.",
        price=0.0,
        formatted_price="Free",
        average_rating=4.2,
        rating_count=500,
        screenshot_urls=["a", "b"],
        genres=["Productivity"],
        primary_genre="Productivity",
        file_size_bytes=0,
        current_version_release_date="2026-10-01T07:00:00Z",
        release_date="2020-01-05T08:00:00Z",
        version="3.2.1",
        content_rating="4+",
        content_advisory_rating="4+",
        supported_devices=["iPhone15-iPhone15"],
        language_codes=["EN"],
        release_notes="Bug fixes.",
        store_url="https://apps.apple.com/us/app/focus-timer/id1234567890",
    )


@pytest.fixture
def launch_ready_record():
    """Everything maxed except privacy, which stays an estimate without labels."""
    return CanonicalAppRecord(
        app_id="1234567890",
        name="Focus Timer Pro",
        developer="Acme Labs",
        icon_url="https://is1-ssl.mzstatic.com/image/thumb/Purple/v4/x/AppIcon.png/512x512bb.jpg",
        description="Plan deep work sessions.\n\n" + "Stay in flow. " * 50,
        price=0.0,
        formatted_price="Free",
        average_rating=4.8,
        rating_count=60000,
        screenshot_urls=[f"phone-{i}" for i in range(8)],
        ipad_screenshot_urls=[f"tablet-{i}" for i in range(3)],
        genres=["Productivity", "Education"],
        primary_genre="Productivity",
        current_version_release_date="2026-10-09T12:00:00Z",
        version="3.2",
        content_rating="4+",
        content_advisory_rating="4+",
        seller_url="https://acme.example.com",
        supported_devices=[f"device-{i}" for i in range(25)],
        language_codes=["EN", "DE", "FR", "ES", "IT", "JA", "KO", "ZH", "PT", "NL", "SV", "RU"],
        release_notes="New lock screen widgets, faster sync and a redesigned statistics screen.",
        source="merged",
    )
