"""
Analyze — the one inbound operation.

URL in, score report out:
    1. Route the URL to a store (bad URLs fail here, before any network call)
    2. Fetch the canonical record (App Store: page + API in parallel, then merge)
    3. Score it (pure, no I/O)
    4. Hand the result to the gallery in the background; the response never waits on it
"""

import json
import sqlite3
import sys
import traceback
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Optional

from shipscore.config import SITE_URL
from shipscore.database import GalleryStore
from shipscore.models import CanonicalAppRecord, GalleryEntry, ScoreReport
from shipscore.router import ShipScoreError, fetch_record
from shipscore.scorer import score_app

# One background writer for gallery upserts
_persist_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="GalleryUpsert")


def persist_report(store: GalleryStore, record: CanonicalAppRecord,
                   report: ScoreReport) -> Optional[GalleryEntry]:
    """Upsert the scan into the gallery. Failures are printed, never raised."""
    try:
        entry = store.upsert_entry(
            app_id=record.app_id,
            app_name=report.app_name,
            app_icon=report.app_icon,
            developer=report.developer,
            overall_score=report.overall_score,
            grade=report.grade,
            dimensions=report.to_dict()["dimensions"],
            top_improvements=report.top_improvements,
            store_url=record.store_url,
            platform=record.platform,
            average_rating=record.average_rating,
            rating_count=record.rating_count,
            primary_genre=record.primary_genre,
        )
    except (sqlite3.Error, OSError) as e:
        print(f"Gallery upsert failed for {record.app_id}: {e}")
        return None

    print(f"Gallery entry saved: {entry.slug}")
    return entry


def _report_persist_crash(future: Future) -> None:
    """Print anything persist_report didn't expect; nobody else reads the future."""
    error = future.exception()
    if error is not None:
        print(f"Gallery upsert crashed: {error!r}")
        traceback.print_exception(type(error), error, error.__traceback__)


def build_response(record: CanonicalAppRecord, report: ScoreReport) -> dict:
    """The JSON-ready analyze response: the report plus provenance and raw store metadata."""
    response = report.to_dict()
    response.update({
        "platform": record.platform,
        "app_id": record.app_id,
        "source": record.source,
        "badge_url": f"{SITE_URL}/api/badge/{record.app_id}",
        "metadata": {
            "average_rating": record.average_rating,
            "rating_count": record.rating_count,
            "primary_genre": record.primary_genre,
            "store_url": record.store_url,
            "privacy_labels": record.privacy_labels,
            "preview_urls": record.preview_urls,
            "release_notes": record.release_notes or "",
        },
    })
    return response


def analyze(url: str, store: Optional[GalleryStore] = None,
            now: Optional[datetime] = None) -> tuple[dict, Optional[Future]]:
    """
    Main analyze entry point.

    Args:
        url:   App Store product URL, Google Play details URL, or a bare numeric App Store id.
        store: Gallery to upsert into. None skips persistence.
        now:   Reference time for the update-cadence dimension (defaults to now).

    Returns:
        (response, persist_future). The future resolves to the saved GalleryEntry
        (or None on failure); callers are free to ignore it.

    Raises:
        InvalidUrlError, AppNotFoundError, UpstreamError
    """
    print("=" * 60)
    print(f"ANALYZE: {url}")
    print("=" * 60)

    record = fetch_record(url)
    report = score_app(record, now=now)
    print(f"Score: {report.overall_score}/100 ({report.grade})")

    persist_future = None
    if store is not None:
        persist_future = _persist_executor.submit(persist_report, store, record, report)
        persist_future.add_done_callback(_report_persist_crash)

    return build_response(record, report), persist_future


def analyze_safely(url: str, store: Optional[GalleryStore] = None,
                   now: Optional[datetime] = None) -> dict:
    """
    Like analyze(), but every failure comes back as {"error": ..., "status": ...}
    instead of an exception. Successful responses carry status 200.
    """
    try:
        response, _ = analyze(url, store=store, now=now)
    except ShipScoreError as e:
        print(f"Analyze failed ({e.status}): {e.message}")
        return {"error": e.message, "status": e.status}
    except Exception:
        traceback.print_exc()
        return {"error": "Internal server error", "status": 500}

    response["status"] = 200
    return response


# ---- Quick run ----
# python -m shipscore.analyzer https://apps.apple.com/us/app/spotify-music-and-podcasts/id324684580
if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else "324684580"
    result = analyze_safely(target, store=GalleryStore())
    print(json.dumps(result, indent=2))
    _persist_executor.shutdown(wait=True)
