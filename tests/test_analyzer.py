import sqlite3

import pytest

from shipscore import analyzer, lookup, scraper
from shipscore.database import GalleryStore
from shipscore.models import RawExtractedRecord
from tests.conftest import NOW, FakeResponse


@pytest.fixture
def store(tmp_path):
    return GalleryStore(str(tmp_path / "gallery.db"))


@pytest.fixture
def no_network(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("network should not be touched")

    monkeypatch.setattr(scraper, "scrape_app_store", fail)
    monkeypatch.setattr(lookup, "fetch_from_api", fail)
    monkeypatch.setattr(scraper, "fetch_play_store_data", fail)


def test_full_flow_scores_and_saves(monkeypatch, store, launch_ready_record):
    monkeypatch.setattr(analyzer, "fetch_record", lambda url: launch_ready_record)

    response, persist_future = analyzer.analyze(
        "https://apps.apple.com/us/app/focus-timer-pro/id1234567890", store=store, now=NOW)

    assert response["overall_score"] == 98
    assert response["grade"] == "A+"
    assert response["app_name"] == "Focus Timer Pro"
    assert len(response["dimensions"]) == 10
    assert len(response["top_improvements"]) == 3
    assert response["source"] == "merged"
    assert response["platform"] == "app_store"
    assert response["badge_url"].endswith("/api/badge/1234567890")
    assert response["metadata"]["average_rating"] == 4.8
    assert response["metadata"]["primary_genre"] == "Productivity"

    entry = persist_future.result(timeout=10)
    assert entry.slug == "focus-timer-pro"
    assert store.find_by_app_id("1234567890").overall_score == 98


def test_without_store_nothing_is_persisted(monkeypatch, launch_ready_record):
    monkeypatch.setattr(analyzer, "fetch_record", lambda url: launch_ready_record)

    _, persist_future = analyzer.analyze("1234567890", now=NOW)

    assert persist_future is None


def test_persistence_failure_does_not_fail_the_request(monkeypatch, store, launch_ready_record):
    def broken_upsert(**kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(analyzer, "fetch_record", lambda url: launch_ready_record)
    monkeypatch.setattr(store, "upsert_entry", broken_upsert)

    result = analyzer.analyze_safely("1234567890", store=store, now=NOW)

    assert result["status"] == 200
    assert result["overall_score"] == 98


def test_persist_report_returns_none_on_failure(monkeypatch, store, launch_ready_record):
    def broken_upsert(**kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(store, "upsert_entry", broken_upsert)
    report = analyzer.score_app(launch_ready_record, now=NOW)

    assert analyzer.persist_report(store, launch_ready_record, report) is None


def test_invalid_url_is_400_without_network(no_network):
    result = analyzer.analyze_safely("https://example.com/not-a-store")

    assert result["status"] == 400
    assert "App Store" in result["error"]


def test_app_not_found_is_404(monkeypatch):
    monkeypatch.setattr(scraper, "scrape_app_store", lambda app_id, country: None)
    monkeypatch.setattr(lookup, "fetch_from_api", lambda app_id, country: None)

    result = analyzer.analyze_safely("https://apps.apple.com/us/app/gone/id999")

    assert result == {"error": "App not found. Check the URL and try again.", "status": 404}


def test_google_play_failure_is_502(monkeypatch):
    monkeypatch.setattr(scraper, "fetch_play_store_data", lambda package: None)

    result = analyzer.analyze_safely("https://play.google.com/store/apps/details?id=com.example.app")

    assert result["status"] == 502


def test_unexpected_error_is_generic_500(monkeypatch):
    def boom(url):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(analyzer, "fetch_record", boom)

    result = analyzer.analyze_safely("1234567890")

    assert result == {"error": "Internal server error", "status": 500}


def test_lookup_returning_a_list_still_scores_from_the_page(monkeypatch):
    monkeypatch.setattr(scraper, "scrape_app_store",
                        lambda app_id, country: RawExtractedRecord(name="Focus Timer Pro", developer="Acme Labs"))
    monkeypatch.setattr(lookup.requests, "get", lambda *a, **kw: FakeResponse(payload=[]))

    result = analyzer.analyze_safely("1234567890", now=NOW)

    assert result["status"] == 200
    assert result["source"] == "scraper"
    assert result["app_name"] == "Focus Timer Pro"


def test_unexpected_persistence_crash_is_printed(monkeypatch, store, launch_ready_record, capsys):
    def crash(**kwargs):
        raise RuntimeError("serializer exploded")

    monkeypatch.setattr(analyzer, "fetch_record", lambda url: launch_ready_record)
    monkeypatch.setattr(store, "upsert_entry", crash)

    response, persist_future = analyzer.analyze("1234567890", store=store, now=NOW)

    assert response["overall_score"] == 98
    assert isinstance(persist_future.exception(timeout=10), RuntimeError)

    # The done callback may still be running on the writer thread
    analyzer._report_persist_crash(persist_future)
    assert "Gallery upsert crashed" in capsys.readouterr().out
