import pytest

from shipscore import badge
from shipscore.database import GalleryStore
from shipscore.models import GalleryEntry


def entry(score, grade):
    return GalleryEntry(
        app_id="111", app_name="Focus Timer Pro", app_icon="", developer="Acme Labs",
        overall_score=score, grade=grade, dimensions=[], top_improvements=[],
        scanned_at="2026-10-19T12:00:00+00:00", slug="focus-timer-pro", store_url="",
    )


@pytest.mark.parametrize("grade,color", [
    ("A+", "#22c55e"),
    ("A", "#22c55e"),
    ("B", "#3b82f6"),
    ("C", "#eab308"),
    ("D", "#ef4444"),
    ("F", "#ef4444"),
])
def test_badge_color_by_grade(grade, color):
    assert badge.badge_color(entry(70, grade)) == color


def test_render_badge_shows_score_and_grade():
    svg = badge.render_badge(entry(87, "A"))

    assert svg.startswith("<svg")
    assert ">ShipScore<" in svg
    assert ">87/100 (A)<" in svg
    assert "#22c55e" in svg


def test_unscanned_app_renders_placeholder():
    svg = badge.render_badge(None)

    assert ">?/100 (?)<" in svg
    assert badge.UNKNOWN_COLOR in svg


def test_badge_width_grows_with_value():
    short = badge.render_badge(entry(5, "F"))
    long = badge.render_badge(entry(100, "A+"))

    def width(svg):
        return int(svg.split('width="', 1)[1].split('"', 1)[0])

    assert width(long) > width(short)


def test_badge_for_app_reads_the_gallery(tmp_path):
    store = GalleryStore(str(tmp_path / "gallery.db"))
    store.upsert_entry(
        app_id="111", app_name="Focus Timer Pro", app_icon="", developer="Acme Labs",
        overall_score=91, grade="A", dimensions=[], top_improvements=[], store_url="",
    )

    assert ">91/100 (A)<" in badge.badge_for_app(store, "111")
    assert ">?/100 (?)<" in badge.badge_for_app(store, "999")
