"""
Badge renderer — the small "ShipScore | 87/100 (A)" SVG apps embed in their READMEs.
Read-only: looks the score up in the gallery, never recomputes it.
"""

from typing import Optional
from xml.sax.saxutils import escape

from shipscore.database import GalleryStore
from shipscore.models import GalleryEntry

LABEL = "ShipScore"
CHAR_WIDTH = 6.8
PADDING = 16
HEIGHT = 20

GRADE_COLORS = {
    "A+": "#22c55e",
    "A": "#22c55e",
    "B": "#3b82f6",
    "C": "#eab308",
}
LOW_GRADE_COLOR = "#ef4444"
UNKNOWN_COLOR = "#6366f1"


def badge_color(entry: Optional[GalleryEntry]) -> str:
    if entry is None:
        return UNKNOWN_COLOR
    return GRADE_COLORS.get(entry.grade, LOW_GRADE_COLOR)


def render_badge(entry: Optional[GalleryEntry]) -> str:
    """Two-part SVG badge. Apps that were never scanned render as '?/100 (?)'."""
    score = entry.overall_score if entry else "?"
    grade = entry.grade if entry else "?"
    value = f"{score}/100 ({grade})"
    color = badge_color(entry)

    left_width = len(LABEL) * CHAR_WIDTH + PADDING
    right_width = len(value) * CHAR_WIDTH + PADDING
    total_width = round(left_width + right_width)
    font = 'font-family="Verdana,Geneva,DejaVu Sans,sans-serif" font-size="10" font-weight="bold"'

    return f"""<svg xmlns="http://www.w3.org/2000/svg" width="{total_width}" height="{HEIGHT}">
  <defs>
    <linearGradient id="leftGrad" x1="0%" y1="0%" x2="0%" y2="100%">
      <stop offset="0%" style="stop-color:#555;stop-opacity:1" />
      <stop offset="100%" style="stop-color:#444;stop-opacity:1" />
    </linearGradient>
    <linearGradient id="rightGrad" x1="0%" y1="0%" x2="0%" y2="100%">
      <stop offset="0%" style="stop-color:{color};stop-opacity:1" />
      <stop offset="100%" style="stop-color:{color};stop-opacity:0.8" />
    </linearGradient>
  </defs>
  <rect x="0" y="0" width="{left_width:g}" height="{HEIGHT}" rx="3" ry="3" fill="url(#leftGrad)"/>
  <text x="{left_width / 2:g}" y="14" fill="#fff" {font} text-anchor="middle">{LABEL}</text>
  <rect x="{left_width:g}" y="0" width="{right_width:g}" height="{HEIGHT}" rx="3" ry="3" fill="url(#rightGrad)"/>
  <text x="{left_width + right_width / 2:g}" y="14" fill="#fff" {font} text-anchor="middle">{escape(value)}</text>
  <line x1="{left_width:g}" y1="2" x2="{left_width:g}" y2="{HEIGHT - 2}" stroke="#fff" stroke-width="0.5" stroke-opacity="0.3"/>
</svg>"""


def badge_for_app(store: GalleryStore, app_id: str) -> str:
    return render_badge(store.find_by_app_id(app_id))
