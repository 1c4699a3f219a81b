"""
Launch-readiness scorer.

Takes a canonical app record and produces a weighted, multi-dimension score,
a letter grade and the top improvements to make. Pure function of its input:
no network, no disk, and "now" can be passed in.

Every dimension is scored 0-10 by additive heuristics, then clamped. The
overall score weights each dimension's share of its maximum by the importance
table in config.DIMENSION_WEIGHTS.
"""

from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as date_parser

from shipscore.config import (
    CONTENT_RATING_POINTS,
    DESCRIPTION_LONG,
    DESCRIPTION_MEDIUM,
    DEVICE_BUCKETS,
    DIMENSION_MAX_SCORE,
    DIMENSION_WEIGHTS,
    FALLBACK_GRADE,
    GRADE_THRESHOLDS,
    ICON_HIGH_RES_TOKENS,
    LANGUAGE_BUCKETS,
    LOW_PRICE_CEILING,
    MATURE_MAJOR_VERSION,
    PHONE_SCREENSHOTS_FULL,
    PHONE_SCREENSHOTS_GOOD,
    PHONE_SCREENSHOTS_MIN,
    PRIVACY_DEFAULT_SCORE,
    PRIVACY_NOT_COLLECTED_LABEL,
    PRIVACY_SENSITIVE_GENRES,
    RANKING_COUNT_BUCKETS,
    RATING_EXCELLENT,
    RATING_FAIR,
    RATING_GOOD,
    RELEASE_NOTES_DETAILED,
    REVIEW_COUNT_BUCKETS,
    SCREENSHOT_VARIETY_BONUS,
    TABLET_SCREENSHOTS_FULL,
    TITLE_LENGTH_RANGE,
    TOP_IMPROVEMENTS,
    UPDATE_AGE_BUCKETS,
)
from shipscore.models import CanonicalAppRecord, DimensionScore, ScoreReport, to_float, to_int


# ============================================================
# PART 1: Helpers
# ============================================================

def _bucket(value: float, buckets: list[tuple[float, int]]) -> int:
    """Points for the first (threshold, points) pair the value reaches; 0 if none."""
    for threshold, points in buckets:
        if value >= threshold:
            return points
    return 0


def _dimension(name: str, label: str, score: float, details: str, tip: str) -> DimensionScore:
    clamped = max(0, min(score, DIMENSION_MAX_SCORE))
    return DimensionScore(name=name, label=label, score=clamped, max_score=DIMENSION_MAX_SCORE,
                          details=details, tip=tip)


def days_since(date_string: str, now: datetime) -> Optional[int]:
    """Whole days between a date string and now. None if the date is missing or unparseable."""
    if not date_string:
        return None
    try:
        then = date_parser.parse(date_string)
    except (ValueError, OverflowError):
        return None
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - then).days


def _major_version(version: str) -> int:
    return to_int((version or "").split(".")[0])


# ============================================================
# PART 2: The dimensions
# ============================================================

def score_discoverability(app: CanonicalAppRecord) -> DimensionScore:
    score = 0
    tips = []
    title_len = len(app.name)
    desc_len = len(app.description)
    low, high = TITLE_LENGTH_RANGE

    if low <= title_len <= high:
        score += 3
    elif title_len > 0:
        score += 1
        tips.append(f"Optimize title to {low}-{high} chars with keywords")

    if desc_len >= DESCRIPTION_LONG:
        score += 3
    elif desc_len >= DESCRIPTION_MEDIUM:
        score += 2
        tips.append(f"Expand description to {DESCRIPTION_LONG}+ chars for better ASO")
    else:
        tips.append(f"Description is too short. Aim for {DESCRIPTION_LONG}+ characters with keywords")

    if "\n\n" in app.description:
        score += 2
    else:
        tips.append("Add paragraph breaks to description for readability")

    if len(app.genres) >= 2:
        score += 2
    elif app.genres:
        score += 1
        tips.append("Consider adding a secondary category")
    else:
        tips.append("Pick a primary and a secondary category")

    return _dimension("discoverability", "Discoverability", score,
                      f'Title: "{app.name}" ({title_len} chars). Description: {desc_len} chars.',
                      tips[0] if tips else "Metadata looks solid.")


def score_screenshots(app: CanonicalAppRecord) -> DimensionScore:
    score = 0
    tip = ""
    phone = len(app.screenshot_urls)
    tablet = len(app.ipad_screenshot_urls)

    if phone >= PHONE_SCREENSHOTS_FULL:
        score += 5
    elif phone >= PHONE_SCREENSHOTS_GOOD:
        score += 4
    elif phone >= PHONE_SCREENSHOTS_MIN:
        score += 2
        tip = f"Add more screenshots. Aim for {PHONE_SCREENSHOTS_FULL}+ phone screenshots"
    else:
        tip = f"Screenshots are critical. Add at least {PHONE_SCREENSHOTS_GOOD} phone screenshots"

    if tablet >= TABLET_SCREENSHOTS_FULL:
        score += 3
    elif tablet > 0:
        score += 1
        tip = tip or "Add more tablet screenshots for universal app credibility"
    else:
        tip = tip or "Add tablet screenshots to increase device coverage"

    if phone + tablet >= SCREENSHOT_VARIETY_BONUS:
        score += 2

    return _dimension("screenshots", "Screenshots", score,
                      f"{phone} phone + {tablet} tablet screenshots.",
                      tip or "Great screenshot coverage.")


def score_pricing(app: CanonicalAppRecord) -> DimensionScore:
    score = 0
    price = to_float(app.price)

    if price == 0:
        score += 7
        if app.has_in_app_purchases:
            tip = "Free with in-app purchases is the strongest model for downloads."
        else:
            tip = "Free model is great for downloads. Consider in-app purchases for monetization."
    elif price <= LOW_PRICE_CEILING:
        score += 5
        tip = "Consider a free tier with IAP to increase download volume."
    else:
        score += 3
        tip = "Premium pricing limits discoverability. Consider freemium model."

    if app.formatted_price:
        score += 3

    shown = app.formatted_price or ("Free" if price == 0 else f"${price:.2f}")
    return _dimension("pricing", "Pricing", score, f"Price: {shown}.", tip)


def score_reviews(app: CanonicalAppRecord) -> DimensionScore:
    score = 0
    tip = ""
    rating = to_float(app.average_rating)
    count = to_int(app.rating_count)

    if rating >= RATING_EXCELLENT:
        score += 5
    elif rating >= RATING_GOOD:
        score += 4
        tip = f"Good rating! Focus on fixing common complaints to hit {RATING_EXCELLENT}+"
    elif rating >= RATING_FAIR:
        score += 2
        tip = f"Address negative reviews. Aim for {RATING_GOOD}+ rating."
    else:
        tip = "Rating needs improvement. Prioritize bug fixes and user feedback."

    volume = _bucket(count, REVIEW_COUNT_BUCKETS)
    score += volume
    if volume == 4:
        tip = tip or "Good review volume. Use in-app prompts to increase ratings."
    elif volume == 2:
        tip = tip or "Increase review volume with in-app review prompts."
    elif volume < 2:
        tip = tip or "Very few reviews. Implement smart review prompts after positive moments."

    return _dimension("reviews", "Reviews", score,
                      f"{rating:.1f} stars from {count:,} ratings.",
                      tip or "Excellent review profile.")


def score_update_cadence(app: CanonicalAppRecord, now: datetime) -> DimensionScore:
    tip = ""
    age = days_since(app.current_version_release_date, now)

    score = 0
    if age is not None:
        score = next((points for limit, points in UPDATE_AGE_BUCKETS if age <= limit), 0)

    if score == 0:
        tip = "App appears abandoned. Update ASAP to maintain store visibility."
    elif age > UPDATE_AGE_BUCKETS[1][0]:
        tip = "App hasn't been updated in months. Regular updates improve ranking."
    elif age > UPDATE_AGE_BUCKETS[0][0]:
        tip = "Update more frequently. Monthly updates signal active development."

    notes = app.release_notes or ""
    if len(notes) > RELEASE_NOTES_DETAILED:
        score += 3
    elif notes:
        score += 1
        tip = tip or "Write detailed release notes. Users read them."
    else:
        tip = tip or "Add release notes to each update."

    if _major_version(app.version) >= MATURE_MAJOR_VERSION:
        score += 1

    when = f"{age} days ago" if age is not None else "on an unknown date"
    return _dimension("update_cadence", "Update Cadence", score,
                      f"Last updated {when} (v{app.version or '?'}).",
                      tip or "Great update frequency.")


def score_accessibility(app: CanonicalAppRecord) -> DimensionScore:
    tip = ""
    languages = len(app.language_codes)
    devices = len(app.supported_devices)

    score = _bucket(languages, LANGUAGE_BUCKETS)
    if languages < LANGUAGE_BUCKETS[2][0]:
        tip = "Single language only. Localization can 2-3x downloads."
    elif languages < LANGUAGE_BUCKETS[1][0]:
        tip = "Limited language support. Localize for top markets."
    elif languages < LANGUAGE_BUCKETS[0][0]:
        tip = "Add more localizations to expand market reach."

    device_points = _bucket(devices, DEVICE_BUCKETS)
    score += device_points
    if device_points <= 1:
        tip = tip or "Support more devices for wider reach."

    if app.content_rating:
        score += CONTENT_RATING_POINTS.get(app.content_rating, 1)

    return _dimension("accessibility", "Accessibility", score,
                      f"{languages} languages, {devices} devices, rated {app.content_rating or 'unrated'}.",
                      tip or "Good accessibility signals.")


def score_privacy(app: CanonicalAppRecord) -> DimensionScore:
    if app.privacy_labels:
        if PRIVACY_NOT_COLLECTED_LABEL in app.privacy_labels:
            score = 10
            tip = "No data collected. A strong trust signal on the product page."
        else:
            score = max(10 - len(app.privacy_labels), 6)
            tip = "Review your privacy labels. Every data type you drop builds trust."
        details = f"Privacy labels: {', '.join(app.privacy_labels)}."
    else:
        # Labels aren't in the lookup API, so this is an estimate
        score = PRIVACY_DEFAULT_SCORE
        tip = "Privacy labels couldn't be read, so this score is an estimate. Check them in a detailed report."
        if app.primary_genre in PRIVACY_SENSITIVE_GENRES:
            score -= 1
            tip = "Privacy-sensitive category detected. Ensure App Privacy labels are thorough."
        details = f"Category: {app.primary_genre or 'unknown'}. {len(app.advisories)} content advisories."

    if app.advisories:
        score -= 1

    return _dimension("privacy", "Privacy & Security", max(score, 1), details, tip)


def score_legal(app: CanonicalAppRecord) -> DimensionScore:
    score = 0
    tip = ""

    # A developer website is the proxy for a privacy policy and terms
    if app.seller_url:
        score += 5
    else:
        tip = "No developer website found. Add one with privacy policy and terms."

    if app.content_advisory_rating or app.content_rating:
        score += 3

    if len(app.developer) > 3:
        score += 2

    return _dimension("legal", "Legal", score,
                      f"Developer: {app.developer or 'unknown'}. Website: {'Yes' if app.seller_url else 'None'}.",
                      tip or "Legal basics covered. Ensure privacy policy is linked and up-to-date.")


def score_category_standing(app: CanonicalAppRecord) -> DimensionScore:
    # No ranking data is public; rating volume stands in for it
    tip = ""
    count = to_int(app.rating_count)
    rating = to_float(app.average_rating)

    volume = _bucket(count, RANKING_COUNT_BUCKETS)
    score = volume
    if volume == 3:
        tip = "Moderate traction. Focus on ASO and marketing to climb rankings."
    elif volume == 2:
        tip = "Low visibility. Invest in ASO keywords and marketing campaigns."
    elif volume < 2:
        tip = "Very low visibility. You need marketing and ASO optimization urgently."

    if rating >= RATING_EXCELLENT:
        score += 3
    elif rating >= RATING_GOOD:
        score += 2
    elif rating > 0:
        score += 1

    if len(app.genres) >= 2:
        score += 2
    elif app.genres:
        score += 1

    return _dimension("category_standing", "Category Standing", score,
                      f"{count:,} ratings in {app.primary_genre or 'an unknown category'}. "
                      f"Estimated from public signals.",
                      tip or "Strong category presence.")


def score_identity(app: CanonicalAppRecord) -> DimensionScore:
    score = 0
    tip = ""

    if app.icon_url:
        score += 4
        if any(token in app.icon_url for token in ICON_HIGH_RES_TOKENS):
            score += 2
        else:
            tip = "Serve a 512px+ icon so it stays sharp on every surface."
    else:
        tip = "No icon found. The icon is the first thing users see in search."

    if app.developer:
        score += 2
    else:
        tip = tip or "Publish under a recognizable developer name."

    # Keyword-stuffed titles ("Name - Best X | Y") read as spam
    if 0 < len(app.name) <= TITLE_LENGTH_RANGE[1] and "|" not in app.name and " - " not in app.name:
        score += 2
    else:
        tip = tip or "Keep the app name short and brandable. Move keywords to the subtitle."

    return _dimension("identity", "Icon & Identity", score,
                      f"Icon: {'Yes' if app.icon_url else 'None'}. Name: {len(app.name)} chars.",
                      tip or "Strong, recognizable identity.")


# ============================================================
# PART 3: Aggregation
# ============================================================

def compute_dimensions(app: CanonicalAppRecord, now: Optional[datetime] = None) -> list[DimensionScore]:
    now = now or datetime.now(timezone.utc)
    return [
        score_discoverability(app),
        score_screenshots(app),
        score_pricing(app),
        score_reviews(app),
        score_update_cadence(app, now),
        score_accessibility(app),
        score_privacy(app),
        score_legal(app),
        score_category_standing(app),
        score_identity(app),
    ]


def _relative(d: DimensionScore) -> float:
    return d.score / d.max_score if d.max_score else 0.0


def overall_score(dimensions: list[DimensionScore], weights: Optional[dict] = None) -> int:
    """round(100 * sum(relative * weight) / sum(weight)); 0 when there is nothing to weigh."""
    weights = weights or DIMENSION_WEIGHTS
    total_weight = sum(weights.get(d.name, 0) for d in dimensions)
    if not total_weight:
        return 0
    weighted = sum(_relative(d) * weights.get(d.name, 0) for d in dimensions)
    return round(100 * weighted / total_weight)


def grade_for(score: int) -> str:
    for lower_bound, grade in GRADE_THRESHOLDS:
        if score >= lower_bound:
            return grade
    return FALLBACK_GRADE


def improvement_priority(d: DimensionScore, weights: Optional[dict] = None) -> float:
    """
    Weighted performance gap: (relative - 1) * weight.
    Most negative = weakest where it matters most; a perfect dimension is 0.

    Not the plain relative * weight product: that would rank a weak but
    unimportant dimension ahead of a weak, important one, the opposite of
    what the improvement list is for.
    """
    weights = weights or DIMENSION_WEIGHTS
    return (_relative(d) - 1) * weights.get(d.name, 0)


def rank_improvements(dimensions: list[DimensionScore], weights: Optional[dict] = None,
                      limit: int = TOP_IMPROVEMENTS) -> list[DimensionScore]:
    """Dimensions sorted ascending by priority; ties keep scoring order."""
    return sorted(dimensions, key=lambda d: improvement_priority(d, weights))[:limit]


def top_improvements(dimensions: list[DimensionScore], weights: Optional[dict] = None,
                     limit: int = TOP_IMPROVEMENTS) -> list[str]:
    return [d.tip or f"Improve your {d.label} score."
            for d in rank_improvements(dimensions, weights, limit)]


def score_app(app: CanonicalAppRecord, now: Optional[datetime] = None,
              weights: Optional[dict] = None) -> ScoreReport:
    """Main scoring entry point."""
    dimensions = compute_dimensions(app, now)
    overall = overall_score(dimensions, weights)

    return ScoreReport(
        app_name=app.name,
        app_icon=app.icon_url,
        developer=app.developer,
        overall_score=overall,
        grade=grade_for(overall),
        dimensions=dimensions,
        top_improvements=top_improvements(dimensions, weights),
    )
