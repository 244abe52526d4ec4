import logging
import math
from typing import Iterable, Sequence

from seo_remediation import config
from seo_remediation.schemas import PageData, SEOIssue, Severity

logger = logging.getLogger(__name__)

# Per-page issue density above which an extra penalty applies
DENSITY_THRESHOLD = 5.0

# Points credited to a derived score for each distinct issue type marked fixed
MISSING_TAG_WEIGHT = 8
LENGTH_WEIGHT = 4
DEFAULT_FIX_WEIGHT = 2


def _has_text(value) -> bool:
    return bool(value and value.strip())


def compute_score(
    pages: Sequence[PageData],
    issues: Sequence[SEOIssue],
    floor: int = config.SCORE_FLOOR,
    no_pages_score: int = config.NO_PAGES_SCORE,
) -> int:
    """Score a crawl from 0 to 100 based on issue density and tag coverage."""
    if not pages:
        # Nothing could be crawled
        logger.info("SEO score: no pages analyzed, returning %s", no_pages_score)
        return no_pages_score

    total_pages = len(pages)
    critical = sum(1 for i in issues if i.severity == Severity.CRITICAL)
    medium = sum(1 for i in issues if i.severity == Severity.MEDIUM)
    low = sum(1 for i in issues if i.severity == Severity.LOW)

    score = 100.0
    score -= min(30.0, critical / total_pages * 50)
    score -= min(25.0, medium / total_pages * 25)
    score -= min(15.0, low / total_pages * 15)

    density = len(issues) / total_pages
    if density > DENSITY_THRESHOLD:
        score -= min(10.0, (density - DENSITY_THRESHOLD) * 2)

    title_ratio = sum(1 for p in pages if _has_text(p.title)) / total_pages
    meta_ratio = sum(1 for p in pages if _has_text(p.meta_description)) / total_pages
    h1_ratio = sum(1 for p in pages if any(_has_text(h) for h in p.h1)) / total_pages

    score += title_ratio * 10
    score += meta_ratio * 8
    score += h1_ratio * 5

    # Halves round up
    final = max(floor, min(100, math.floor(score + 0.5)))
    logger.debug(
        "SEO score %s (critical=%d medium=%d low=%d pages=%d)",
        final, critical, medium, low, total_pages,
    )
    return final


def fixed_issue_weight(issue_type: str) -> int:
    name = issue_type.lower()
    if "missing title" in name or "missing meta description" in name:
        return MISSING_TAG_WEIGHT
    if "too long" in name or "too short" in name:
        return LENGTH_WEIGHT
    return DEFAULT_FIX_WEIGHT


def rescore(base_score: int, fixed_issue_types: Iterable[str]) -> int:
    """Credit ``base_score`` once per distinct fixed issue type, clamped to 0..100."""
    score = base_score + sum(fixed_issue_weight(t) for t in set(fixed_issue_types))
    return max(0, min(100, score))
