import pytest

from seo_remediation.schemas import PageData, SEOIssue, Severity
from seo_remediation.services.score_model import compute_score, fixed_issue_weight, rescore


def bare_pages(count):
    return [PageData(url=f"https://example.com/{n}") for n in range(count)]


def issues(severity, count):
    return [SEOIssue(type="Thin Content", severity=severity, message="Too short") for _ in range(count)]


def test_no_pages_scores_fifteen():
    assert compute_score([], issues(Severity.CRITICAL, 3)) == 15


def test_single_critical_issue_on_bare_page():
    assert compute_score(bare_pages(1), issues(Severity.CRITICAL, 1)) == 70


def test_half_points_round_up():
    # 100 - 1/2 * 15 = 92.5
    assert compute_score(bare_pages(2), issues(Severity.LOW, 1)) == 93


def test_density_penalty_only_above_threshold():
    assert compute_score(bare_pages(2), issues(Severity.LOW, 10)) == 85
    assert compute_score(bare_pages(2), issues(Severity.LOW, 12)) == 83


def test_tag_coverage_bonus_is_clamped_to_100():
    pages = [PageData(url="https://example.com/", title="Home", meta_description="About us", h1=["Welcome"])]
    assert compute_score(pages, []) == 100


def test_partial_coverage_bonus():
    pages = [PageData(url="https://example.com/a", title="A"), PageData(url="https://example.com/b")]
    # 100 - min(30, 1/2 * 50) + 0.5 * 10
    assert compute_score(pages, issues(Severity.CRITICAL, 1)) == 80


def test_whitespace_titles_earn_no_bonus():
    pages = [PageData(url="https://example.com/", title="   ", meta_description="", h1=[" "])]
    assert compute_score(pages, issues(Severity.CRITICAL, 1)) == 70


def test_floor_applies():
    assert compute_score(bare_pages(1), issues(Severity.CRITICAL, 10), floor=75) == 75


@pytest.mark.parametrize("issue_type, weight", [
    ("Missing Title Tag", 8),
    ("Missing Meta Description", 8),
    ("Title Too Long", 4),
    ("Meta Description Too Short", 4),
    ("Missing Alt Text", 2),
    ("Thin Content", 2),
])
def test_fixed_issue_weights(issue_type, weight):
    assert fixed_issue_weight(issue_type) == weight


def test_rescore_counts_each_type_once():
    assert rescore(19, ["Missing Meta Description", "Missing Meta Description"]) == 27


def test_rescore_is_clamped():
    assert rescore(95, ["Missing Title Tag", "Missing Meta Description"]) == 100
    assert rescore(0, []) == 0


def test_rescore_without_fixes_is_identity():
    assert rescore(42, []) == 42
