import logging
from typing import List

from seo_remediation.schemas import (
    AuditSnapshot,
    AuditStats,
    DerivedView,
    FixedIssuesReport,
    FixImpact,
    FixRecord,
    SEOIssue,
)
from seo_remediation.services.fix_ledger import FixLedger
from seo_remediation.services.score_model import rescore

logger = logging.getLogger(__name__)


class DerivedViewService:
    """Current issues and score for an audit: the stored snapshot with the fix ledger laid over it.

    Recomputed on every read and never written back, so reverting a fix
    restores the original issue and score immediately.
    """

    def __init__(self, ledger: FixLedger):
        self.ledger = ledger

    def _is_covered(self, issue: SEOIssue, records: List[FixRecord]) -> bool:
        if not issue.page:
            return False
        return any(self.ledger.matches(record, issue.type, issue.page) for record in records)

    def get_derived_view(self, audit_id: int, snapshot: AuditSnapshot) -> DerivedView:
        records = self.ledger.records(audit_id)
        issues = [issue for issue in snapshot.issues if not self._is_covered(issue, records)]
        score = rescore(snapshot.stats.seo_score, {record.issue_type for record in records})
        stats = AuditStats(
            seo_score=score,
            pages_analyzed=snapshot.stats.pages_analyzed,
            issue_count=len(issues),
            opportunity_count=snapshot.stats.opportunity_count,
        )
        return DerivedView(issues=issues, stats=stats)

    def derived_snapshot(self, audit_id: int, snapshot: AuditSnapshot) -> AuditSnapshot:
        view = self.get_derived_view(audit_id, snapshot)
        return AuditSnapshot(pages=snapshot.pages, issues=view.issues, stats=view.stats)

    def fixed_issues_report(self, audit_id: int, snapshot: AuditSnapshot) -> FixedIssuesReport:
        view = self.get_derived_view(audit_id, snapshot)
        summary = self.ledger.summary(audit_id)
        original_score = snapshot.stats.seo_score
        improvement = view.stats.seo_score - original_score

        if summary.total_fixed == 0:
            impact = FixImpact(
                description="No issues have been fixed yet.",
                recommendation="Start with critical issues such as missing titles and meta descriptions.",
            )
        else:
            impact = FixImpact(
                description=(
                    f"{summary.total_fixed} issue(s) fixed across {len(summary.by_type)} issue type(s), "
                    f"raising the SEO score by {improvement} point(s)."
                ),
                recommendation=(
                    f"{len(view.issues)} issue(s) remain. Re-run the audit to confirm the fixes "
                    "are visible to search engines."
                    if view.issues
                    else "All reported issues are fixed. Re-run the audit to confirm."
                ),
            )

        return FixedIssuesReport(
            original_score=original_score,
            improved_score=view.stats.seo_score,
            score_improvement=improvement,
            original_issues=len(snapshot.issues),
            remaining_issues=len(view.issues),
            fixed_summary=summary,
            impact=impact,
        )
