import logging
from typing import Optional

from seo_remediation.schemas import IntegrityReport, RepairAction, RepairPlan, RepairValidation
from seo_remediation.services.html_integrity import HTMLIntegrityService

logger = logging.getLogger(__name__)

EXPECTED_OUTCOME = (
    "After repairs, the page will have clean HTML structure allowing safe SEO fixes. "
    "Meta descriptions, title tags, and content modifications can be applied without "
    "risk of page corruption."
)


def plan_repairs(url: str, report: IntegrityReport) -> RepairPlan:
    """Map each structural failure in ``report`` to a manual repair action."""
    actions = []

    if any(error.startswith("Failed to fetch page") for error in report.critical_errors):
        actions.append(RepairAction(
            issue="Page could not be fetched",
            solution="Confirm the page is published and reachable, then re-run the integrity check",
            code_example="curl -I " + url,
            risk_level="low",
            estimated_time="2-5 minutes",
        ))
        return RepairPlan(
            page_url=url,
            current_issues=report.critical_errors,
            repair_actions=actions,
            expected_outcome="The page can be checked once it is reachable.",
            backup_required=False,
        )

    if report.unclosed_tags:
        actions.append(RepairAction(
            issue=f"Unclosed HTML tags: {', '.join(sorted(set(report.unclosed_tags)))}",
            solution="Close all open HTML tags in proper order",
            code_example=(
                "<!-- Before: <div><p>Content -->\n"
                "<!-- After: <div><p>Content</p></div> -->"
            ),
            risk_level="medium",
            estimated_time="10-15 minutes",
        ))

    if not report.has_valid_doctype:
        actions.append(RepairAction(
            issue="Missing or invalid DOCTYPE",
            solution="Add an HTML5 DOCTYPE declaration as the first line of the document",
            code_example='<!DOCTYPE html>\n<html lang="en">',
            risk_level="low",
            estimated_time="2-3 minutes",
        ))

    if not report.has_single_html_root:
        actions.append(RepairAction(
            issue="Invalid HTML root structure",
            solution="Wrap the document in exactly one <html> element",
            code_example="<html lang=\"en\">\n  <head>...</head>\n  <body>...</body>\n</html>",
            risk_level="high",
            estimated_time="15-20 minutes",
        ))

    if not report.has_single_head:
        actions.append(RepairAction(
            issue="Invalid HEAD section structure",
            solution="Ensure a single, properly structured HEAD section",
            code_example=(
                "<head>\n"
                '  <meta charset="UTF-8">\n'
                '  <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
                "  <title>Page Title</title>\n"
                "</head>"
            ),
            risk_level="medium",
            estimated_time="5-8 minutes",
        ))

    if not report.has_single_body:
        actions.append(RepairAction(
            issue="Invalid BODY section structure",
            solution="Ensure a single, properly structured BODY section",
            code_example="<body>\n  <header>...</header>\n  <main>...</main>\n  <footer>...</footer>\n</body>",
            risk_level="high",
            estimated_time="15-20 minutes",
        ))

    return RepairPlan(
        page_url=url,
        current_issues=report.critical_errors,
        repair_actions=actions,
        expected_outcome=EXPECTED_OUTCOME,
        backup_required=any(action.risk_level == "high" for action in actions),
    )


class HTMLRepairService:
    def __init__(self, integrity: Optional[HTMLIntegrityService] = None):
        self.integrity = integrity or HTMLIntegrityService()

    def analyze_repair_needs(self, url: str) -> RepairPlan:
        report = self.integrity.check_integrity(url)
        plan = plan_repairs(url, report)
        logger.info("Repair plan for %s: %d action(s)", url, len(plan.repair_actions))
        return plan

    def validate_repair(self, url: str) -> RepairValidation:
        report = self.integrity.check_integrity(url)
        return RepairValidation(
            is_repaired=not report.critical_errors,
            remaining_issues=report.critical_errors,
            ready_for_seo_fixes=report.is_valid and report.has_single_head and report.has_single_body,
        )
