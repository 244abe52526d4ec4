import logging

from fastapi import APIRouter, Depends, HTTPException

from seo_remediation.dependencies import (
    get_audit_store,
    get_derived_view_service,
    get_fix_ledger,
    get_remediation_service,
)
from seo_remediation.errors import AuditNotFound
from seo_remediation.schemas import (
    ApplyFixRequest,
    BatchFixRequest,
    BatchFixResponse,
    FixedIssuesReport,
    FixRecord,
    FixResult,
    FixSummary,
    MarkFixedRequest,
    RevertFixRequest,
)
from seo_remediation.services.audit_store import AuditStore
from seo_remediation.services.derived_view import DerivedViewService
from seo_remediation.services.fix_ledger import FixLedger
from seo_remediation.services.safe_remediation import SafeRemediationService

logger = logging.getLogger(__name__)

router = APIRouter()


def require_audit(audit_id: int, store: AuditStore):
    try:
        return store.get_audit(audit_id)
    except AuditNotFound:
        raise HTTPException(status_code=404, detail="Audit not found")


@router.post("/{audit_id}/apply-fix", response_model=FixResult)
def apply_fix(
    audit_id: int,
    request: ApplyFixRequest,
    store: AuditStore = Depends(get_audit_store),
    remediation: SafeRemediationService = Depends(get_remediation_service),
):
    """Apply one fix to the live site, rolling it back if the page structure breaks"""
    require_audit(audit_id, store)
    return remediation.apply_fix(audit_id, request.fix)


@router.post("/{audit_id}/apply-fixes-batch", response_model=BatchFixResponse)
def apply_fixes_batch(
    audit_id: int,
    request: BatchFixRequest,
    store: AuditStore = Depends(get_audit_store),
    remediation: SafeRemediationService = Depends(get_remediation_service),
):
    require_audit(audit_id, store)
    return BatchFixResponse(results=remediation.batch_apply_fixes(audit_id, request.fixes))


@router.get("/{audit_id}/fixed-issues", response_model=FixedIssuesReport)
def get_fixed_issues(
    audit_id: int,
    store: AuditStore = Depends(get_audit_store),
    views: DerivedViewService = Depends(get_derived_view_service),
):
    """Original vs. current score and issue counts for a completed audit"""
    require_audit(audit_id, store)
    snapshot = store.get_snapshot(audit_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Audit results not found")
    return views.fixed_issues_report(audit_id, snapshot)


@router.get("/{audit_id}/fixed-issues/summary", response_model=FixSummary)
def get_fix_summary(audit_id: int, ledger: FixLedger = Depends(get_fix_ledger)):
    return ledger.summary(audit_id)


@router.get("/{audit_id}/fixed-issues/check")
def check_fixed(audit_id: int, issue_type: str, page_url: str, ledger: FixLedger = Depends(get_fix_ledger)):
    return {"fixed": ledger.is_fixed(audit_id, issue_type, page_url)}


@router.post("/{audit_id}/fixed-issues", response_model=FixRecord)
def mark_fixed(
    audit_id: int,
    request: MarkFixedRequest,
    store: AuditStore = Depends(get_audit_store),
    ledger: FixLedger = Depends(get_fix_ledger),
):
    """Record an issue as fixed without touching the live site"""
    require_audit(audit_id, store)
    try:
        return ledger.mark_fixed(audit_id, request.issue_type, request.page_url, request.fix_details)
    except Exception as e:
        logger.error("Error marking issue fixed for audit %s: %s", audit_id, e)
        raise HTTPException(status_code=500, detail=f"Failed to mark issue fixed: {str(e)}")


@router.post("/{audit_id}/fixed-issues/revert")
def revert_fix(
    audit_id: int,
    request: RevertFixRequest,
    store: AuditStore = Depends(get_audit_store),
    ledger: FixLedger = Depends(get_fix_ledger),
):
    """Forget a recorded fix. The live page is not changed back."""
    require_audit(audit_id, store)
    try:
        reverted = ledger.revert(audit_id, request.issue_type, request.page_url)
    except Exception as e:
        logger.error("Error reverting fix for audit %s: %s", audit_id, e)
        raise HTTPException(status_code=500, detail=f"Failed to revert fix: {str(e)}")
    return {"reverted": reverted}
