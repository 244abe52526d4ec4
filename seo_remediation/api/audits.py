import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from seo_remediation.dependencies import get_audit_store, get_derived_view_service, get_fix_ledger
from seo_remediation.errors import AuditNotFound, SnapshotAlreadyAttached
from seo_remediation.models import Audit
from seo_remediation.schemas import (
    AuditCreate,
    AuditFailure,
    AuditResponse,
    AuditSnapshot,
    ProgressUpdate,
)
from seo_remediation.services.audit_store import AuditStore
from seo_remediation.services.derived_view import DerivedViewService
from seo_remediation.services.fix_ledger import FixLedger

logger = logging.getLogger(__name__)

router = APIRouter()


def to_response(audit: Audit, views: DerivedViewService) -> AuditResponse:
    """Audit as stored, with its results replaced by the current derived view."""
    results = None
    original_score = None
    if audit.results is not None:
        snapshot = AuditSnapshot.model_validate(audit.results)
        results = views.derived_snapshot(audit.id, snapshot)
        original_score = snapshot.stats.seo_score

    return AuditResponse(
        id=audit.id,
        url=audit.url,
        industry=audit.industry,
        status=audit.status,
        progress=audit.progress,
        created_at=audit.created_at,
        completed_at=audit.completed_at,
        results=results,
        original_score=original_score,
        error_message=audit.error_message,
    )


@router.post("/", response_model=AuditResponse)
def create_audit(audit: AuditCreate, store: AuditStore = Depends(get_audit_store)):
    """Create an audit record; the crawl pipeline fills it in."""
    return store.create_audit(audit)


@router.get("/", response_model=List[AuditResponse])
def list_audits(
    skip: int = 0,
    limit: int = 100,
    status: Optional[str] = None,
    store: AuditStore = Depends(get_audit_store),
    views: DerivedViewService = Depends(get_derived_view_service),
):
    """List audits with optional status filtering"""
    return [to_response(audit, views) for audit in store.list_audits(skip, limit, status)]


@router.get("/{audit_id}", response_model=AuditResponse)
def get_audit(
    audit_id: int,
    store: AuditStore = Depends(get_audit_store),
    views: DerivedViewService = Depends(get_derived_view_service),
):
    """Get an audit with fixed issues filtered out and the score recomputed"""
    try:
        return to_response(store.get_audit(audit_id), views)
    except AuditNotFound:
        raise HTTPException(status_code=404, detail="Audit not found")


@router.delete("/{audit_id}")
def delete_audit(
    audit_id: int,
    store: AuditStore = Depends(get_audit_store),
    ledger: FixLedger = Depends(get_fix_ledger),
):
    """Delete an audit and its fix records"""
    try:
        store.delete_audit(audit_id)
    except AuditNotFound:
        raise HTTPException(status_code=404, detail="Audit not found")
    ledger.clear_audit(audit_id)
    return {"message": "Audit deleted successfully"}


@router.patch("/{audit_id}/progress", response_model=AuditResponse)
def update_progress(
    audit_id: int,
    update: ProgressUpdate,
    store: AuditStore = Depends(get_audit_store),
    views: DerivedViewService = Depends(get_derived_view_service),
):
    try:
        audit = store.update_progress(audit_id, update.progress, update.status)
    except AuditNotFound:
        raise HTTPException(status_code=404, detail="Audit not found")
    return to_response(audit, views)


@router.post("/{audit_id}/complete", response_model=AuditResponse)
def complete_audit(
    audit_id: int,
    snapshot: AuditSnapshot,
    store: AuditStore = Depends(get_audit_store),
    views: DerivedViewService = Depends(get_derived_view_service),
):
    """Attach the final results. Results are immutable once attached."""
    try:
        audit = store.complete_audit(audit_id, snapshot)
    except AuditNotFound:
        raise HTTPException(status_code=404, detail="Audit not found")
    except SnapshotAlreadyAttached:
        raise HTTPException(status_code=409, detail="Audit results already recorded")
    return to_response(audit, views)


@router.post("/{audit_id}/fail", response_model=AuditResponse)
def fail_audit(
    audit_id: int,
    failure: AuditFailure,
    store: AuditStore = Depends(get_audit_store),
    views: DerivedViewService = Depends(get_derived_view_service),
):
    try:
        audit = store.fail_audit(audit_id, failure.error_message)
    except AuditNotFound:
        raise HTTPException(status_code=404, detail="Audit not found")
    return to_response(audit, views)
