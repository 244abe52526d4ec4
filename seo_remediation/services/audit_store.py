import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from seo_remediation.errors import AuditNotFound, SnapshotAlreadyAttached
from seo_remediation.models import Audit, utcnow
from seo_remediation.schemas import AuditCreate, AuditSnapshot, AuditStatus

logger = logging.getLogger(__name__)


class AuditStore:
    """Audit records. Status and progress belong to the processing pipeline;
    the snapshot is attached once, at completion, and is read-only afterwards."""

    def __init__(self, db: Session):
        self.db = db

    def create_audit(self, audit: AuditCreate) -> Audit:
        db_audit = Audit(
            url=audit.url,
            industry=audit.industry,
            email=audit.email,
            status=AuditStatus.PENDING.value,
            progress=0,
            created_at=utcnow(),
        )
        self.db.add(db_audit)
        self.db.commit()
        self.db.refresh(db_audit)
        logger.info("Created audit %s for %s", db_audit.id, db_audit.url)
        return db_audit

    def get_audit(self, audit_id: int) -> Audit:
        audit = self.db.query(Audit).filter(Audit.id == audit_id).first()
        if not audit:
            raise AuditNotFound(f"Audit {audit_id} not found")
        return audit

    def list_audits(self, skip: int = 0, limit: int = 100, status: Optional[str] = None) -> List[Audit]:
        query = self.db.query(Audit)
        if status:
            query = query.filter(Audit.status == status)
        return query.order_by(Audit.created_at.desc()).offset(skip).limit(limit).all()

    def get_snapshot(self, audit_id: int) -> Optional[AuditSnapshot]:
        audit = self.get_audit(audit_id)
        if audit.results is None:
            return None
        return AuditSnapshot.model_validate(audit.results)

    def update_progress(self, audit_id: int, progress: int, status: Optional[AuditStatus] = None) -> Audit:
        audit = self.get_audit(audit_id)
        audit.progress = progress
        if status is not None:
            audit.status = status.value
        elif audit.status == AuditStatus.PENDING.value and progress > 0:
            audit.status = AuditStatus.PROCESSING.value
        self.db.commit()
        self.db.refresh(audit)
        return audit

    def complete_audit(self, audit_id: int, snapshot: AuditSnapshot) -> Audit:
        audit = self.get_audit(audit_id)
        if audit.results is not None:
            raise SnapshotAlreadyAttached(f"Audit {audit_id} already has results")
        audit.results = snapshot.model_dump(mode="json")
        audit.status = AuditStatus.COMPLETED.value
        audit.progress = 100
        audit.completed_at = utcnow()
        self.db.commit()
        self.db.refresh(audit)
        logger.info("Audit %s completed with SEO score %s", audit_id, snapshot.stats.seo_score)
        return audit

    def fail_audit(self, audit_id: int, error_message: str) -> Audit:
        audit = self.get_audit(audit_id)
        audit.status = AuditStatus.FAILED.value
        audit.error_message = error_message
        audit.completed_at = utcnow()
        self.db.commit()
        self.db.refresh(audit)
        logger.warning("Audit %s failed: %s", audit_id, error_message)
        return audit

    def delete_audit(self, audit_id: int):
        audit = self.get_audit(audit_id)
        self.db.delete(audit)
        self.db.commit()
