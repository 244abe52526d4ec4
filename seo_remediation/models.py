from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, UniqueConstraint

from seo_remediation.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Audit(Base):
    __tablename__ = "audits"

    id = Column(Integer, primary_key=True, index=True)
    url = Column(Text, nullable=False)
    industry = Column(String(100), nullable=False, default="general")
    email = Column(String(255))
    status = Column(String(20), nullable=False, default="pending")
    progress = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True))
    # Immutable AuditSnapshot, attached once at completion
    results = Column(JSON)
    error_message = Column(Text)


class FixRecordRow(Base):
    __tablename__ = "fix_records"
    __table_args__ = (
        UniqueConstraint("audit_id", "issue_type", "normalized_url", name="uq_fix_record_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    audit_id = Column(Integer, nullable=False, index=True)
    issue_type = Column(String(255), nullable=False)
    page_url = Column(Text, nullable=False)
    normalized_url = Column(String(2048), nullable=False)
    fixed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    fix_details = Column(JSON)
