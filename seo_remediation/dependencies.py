from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from seo_remediation.database import SessionLocal, get_db
from seo_remediation.services.audit_store import AuditStore
from seo_remediation.services.derived_view import DerivedViewService
from seo_remediation.services.fix_ledger import FixLedger
from seo_remediation.services.fix_store import SqlAlchemyFixStore
from seo_remediation.services.html_integrity import HTMLIntegrityService
from seo_remediation.services.html_repair import HTMLRepairService
from seo_remediation.services.safe_remediation import SafeRemediationService
from seo_remediation.services.wordpress_service import WordPressService


def get_audit_store(db: Session = Depends(get_db)) -> AuditStore:
    return AuditStore(db)


@lru_cache(maxsize=None)
def get_fix_ledger() -> FixLedger:
    return FixLedger(SqlAlchemyFixStore(SessionLocal))


@lru_cache(maxsize=None)
def get_integrity_service() -> HTMLIntegrityService:
    return HTMLIntegrityService()


@lru_cache(maxsize=None)
def get_content_service() -> WordPressService:
    return WordPressService()


def get_repair_service(integrity: HTMLIntegrityService = Depends(get_integrity_service)) -> HTMLRepairService:
    return HTMLRepairService(integrity)


def get_derived_view_service(ledger: FixLedger = Depends(get_fix_ledger)) -> DerivedViewService:
    return DerivedViewService(ledger)


def get_remediation_service(
    integrity: HTMLIntegrityService = Depends(get_integrity_service),
    content: WordPressService = Depends(get_content_service),
    ledger: FixLedger = Depends(get_fix_ledger),
) -> SafeRemediationService:
    return SafeRemediationService(integrity, content, ledger)
