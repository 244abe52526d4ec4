"""Storage backends for the fix ledger.

A store keeps records keyed by ``(audit_id, issue_type, normalized_url)``.
``put`` must be atomic per key: two concurrent inserts of the same key
leave exactly one record behind. Everything else (URL normalization,
matching, summaries) lives in :class:`~seo_remediation.services.fix_ledger.FixLedger`.
"""

import logging
import threading
from typing import Dict, List, Protocol, Tuple

from sqlalchemy.exc import IntegrityError

from seo_remediation.models import FixRecordRow
from seo_remediation.schemas import FixRecord

logger = logging.getLogger(__name__)


class FixStore(Protocol):
    def get(self, audit_id: int) -> List[FixRecord]:
        ...

    def put(self, record: FixRecord) -> bool:
        ...

    def delete(self, audit_id: int, issue_type: str, normalized_url: str) -> int:
        ...

    def delete_audit(self, audit_id: int) -> int:
        ...


class InMemoryFixStore:
    def __init__(self):
        self._records: Dict[int, Dict[Tuple[str, str], FixRecord]] = {}
        self._lock = threading.Lock()

    def get(self, audit_id: int) -> List[FixRecord]:
        with self._lock:
            return list(self._records.get(audit_id, {}).values())

    def put(self, record: FixRecord) -> bool:
        key = (record.issue_type, record.normalized_url)
        with self._lock:
            records = self._records.setdefault(record.audit_id, {})
            if key in records:
                return False
            records[key] = record
            return True

    def delete(self, audit_id: int, issue_type: str, normalized_url: str) -> int:
        with self._lock:
            records = self._records.get(audit_id, {})
            return 1 if records.pop((issue_type, normalized_url), None) else 0

    def delete_audit(self, audit_id: int) -> int:
        with self._lock:
            return len(self._records.pop(audit_id, {}))


class SqlAlchemyFixStore:
    """Durable store on the ``fix_records`` table; the unique constraint makes ``put`` idempotent."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get(self, audit_id: int) -> List[FixRecord]:
        with self.session_factory() as db:
            rows = db.query(FixRecordRow).filter(FixRecordRow.audit_id == audit_id).all()
            return [FixRecord.model_validate(row) for row in rows]

    def put(self, record: FixRecord) -> bool:
        with self.session_factory() as db:
            db.add(FixRecordRow(**record.model_dump()))
            try:
                db.commit()
            except IntegrityError:
                # Someone else committed the same key first
                db.rollback()
                logger.debug(
                    "Duplicate fix record ignored: audit=%s type=%s url=%s",
                    record.audit_id, record.issue_type, record.normalized_url,
                )
                return False
            return True

    def delete(self, audit_id: int, issue_type: str, normalized_url: str) -> int:
        with self.session_factory() as db:
            removed = (
                db.query(FixRecordRow)
                .filter(
                    FixRecordRow.audit_id == audit_id,
                    FixRecordRow.issue_type == issue_type,
                    FixRecordRow.normalized_url == normalized_url,
                )
                .delete(synchronize_session=False)
            )
            db.commit()
            return removed

    def delete_audit(self, audit_id: int) -> int:
        with self.session_factory() as db:
            removed = (
                db.query(FixRecordRow)
                .filter(FixRecordRow.audit_id == audit_id)
                .delete(synchronize_session=False)
            )
            db.commit()
            return removed
