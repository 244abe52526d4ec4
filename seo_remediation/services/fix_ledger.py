import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from seo_remediation import config
from seo_remediation.schemas import FixRecord, FixSummary, RecentFix
from seo_remediation.services.fix_store import FixStore, InMemoryFixStore

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Trim, drop one trailing slash and lowercase."""
    normalized = (url or "").strip()
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized.lower()


class FixLedger:
    """Idempotent record of which (issue type, page) pairs were remediated per audit.

    Pages are compared by normalized URL. ``aliases`` maps a page URL that
    moved after the audit ran to the URL it moved to, so a fix recorded
    against either one matches issues reported against the other.
    """

    def __init__(
        self,
        store: Optional[FixStore] = None,
        aliases: Optional[Dict[str, str]] = None,
        recent_limit: int = config.RECENT_FIXES_LIMIT,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store if store is not None else InMemoryFixStore()
        self.aliases = {
            normalize_url(alias): normalize_url(canonical)
            for alias, canonical in (config.URL_ALIASES if aliases is None else aliases).items()
        }
        self.recent_limit = recent_limit
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def normalize(self, url: str) -> str:
        normalized = normalize_url(url)
        return self.aliases.get(normalized, normalized)

    def matches(self, record: FixRecord, issue_type: str, page_url: str) -> bool:
        return record.issue_type == issue_type and self.normalize(record.page_url) == self.normalize(page_url)

    def records(self, audit_id: int) -> List[FixRecord]:
        return self.store.get(audit_id)

    def mark_fixed(
        self,
        audit_id: int,
        issue_type: str,
        page_url: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> FixRecord:
        """Record a fix; a second call for the same key returns the existing record."""
        existing = self._find(audit_id, issue_type, page_url)
        if existing is not None:
            return existing

        record = FixRecord(
            audit_id=audit_id,
            issue_type=issue_type,
            page_url=page_url,
            normalized_url=self.normalize(page_url),
            fixed_at=self.clock(),
            fix_details=details,
        )
        if not self.store.put(record):
            # Lost a race with an identical insert
            return self._find(audit_id, issue_type, page_url) or record

        logger.info("Issue tracked as fixed: %s on %s (audit %s)", issue_type, page_url, audit_id)
        return record

    def is_fixed(self, audit_id: int, issue_type: str, page_url: str) -> bool:
        return self._find(audit_id, issue_type, page_url) is not None

    def revert(self, audit_id: int, issue_type: str, page_url: str) -> bool:
        """Drop the ledger records for this key. The live page is left as it is."""
        removed = 0
        for record in self.store.get(audit_id):
            if self.matches(record, issue_type, page_url):
                removed += self.store.delete(audit_id, record.issue_type, record.normalized_url)
        if removed:
            logger.info("Reverted fix: %s on %s (audit %s)", issue_type, page_url, audit_id)
        return removed > 0

    def summary(self, audit_id: int) -> FixSummary:
        records = self.store.get(audit_id)
        by_type: Dict[str, int] = {}
        for record in records:
            by_type[record.issue_type] = by_type.get(record.issue_type, 0) + 1

        recent = sorted(records, key=lambda r: r.fixed_at, reverse=True)[: self.recent_limit]
        return FixSummary(
            total_fixed=len(records),
            by_type=by_type,
            recent_fixes=[
                RecentFix(issue_type=r.issue_type, page_url=r.page_url, fixed_at=r.fixed_at)
                for r in recent
            ],
        )

    def clear_audit(self, audit_id: int) -> int:
        return self.store.delete_audit(audit_id)

    def _find(self, audit_id: int, issue_type: str, page_url: str) -> Optional[FixRecord]:
        for record in self.store.get(audit_id):
            if self.matches(record, issue_type, page_url):
                return record
        return None
