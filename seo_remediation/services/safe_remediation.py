"""Apply SEO fixes to live pages without leaving structural damage behind.

Every fix runs the same fail-closed protocol:

1. resolve the page the fix lands on and check its structure; a page that
   is already invalid is refused before anything is written,
2. perform the edit through the content system, remembering the old value,
3. wait a fixed propagation delay (the content system is eventually
   consistent; this is a deliberate approximation, not a poll),
4. check the structure again,
5. on a new critical error, a failed edit or any exception, write the old
   value back and report the outcome; otherwise record the fix in the ledger.

``apply_fix`` never raises. Every outcome, including a rollback that
itself failed, comes back as a :class:`~seo_remediation.schemas.FixResult`.
"""

import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

from seo_remediation import config
from seo_remediation.errors import IntegrityRegression, MutationFailure
from seo_remediation.schemas import (
    BatchFixItem,
    EditResult,
    FixKind,
    FixOutcome,
    FixResult,
    IntegrityComparison,
    IntegrityReport,
)
from seo_remediation.services.fix_ledger import FixLedger
from seo_remediation.services.html_integrity import HTMLIntegrityService
from seo_remediation.services.wordpress_service import MEDIA, POSTS, WordPressService

logger = logging.getLogger(__name__)

Editor = Callable[[WordPressService, object, int], EditResult]

EDITORS: Dict[FixKind, Editor] = {
    FixKind.META_DESCRIPTION: lambda wp, fix, target: wp.update_meta_description(target, fix.new_value),
    FixKind.TITLE_TAG: lambda wp, fix, target: wp.update_title(target, fix.new_value),
    FixKind.ALT_TEXT: lambda wp, fix, target: wp.update_image_alt_text(target, fix.new_value),
    FixKind.SCHEMA: lambda wp, fix, target: wp.add_schema_markup(target, fix.schema_data),
    FixKind.INTERNAL_LINKS: lambda wp, fix, target: wp.add_internal_links(target, fix.links),
    FixKind.TITLE_SHORTENING: lambda wp, fix, target: wp.update_title(target, fix.new_value),
    FixKind.CONTENT_EXPANSION: lambda wp, fix, target: wp.expand_content(target, fix.new_value),
}

# Field each kind writes, used to restore it when the edit failed before reporting back
EDITED_FIELDS: Dict[FixKind, str] = {
    FixKind.META_DESCRIPTION: "excerpt",
    FixKind.TITLE_TAG: "title",
    FixKind.ALT_TEXT: "alt_text",
    FixKind.SCHEMA: "content",
    FixKind.INTERNAL_LINKS: "content",
    FixKind.TITLE_SHORTENING: "title",
    FixKind.CONTENT_EXPANSION: "content",
}

_unhandled = (set(FixKind) - set(EDITORS)) | (set(FixKind) - set(EDITED_FIELDS))
if _unhandled:
    raise RuntimeError(f"No editor registered for fix kinds: {sorted(k.value for k in _unhandled)}")


def _resource_for(kind: FixKind) -> str:
    return MEDIA if kind == FixKind.ALT_TEXT else POSTS


class SafeRemediationService:
    def __init__(
        self,
        integrity: HTMLIntegrityService,
        content: WordPressService,
        ledger: FixLedger,
        propagation_delay: float = config.PROPAGATION_DELAY,
        batch_delay: float = config.BATCH_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.integrity = integrity
        self.content = content
        self.ledger = ledger
        self.propagation_delay = propagation_delay
        self.batch_delay = batch_delay
        self.sleep = sleep

    def apply_fix(self, audit_id: int, fix) -> FixResult:
        try:
            return self._apply_fix(audit_id, fix)
        except Exception as e:
            # Anything that slipped past the protocol's own handling
            logger.exception("Unexpected error applying %s fix for audit %s", getattr(fix, "kind", "?"), audit_id)
            return FixResult(
                success=False,
                message=f"Unexpected error while applying fix: {e}",
                outcome=FixOutcome.MUTATION_FAILED,
                manual_intervention_required=True,
            )

    def batch_apply_fixes(self, audit_id: int, fixes: Sequence) -> List[BatchFixItem]:
        """Apply fixes one at a time, pausing between them; each result is independent."""
        results = []
        for index, fix in enumerate(fixes):
            result = self.apply_fix(audit_id, fix)
            results.append(BatchFixItem(fix=fix, result=result))
            if index < len(fixes) - 1:
                self.sleep(self.batch_delay)

        succeeded = sum(1 for item in results if item.result.success)
        logger.info("Batch for audit %s: %d/%d fixes applied", audit_id, succeeded, len(results))
        return results

    def _apply_fix(self, audit_id: int, fix) -> FixResult:
        try:
            kind = FixKind(fix.kind)
        except ValueError:
            kind = None
        if kind not in EDITORS:
            return FixResult(
                success=False,
                message=f"Unsupported fix type: {getattr(fix, 'kind', None)}",
                outcome=FixOutcome.UNSUPPORTED_FIX_KIND,
            )

        # 1. Resolve the page and verify it is safe to touch
        try:
            target_id = fix.target_id or self._default_target(kind)
            page_url = self.content.get_page_url(_resource_for(kind), target_id)
        except Exception as e:
            logger.warning("Could not resolve page for %s fix (target %s): %s", kind.value, fix.target_id, e)
            return FixResult(
                success=False,
                message=f"Could not resolve the page for this fix: {e}",
                outcome=FixOutcome.FETCH_FAILED,
            )

        if fix.page_url and self.ledger.normalize(fix.page_url) != self.ledger.normalize(page_url):
            logger.warning(
                "Refusing %s fix: target %s is %s, not %s", kind.value, target_id, page_url, fix.page_url
            )
            return FixResult(
                success=False,
                message=(
                    f"Precondition failed: target {target_id} is on {page_url}, not {fix.page_url}. "
                    "No changes were made."
                ),
                outcome=FixOutcome.PRECONDITION_FAILED,
                page_url=page_url,
            )
        before = self.integrity.check_integrity(page_url)
        if not before.is_valid:
            logger.warning("Refusing %s fix on %s: pre-check failed %s", kind.value, page_url, before.critical_errors)
            return FixResult(
                success=False,
                message=(
                    "Precondition failed: page is not structurally valid before the fix "
                    f"({'; '.join(before.critical_errors)}). No changes were made."
                ),
                outcome=FixOutcome.PRECONDITION_FAILED,
                page_url=page_url,
            )

        # 2-5. Edit, wait, re-check
        edit: Optional[EditResult] = None
        try:
            edit = EDITORS[kind](self.content, fix, target_id)
            if not edit.success:
                raise MutationFailure(edit.message or "Content system rejected the edit", edit=edit)
            self.sleep(self.propagation_delay)
            after = self.integrity.check_integrity(page_url)
            comparison = self.integrity.compare_integrity(before, after)
            if not comparison.integrity_maintained:
                raise IntegrityRegression(
                    "Fix introduced structural errors", new_errors=comparison.new_errors or after.critical_errors
                )
        except IntegrityRegression as e:
            return self._roll_back(
                kind, fix, target_id, page_url, edit,
                reason=f"{e}: {'; '.join(e.new_errors)}",
                outcome=FixOutcome.INTEGRITY_REGRESSION,
                comparison=comparison,
            )
        except MutationFailure as e:
            logger.error("Edit failed for %s fix on %s: %s", kind.value, page_url, e)
            if not e.write_attempted:
                return FixResult(
                    success=False,
                    message=f"Edit failed: {e}. No changes were made.",
                    outcome=FixOutcome.MUTATION_FAILED,
                    page_url=page_url,
                )
            return self._roll_back(
                kind, fix, target_id, page_url, edit or e.edit,
                reason=f"Edit failed: {e}",
                outcome=FixOutcome.MUTATION_FAILED,
            )
        except Exception as e:
            logger.error("Error during %s fix on %s", kind.value, page_url, exc_info=True)
            return self._roll_back(
                kind, fix, target_id, page_url, edit,
                reason=f"Edit failed: {e}",
                outcome=FixOutcome.MUTATION_FAILED,
            )

        # 6. Commit
        return self._commit(audit_id, kind, fix, target_id, page_url, edit, before, after, comparison)

    def _default_target(self, kind: FixKind) -> int:
        if _resource_for(kind) == MEDIA:
            raise ValueError("alt text fixes need a media target_id")
        # Fixes without a target apply to the latest post
        return self.content.latest_post_id()

    def _commit(
        self,
        audit_id: int,
        kind: FixKind,
        fix,
        target_id: int,
        page_url: str,
        edit: EditResult,
        before: IntegrityReport,
        after: IntegrityReport,
        comparison: IntegrityComparison,
    ) -> FixResult:
        details = {
            "kind": kind.value,
            "target_id": target_id,
            "description": fix.description,
            "previous_value": edit.previous_value,
            "new_value": fix.new_value,
            "structure_hash_before": before.structure_hash,
            "structure_hash_after": after.structure_hash,
        }
        try:
            self.ledger.mark_fixed(audit_id, fix.ledger_issue_type, page_url, details)
        except Exception as e:
            logger.error("Fix applied to %s but ledger write failed", page_url, exc_info=True)
            return FixResult(
                success=False,
                message=f"Fix applied but could not be recorded: {e}",
                outcome=FixOutcome.LEDGER_FAILED,
                manual_intervention_required=True,
                page_url=page_url,
                integrity=comparison,
            )

        logger.info("Applied %s fix to %s (audit %s)", kind.value, page_url, audit_id)
        return FixResult(
            success=True,
            message=f"{edit.message}. Page structure verified after the change.",
            outcome=FixOutcome.COMMITTED,
            page_url=page_url,
            integrity=comparison,
        )

    def _roll_back(
        self,
        kind: FixKind,
        fix,
        target_id: int,
        page_url: str,
        edit: Optional[EditResult],
        reason: str,
        outcome: FixOutcome,
        comparison: Optional[IntegrityComparison] = None,
    ) -> FixResult:
        restore = edit or self._fallback_restore(kind, fix, target_id)
        rolled_back = False
        if restore is not None:
            try:
                rolled_back = self.content.restore(restore)
            except Exception:
                logger.error("Rollback raised for %s fix on %s", kind.value, page_url, exc_info=True)

        if rolled_back:
            logger.warning("Rolled back %s fix on %s: %s", kind.value, page_url, reason)
            return FixResult(
                success=False,
                message=f"{reason}. Changes were rolled back.",
                outcome=outcome,
                rollback_attempted=True,
                rollback_performed=True,
                page_url=page_url,
                integrity=comparison,
            )

        logger.error("ROLLBACK FAILED for %s fix on %s: %s. Manual intervention required.", kind.value, page_url, reason)
        return FixResult(
            success=False,
            message=f"{reason}. Rollback failed; the page needs manual review.",
            outcome=FixOutcome.ROLLBACK_FAILED,
            rollback_attempted=True,
            rollback_performed=False,
            manual_intervention_required=True,
            page_url=page_url,
            integrity=comparison,
        )

    def _fallback_restore(self, kind: FixKind, fix, target_id: int) -> Optional[EditResult]:
        """Restore plan when the edit died before reporting the old value."""
        if not fix.current_value:
            # The old value is unknown; writing "" would wipe the field
            return None
        return EditResult(
            success=False,
            message="",
            resource=_resource_for(kind),
            target_id=target_id,
            field=EDITED_FIELDS[kind],
            previous_value=fix.current_value,
        )
