from seo_remediation.services.derived_view import DerivedViewService
from seo_remediation.services.fix_ledger import FixLedger
from seo_remediation.services.html_integrity import HTMLIntegrityService
from seo_remediation.services.safe_remediation import SafeRemediationService

__all__ = [
    "DerivedViewService",
    "FixLedger",
    "HTMLIntegrityService",
    "SafeRemediationService",
]
