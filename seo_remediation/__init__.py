"""Safe SEO remediation service: integrity checks, fix ledger and derived audit views."""

__version__ = "0.1.0"
