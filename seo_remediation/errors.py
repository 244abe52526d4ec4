class RemediationError(Exception):
    """Base class for failures inside the remediation subsystem."""


class FetchFailure(RemediationError):
    """A page or content item could not be retrieved."""


class MutationFailure(RemediationError):
    """The external edit call failed or timed out.

    ``edit`` carries the prior value when it was read before the write failed.
    ``write_attempted`` is False when the failure came before any write was sent.
    """

    def __init__(self, message, edit=None, write_attempted=True):
        super().__init__(message)
        self.edit = edit
        self.write_attempted = write_attempted


class IntegrityRegression(RemediationError):
    """The post-check found structural damage that was not there before."""

    def __init__(self, message, new_errors=None):
        super().__init__(message)
        self.new_errors = list(new_errors or [])


class AuditNotFound(RemediationError):
    pass


class SnapshotAlreadyAttached(RemediationError):
    """A completed audit's snapshot is immutable and cannot be replaced."""
