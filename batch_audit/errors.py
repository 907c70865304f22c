# batch_audit/errors.py
"""
Error taxonomy for the batch auditor.

- ValidationError: bad AuditConfig / config name. Surfaced to the submitter, batch never starts.
- ExecutionError: one (url, device) audit failed. Recorded as a failed result, batch continues.
- FatalBatchError: something outside the per-pair scope broke. Task goes to "error".
- StorageError: backend failure. Inside an audit it becomes that pair's ExecutionError.
"""


class AuditError(Exception):
    """Base class for every error raised by batch_audit."""


class ValidationError(AuditError):
    pass


class ExecutionError(AuditError):
    def __init__(self, message: str, url: str = "", device: str = ""):
        super().__init__(message)
        self.url = url
        self.device = device


class FatalBatchError(AuditError):
    pass


class StorageError(AuditError):
    pass


class SiteNotFound(AuditError):
    pass
