"""
Exception taxonomy for the admin service.

Services never let these escape to their callers; they are converted into
`ServiceResult` failures (see `pulse_admin.models.result_models`). The codec and the
store adapter raise them directly.
"""


class AdminServiceError(Exception):
    """Base class for every error raised inside the admin service."""


class MalformedIdError(AdminServiceError, ValueError):
    """A reflection ID does not decode to a `{date_key, context_key}` pair."""

    def __init__(self, reflection_id: str, reason: str = "expected MM-DD-YYYY-{context}"):
        self.reflection_id = reflection_id
        self.reason = reason
        super().__init__(f"Malformed reflection id {reflection_id!r}: {reason}")


class ContentValidationError(AdminServiceError, ValueError):
    """A required field is missing or empty."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class StoreError(AdminServiceError):
    """Any failure reported by the underlying document store."""

    def __init__(self, operation: str, path: str, message: str):
        self.operation = operation
        self.path = path
        super().__init__(f"{operation} {path} failed: {message}")
