"""
Uniform result envelope returned by every admin service operation.

Services never raise to their callers: a failure is a `ServiceResult` with `ok=False`
and a typed `ServiceError`, a success carries the operation's value.

```python
result = await reflection_service.get("01-03-2025-general")
if not result.ok:
    logger.warning("Lookup failed: %s", result.error.message)
elif result.value is None:
    ...  # not found
```
"""

from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from pulse_admin.errors import ContentValidationError, MalformedIdError, StoreError

T = TypeVar("T")


class ErrorCode(str, Enum):
    MALFORMED_ID = "malformed_id"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    STORE_ERROR = "store_error"


class ServiceError(BaseModel):
    code: ErrorCode = Field(..., description="Machine-readable failure category")
    message: str = Field(..., description="Human-readable reason, safe to log")


class ServiceResult(BaseModel, Generic[T]):
    ok: bool = Field(..., description="Whether the operation happened")
    value: Optional[T] = Field(None, description="Operation result when ok")
    error: Optional[ServiceError] = Field(None, description="Failure details when not ok")

    @classmethod
    def success(cls, value: Any = None) -> "ServiceResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, code: ErrorCode, message: str) -> "ServiceResult":
        return cls(ok=False, error=ServiceError(code=code, message=message))

    @classmethod
    def from_exception(cls, exc: Exception) -> "ServiceResult":
        """Map the service exception taxonomy onto error codes."""
        if isinstance(exc, MalformedIdError):
            return cls.failure(ErrorCode.MALFORMED_ID, str(exc))
        if isinstance(exc, ContentValidationError):
            return cls.failure(ErrorCode.VALIDATION_ERROR, str(exc))
        if isinstance(exc, StoreError):
            return cls.failure(ErrorCode.STORE_ERROR, str(exc))
        raise TypeError(f"No error code for {type(exc).__name__}") from exc
