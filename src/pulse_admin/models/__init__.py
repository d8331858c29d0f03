"""
# Data Models Package

Pydantic models for the admin service, organized by domain:

- **`reflection_models`**: Daily reflections and their create/list payloads.
- **`access_models`**: Programming-access requests, statuses, and summaries.
- **`challenge_models`**: Cached challenge catalog entries.
- **`result_models`**: `ServiceResult`, the envelope every service operation returns.
"""

from .access_models import (
    AccessRequest,
    AccessStatus,
    AccessStatusSummary,
    SubmitAccessRequest,
    UpdateAccessStatusRequest,
)
from .challenge_models import ChallengeSummary
from .reflection_models import CreateReflectionRequest, ReflectionRecord
from .result_models import ErrorCode, ServiceError, ServiceResult

__all__ = [
    "AccessRequest",
    "AccessStatus",
    "AccessStatusSummary",
    "SubmitAccessRequest",
    "UpdateAccessStatusRequest",
    "ChallengeSummary",
    "CreateReflectionRequest",
    "ReflectionRecord",
    "ErrorCode",
    "ServiceError",
    "ServiceResult",
]
