"""
Shared FastAPI dependencies for the admin routers.

Service getters exist so tests can swap a service through `app.dependency_overrides`.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from pulse_admin.managers.logging_manager import get_logger
from pulse_admin.models.result_models import ErrorCode, ServiceResult
from pulse_admin.services.access_request_service import AccessRequestService, access_request_service
from pulse_admin.services.challenge_cache import ChallengeCache, challenge_cache
from pulse_admin.services.reflection_service import ReflectionService, reflection_service

logger = get_logger(prefix="[ROUTES]")

STATUS_BY_ERROR_CODE = {
    ErrorCode.MALFORMED_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.STORE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_reflection_service() -> ReflectionService:
    return reflection_service


def get_access_request_service() -> AccessRequestService:
    return access_request_service


def get_challenge_cache() -> ChallengeCache:
    return challenge_cache


async def get_admin_actor(x_admin_actor: Optional[str] = Header(None)) -> Optional[str]:
    """Acting admin, as forwarded by the upstream admin guard in `X-Admin-Actor`."""
    actor = (x_admin_actor or "").strip()
    return actor or None


def raise_for_result(result: ServiceResult) -> None:
    """Turn a failed `ServiceResult` into the matching `HTTPException`."""
    if result.ok:
        return
    code = STATUS_BY_ERROR_CODE.get(result.error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if code >= 500:
        logger.error("Request failed (%s): %s", result.error.code.value, result.error.message)
    raise HTTPException(status_code=code, detail={"code": result.error.code.value, "message": result.error.message})
