"""
# Programming Access Routes

Admin endpoints for moderating requests to the programming (workout builder) feature.

Submissions are idempotent per email: a second submission for the same address updates
the existing request instead of creating another. The acting admin recorded on approval
comes from the `X-Admin-Actor` header unless the body names one.

## API Endpoints

- `POST /admin/programming-access` - Submit or refresh a request
- `GET /admin/programming-access?search=&status=` - List, optionally filtered
- `GET /admin/programming-access/summary` - Counts per status
- `GET /admin/programming-access/check?email=` - Active request for an email, if any
- `PATCH /admin/programming-access/{request_id}/status` - Change moderation status
- `DELETE /admin/programming-access/{request_id}` - Remove a request
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from pulse_admin.models.access_models import (
    AccessRequest,
    AccessStatus,
    AccessStatusSummary,
    SubmitAccessRequest,
    SubmitAccessResponse,
    UpdateAccessStatusRequest,
)
from pulse_admin.routes.dependencies import get_access_request_service, get_admin_actor, raise_for_result
from pulse_admin.services.access_request_service import AccessRequestService, normalize_email

router = APIRouter(prefix="/admin/programming-access", tags=["Programming Access"])


@router.post("", response_model=SubmitAccessResponse, status_code=status.HTTP_201_CREATED)
async def submit_access_request(
    request: SubmitAccessRequest, service: AccessRequestService = Depends(get_access_request_service)
):
    """Record a request; extra form fields are stored as submitted."""
    result = await service.submit(request.model_dump(mode="json", exclude_none=True))
    raise_for_result(result)
    return SubmitAccessResponse(id=result.value, email=normalize_email(request.email))


@router.get("", response_model=List[AccessRequest])
async def list_access_requests(
    search: Optional[str] = Query(None, description="Substring of email or name"),
    status_filter: Optional[AccessStatus] = Query(None, alias="status", description="Only this status"),
    service: AccessRequestService = Depends(get_access_request_service),
):
    if search or status_filter:
        result = await service.search(search, status_filter)
    else:
        result = await service.list()
    raise_for_result(result)
    return result.value


@router.get("/summary", response_model=AccessStatusSummary)
async def access_request_summary(service: AccessRequestService = Depends(get_access_request_service)):
    result = await service.count_by_status()
    raise_for_result(result)
    return result.value


@router.get("/check", response_model=Optional[AccessRequest])
async def check_access(
    email: str = Query(..., description="Email to check"),
    service: AccessRequestService = Depends(get_access_request_service),
):
    """The active request for `email`, or `null` when the email has no access."""
    result = await service.check_access(email)
    raise_for_result(result)
    return result.value


@router.patch("/{request_id}/status", response_model=AccessRequest)
async def update_access_status(
    request_id: str,
    update: UpdateAccessStatusRequest,
    actor: Optional[str] = Depends(get_admin_actor),
    service: AccessRequestService = Depends(get_access_request_service),
):
    result = await service.set_status(request_id, update.status, update.approved_by or actor)
    raise_for_result(result)
    return result.value


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_access_request(
    request_id: str, service: AccessRequestService = Depends(get_access_request_service)
):
    """Remove a request. Succeeds whether or not it existed."""
    result = await service.delete(request_id)
    raise_for_result(result)
