"""
# Daily Reflection Routes

Admin endpoints for the daily reflection prompts shown to athletes.

A reflection is addressed by `MM-DD-YYYY-{context}` where the context is `general` or a
challenge id. Posting a reflection for a day/context that already has one replaces it.

## API Endpoints

- `POST /admin/reflections` - Create or replace a reflection
- `GET /admin/reflections?limit=30` - Most recent reflections across all days
- `GET /admin/reflections/date/{date_key}` - Every reflection for one day
- `GET /admin/reflections/{reflection_id}` - One reflection
- `DELETE /admin/reflections/{reflection_id}` - Remove a reflection (idempotent)
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pulse_admin.models.reflection_models import (
    CreateReflectionRequest,
    DeleteReflectionResponse,
    ReflectionListResponse,
    ReflectionRecord,
)
from pulse_admin.routes.dependencies import get_reflection_service, raise_for_result
from pulse_admin.services.reflection_service import ReflectionService

router = APIRouter(prefix="/admin/reflections", tags=["Daily Reflections"])


@router.post("", response_model=ReflectionRecord, status_code=status.HTTP_201_CREATED)
async def create_reflection(
    request: CreateReflectionRequest, service: ReflectionService = Depends(get_reflection_service)
):
    """Create a reflection, replacing the day's existing one for the same context."""
    result = await service.create(request)
    raise_for_result(result)
    return result.value


@router.get("", response_model=ReflectionListResponse)
async def list_reflections(
    limit: Optional[int] = Query(None, ge=1, le=365, description="Maximum number of reflections"),
    service: ReflectionService = Depends(get_reflection_service),
):
    result = await service.list(limit)
    raise_for_result(result)
    return ReflectionListResponse(reflections=result.value, count=len(result.value))


@router.get("/date/{date_key}", response_model=ReflectionListResponse)
async def list_reflections_for_date(date_key: str, service: ReflectionService = Depends(get_reflection_service)):
    """
    Reflections for one day, general first.

    Args:
        date_key: Day in `MM-DD-YYYY` form
    """
    result = await service.list_for_date(date_key)
    raise_for_result(result)
    return ReflectionListResponse(reflections=result.value, count=len(result.value))


@router.get("/{reflection_id}", response_model=ReflectionRecord)
async def get_reflection(reflection_id: str, service: ReflectionService = Depends(get_reflection_service)):
    result = await service.get(reflection_id)
    raise_for_result(result)
    if result.value is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Reflection {reflection_id} not found")
    return result.value


@router.delete("/{reflection_id}", response_model=DeleteReflectionResponse)
async def delete_reflection(reflection_id: str, service: ReflectionService = Depends(get_reflection_service)):
    result = await service.delete(reflection_id)
    raise_for_result(result)
    return DeleteReflectionResponse(id=reflection_id, deleted=result.value)
