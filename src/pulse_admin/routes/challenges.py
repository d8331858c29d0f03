"""
Challenge search for the admin reflection editor, served from the challenge cache.

- `GET /admin/challenges/search?q=` - Up to 10 matches on id, title or status
- `POST /admin/challenges/refresh` - Re-read the catalog and replace the cache
"""

from fastapi import APIRouter, Depends, Query

from pulse_admin.models.challenge_models import ChallengeRefreshResponse, ChallengeSearchResponse
from pulse_admin.routes.dependencies import get_challenge_cache, raise_for_result
from pulse_admin.services.challenge_cache import ChallengeCache

router = APIRouter(prefix="/admin/challenges", tags=["Challenges"])


@router.get("/search", response_model=ChallengeSearchResponse)
async def search_challenges(
    q: str = Query("", description="Case-insensitive search text"),
    cache: ChallengeCache = Depends(get_challenge_cache),
):
    result = cache.search(q)
    return ChallengeSearchResponse(results=result.value, loading=cache.is_loading)


@router.post("/refresh", response_model=ChallengeRefreshResponse)
async def refresh_challenges(cache: ChallengeCache = Depends(get_challenge_cache)):
    result = await cache.force_refresh()
    raise_for_result(result)
    return ChallengeRefreshResponse(count=result.value, message="Challenge cache refreshed")
