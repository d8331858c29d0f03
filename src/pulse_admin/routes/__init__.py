"""
FastAPI routers for the admin console.

- `reflections`: daily reflection prompts (`/admin/reflections`)
- `access_requests`: programming-access moderation (`/admin/programming-access`)
- `challenges`: challenge search over the cached catalog (`/admin/challenges`)

Authentication happens upstream; these routers assume the caller is an admin.
"""

from .access_requests import router as access_requests_router
from .challenges import router as challenges_router
from .reflections import router as reflections_router

__all__ = ["access_requests_router", "challenges_router", "reflections_router"]
