"""API v1 router aggregator.

All v1 endpoint routers are included here; mounted at /api/v1.
"""

from fastapi import APIRouter

from inkwell.api.v1 import auth

router = APIRouter()

# =============================================================================
# Authentication
# =============================================================================

_AUTH_PREFIX = "/auth"

router.include_router(auth.router, prefix=_AUTH_PREFIX, tags=["auth"])
