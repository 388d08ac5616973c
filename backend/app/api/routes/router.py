"""API router aggregator.

Auth endpoints live under /auth, everything else under /api.
"""

from fastapi import APIRouter

from app.api.routes import auth, user

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(user.router, prefix="/api", tags=["user"])
