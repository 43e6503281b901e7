"""
API v1 router.

Aggregates all v1 endpoints.
"""

from fastapi import APIRouter

from . import admin, auth

router = APIRouter()

# Include all route modules
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
