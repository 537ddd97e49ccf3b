"""Admin API (ADMIN and MANAGEMENT reviewers)."""
from fastapi import APIRouter
from app.api.v1.admin import leaves as admin_leaves

admin_router = APIRouter(prefix="/admin", tags=["admin"])
admin_router.include_router(admin_leaves.router, prefix="/leaves", tags=["admin-leaves"])
