"""API routes."""

from fastapi import APIRouter

from score_processor.routes import admin

api_router = APIRouter()

# Admin endpoints (queue status, push, reset)
api_router.include_router(admin.router, prefix="/v1/admin", tags=["admin"])
