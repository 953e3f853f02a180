"""
API v1 router for the Search Sync service.

This module defines the main router for API v1 endpoints.
"""

from fastapi import APIRouter

from search_sync.api.v1.endpoints import hooks

api_router = APIRouter()

api_router.include_router(
    hooks.router, prefix="/hooks", tags=["hooks"]
)
