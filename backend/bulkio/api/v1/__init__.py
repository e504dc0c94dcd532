"""
API v1 router - aggregates all endpoint routers.
"""

from fastapi import APIRouter

from bulkio.api.v1.exports import router as exports_router
from bulkio.api.v1.imports import router as imports_router

api_router = APIRouter()

# Include all routers with their prefixes and tags
api_router.include_router(imports_router, prefix="/imports", tags=["Imports"])
api_router.include_router(exports_router, prefix="/exports", tags=["Exports"])
