"""API router definitions for the screener service."""

from fastapi import APIRouter

from .routes import router as screener_router

api_router = APIRouter()
api_router.include_router(screener_router, prefix="/v1", tags=["screener"])

__all__ = ["api_router"]
