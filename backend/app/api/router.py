from __future__ import annotations

from fastapi import APIRouter

from app.api.health import router as health_router
from app.api.keywords import router as keywords_router
from app.api.me import router as me_router
from app.api.versions import router as versions_router


api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(keywords_router)
api_router.include_router(me_router)
api_router.include_router(versions_router)
