from __future__ import annotations

from fastapi import APIRouter

from trivia.api.rooms import router as rooms_router
from trivia.api.stats import router as stats_router
from trivia.api.system import router as system_router
from trivia.api.ws import router as ws_router

api_router = APIRouter()
api_router.include_router(system_router)
api_router.include_router(rooms_router)
api_router.include_router(stats_router)
api_router.include_router(ws_router)
