"""FastAPI API endpoints under /api.

Endpoint groups: game (snapshot, start, commands, reset, world switch,
typing-complete), settings (health, worlds, player preferences). Every game
endpoint answers with the current GameSnapshot.
"""

from fastapi import APIRouter

from .game import router as game_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(game_router)
