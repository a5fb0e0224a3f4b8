"""Health check, world list and player preference endpoints."""

from fastapi import APIRouter, Depends

from echoes.models import Preferences
from echoes.pipeline.orchestrator import Orchestrator

from .models import UpdatePreferences, WorldSummary, get_orchestrator

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/worlds")
async def list_worlds(orch: Orchestrator = Depends(get_orchestrator)) -> list[WorldSummary]:
    """Playable worlds."""
    return [WorldSummary(key=w.key, title=w.title) for w in orch.worlds]


@router.get("/settings")
async def get_settings(orch: Orchestrator = Depends(get_orchestrator)) -> Preferences:
    """Player preferences (mute, text speed, world)."""
    return orch.preferences


@router.patch("/settings")
async def update_settings(
    body: UpdatePreferences, orch: Orchestrator = Depends(get_orchestrator)
) -> Preferences:
    """Update mute / text speed (partial). Use POST /game/world to switch world."""
    if body.muted is not None:
        orch.set_muted(body.muted)
    if body.text_speed is not None:
        orch.set_text_speed(body.text_speed)
    return orch.preferences
