"""Game endpoints: the orchestrator's four operations plus read access."""

from fastapi import APIRouter, Depends, HTTPException

from echoes.models import GameSnapshot
from echoes.pipeline.orchestrator import Orchestrator
from echoes.worlds import UnknownWorldError

from .models import CommandBody, WorldBody, get_orchestrator

router = APIRouter(prefix="/game")


@router.get("")
async def get_game(orch: Orchestrator = Depends(get_orchestrator)) -> GameSnapshot:
    """Current game snapshot (player, log, flags, preferences)."""
    return orch.snapshot()


@router.post("/start")
async def start_game(orch: Orchestrator = Depends(get_orchestrator)) -> GameSnapshot:
    """Generate the opening scene. Repeated calls are no-ops."""
    await orch.initialize()
    return orch.snapshot()


@router.post("/commands")
async def submit_command(
    body: CommandBody, orch: Orchestrator = Depends(get_orchestrator)
) -> GameSnapshot:
    """Submit a player command and wait for the narrator's answer."""
    await orch.submit_command(body.command)
    return orch.snapshot()


@router.post("/reset")
async def reset_game(orch: Orchestrator = Depends(get_orchestrator)) -> GameSnapshot:
    """Discard the current play-through and start the world over."""
    await orch.reset_game()
    return orch.snapshot()


@router.post("/world")
async def change_world(
    body: WorldBody, orch: Orchestrator = Depends(get_orchestrator)
) -> GameSnapshot:
    """Switch to another world and start it from the beginning."""
    try:
        await orch.change_world(body.world)
    except UnknownWorldError:
        raise HTTPException(404, "World not found")
    return orch.snapshot()


@router.post("/typing-complete")
async def typing_complete(orch: Orchestrator = Depends(get_orchestrator)) -> GameSnapshot:
    """The front end finished (or skipped) the typewriter for the newest entry."""
    orch.finish_typing()
    return orch.snapshot()
