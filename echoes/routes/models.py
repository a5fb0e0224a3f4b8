"""Pydantic request/response models for API endpoints."""

from fastapi import Request
from pydantic import BaseModel

from echoes.models import TextSpeed
from echoes.pipeline.orchestrator import Orchestrator


class CommandBody(BaseModel):
    command: str


class WorldBody(BaseModel):
    world: str


class UpdatePreferences(BaseModel):
    muted: bool | None = None
    text_speed: TextSpeed | None = None


class WorldSummary(BaseModel):
    key: str
    title: str


def get_orchestrator(request: Request) -> Orchestrator:
    """Dependency: the orchestrator owned by the running app."""
    return request.app.state.orchestrator
