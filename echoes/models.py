"""Core domain models.

Every component of the engine speaks in these types. Pydantic is used for
validation and serialisation at every data boundary: generator output is
parsed straight into StructuredResponse, and the API returns snapshots built
from the same models.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

MAX_HEALTH = 100
CRITICAL_HEALTH = 30

VisualCue = Literal["none", "skeleton", "door", "chest", "monster", "void"]
SoundCue = Literal["none", "wind", "scream", "drip", "combat"]
EntryKind = Literal["player", "narrator", "art", "system"]
Role = Literal["user", "assistant"]
ErrorKind = Literal["network", "validation", "rate_limit", "auth", "unknown"]
TextSpeed = Literal["slow", "normal", "fast"]

# Entry kinds the presentation layer reveals with a typewriter.
ANIMATED_KINDS: frozenset[str] = frozenset({"narrator", "art"})


class PlayerState(BaseModel):
    """Health and inventory of the current play-through."""

    model_config = ConfigDict(frozen=True)

    health: int = Field(default=MAX_HEALTH, ge=0, le=MAX_HEALTH)
    inventory: tuple[str, ...] = ()

    @field_validator("inventory")
    @classmethod
    def _unique_items(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        # Ordered set: first occurrence wins.
        return tuple(dict.fromkeys(v))

    @computed_field
    @property
    def is_game_over(self) -> bool:
        return self.health <= 0

    @property
    def is_critical(self) -> bool:
        return self.health <= CRITICAL_HEALTH


class ConversationTurn(BaseModel):
    """One message of the generator-facing conversation memory."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class NarrativeEntry(BaseModel):
    """A single entry in the player-visible story log."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: EntryKind
    content: str
    created_at: datetime


def _is_blank(value: str) -> bool:
    return not value.strip()


class StateDelta(BaseModel):
    """Requested changes to player state, as produced by the generator."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    health_change: int | None = None
    add_item: str | None = Field(default=None, alias="inventory_add")
    remove_item: str | None = Field(default=None, alias="inventory_remove")

    @field_validator("health_change", mode="before")
    @classmethod
    def _integral_health_change(cls, v: Any) -> Any:
        if v is None:
            return v
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("health_change must be an integer")
        if isinstance(v, float):
            # JSON has a single number type; -15.0 means -15.
            if not math.isfinite(v) or not v.is_integer():
                raise ValueError("health_change must be a finite integer")
            return int(v)
        return v

    @field_validator("add_item", "remove_item")
    @classmethod
    def _non_blank_item(cls, v: str | None) -> str | None:
        if v is not None and _is_blank(v):
            raise ValueError("item name must not be blank")
        return v


class StructuredResponse(BaseModel):
    """Validated generator output for one round-trip."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    narrative: str
    visual_cue: VisualCue
    sound_cue: SoundCue
    state_delta: StateDelta = Field(alias="game_state_update")

    @field_validator("narrative")
    @classmethod
    def _non_blank_narrative(cls, v: str) -> str:
        if _is_blank(v):
            raise ValueError("narrative must not be blank")
        return v


class GenerationFailure(BaseModel):
    """Classified failure of a generator round-trip."""

    model_config = ConfigDict(frozen=True)

    message: str
    kind: ErrorKind = "unknown"


class GenerationRequest(BaseModel):
    """Everything the generator needs to continue the story."""

    command: str
    history: list[ConversationTurn] = Field(default_factory=list)
    player_state: PlayerState = Field(default_factory=PlayerState)
    system_prompt: str
    opening: bool = False  # True for the synthetic start-of-game command


class Preferences(BaseModel):
    """Player preferences that survive resets and world changes."""

    muted: bool = False
    text_speed: TextSpeed = "normal"
    world: str = "horror"


Phase = Literal["uninitialized", "initializing", "playing", "processing", "game_over"]


class GameSnapshot(BaseModel):
    """Read-only view of a game handed to the presentation layer."""

    phase: Phase
    player: PlayerState
    is_processing: bool
    is_typing: bool
    preferences: Preferences
    world_title: str
    entries: list[NarrativeEntry]
    animate: NarrativeEntry | None = None  # newest narrator/art entry
    animate_speed: float | None = None  # seconds per character for `animate`
