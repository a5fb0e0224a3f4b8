"""Session token and the mutable game state container.

Both are plain objects handed to the orchestrator, so every test (and every
API app) can own an independent game.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from echoes.models import ConversationTurn, PlayerState, Preferences
from echoes.narrative_log import NarrativeLog


class SessionCounter:
    """Monotonic session token.

    Advanced on every reset and world change, never rewound. Async work
    captures current() before it suspends and compares on resumption; a
    mismatch means the work belongs to a session that no longer exists.
    """

    def __init__(self, start: int = 0) -> None:
        self._value = start

    def current(self) -> int:
        return self._value

    def advance(self) -> int:
        self._value += 1
        return self._value

    def is_current(self, token: int) -> bool:
        return token == self._value


@dataclass
class GameState:
    """Everything one play-through owns. Written only by the Orchestrator."""

    player: PlayerState = field(default_factory=PlayerState)
    history: list[ConversationTurn] = field(default_factory=list)
    log: NarrativeLog = field(default_factory=NarrativeLog)
    is_processing: bool = False
    is_opening: bool = False  # the in-flight request is the opening scene
    is_typing: bool = False
    preferences: Preferences = field(default_factory=Preferences)

    def restore_defaults(self) -> None:
        """Wipe game progress; preferences are kept."""
        self.player = PlayerState()
        self.history.clear()
        self.log.clear()
        self.is_processing = False
        self.is_opening = False
        self.is_typing = False
