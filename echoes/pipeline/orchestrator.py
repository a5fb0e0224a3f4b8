"""Session-guarded orchestrator: runs the game one generator round-trip at a time.

Turn flow for submit_command():
  1. Local commands (help) are answered from the world's static text.
  2. Append the player's command to the log immediately.
  3. Capture the session token and call the generator (the only await).
  4. If the token moved while waiting (reset / world change), drop the result.
  5. Otherwise apply the state delta, append narrator / art / inventory
     entries, commit the user/assistant turn pair and play the sound cue;
     a failed round-trip appends one in-fiction system message instead.
  6. Clear the processing flag, but only if it still belongs to our session.

All state lives in a GameState owned by one Orchestrator. Everything runs on
a single event loop, so state changes after the await cannot interleave with
another operation; the session token is the only synchronisation needed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, get_args

from echoes.art import get_art
from echoes.llm import GeneratorError, NarrativeGenerator
from echoes.models import (
    ConversationTurn,
    EntryKind,
    GameSnapshot,
    GenerationFailure,
    GenerationRequest,
    NarrativeEntry,
    Phase,
    PlayerState,
    Preferences,
    StructuredResponse,
    TextSpeed,
)
from echoes.prompts import MAX_HISTORY_MESSAGES, build_system_prompt
from echoes.session import GameState, SessionCounter
from echoes.sound import LogSoundPlayer, SoundPlayer
from echoes.state import apply_state_delta, inventory_changes
from echoes.typewriter import speed_for
from echoes.validation import validate_response
from echoes.worlds import WORLDS, UnknownWorldError, World

logger = logging.getLogger(__name__)

LOCAL_HELP_COMMANDS = frozenset({"help", "instructions"})

FAILURE_MESSAGES: dict[str, str] = {
    "rate_limit": "THE VOID IS OVERWHELMED. Wait a moment and try again.",
    "auth": "AUTHENTICATION FAILED. The void rejects your presence.",
    "network": "CONNECTION TO THE VOID LOST. Check your connection and try again.",
    "validation": "THE VOID TREMBLES. Its words dissolve before they reach you. Try again.",
    "unknown": "THE VOID TREMBLES: an unknown disturbance. Try again.",
}


class Orchestrator:
    """Single writer of a GameState.

    Args:
        generator: Narrative generator (see echoes.llm.NarrativeGenerator).
        state:     Game state container. A fresh one by default.
        session:   Session token. Share one SessionCounter to let several
                   components observe the same invalidations.
        sounds:    Sound cue player.
        art:       Visual cue lookup returning art text or "".
        worlds:    World catalogue keyed by world key.
    """

    def __init__(
        self,
        generator: NarrativeGenerator,
        *,
        state: GameState | None = None,
        session: SessionCounter | None = None,
        sounds: SoundPlayer | None = None,
        art: Callable[[str], str] = get_art,
        worlds: Mapping[str, World] | None = None,
    ) -> None:
        self._generator = generator
        self._state = state or GameState()
        self._session = session or SessionCounter()
        self._sounds = sounds or LogSoundPlayer()
        self._art = art
        self._worlds = dict(worlds or WORLDS)
        self._lookup_world(self._state.preferences.world)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def player(self) -> PlayerState:
        return self._state.player

    @property
    def history(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._state.history)

    @property
    def entries(self) -> tuple[NarrativeEntry, ...]:
        return self._state.log.entries

    def latest_animatable(self) -> NarrativeEntry | None:
        return self._state.log.latest_animatable()

    @property
    def is_processing(self) -> bool:
        return self._state.is_processing

    @property
    def is_typing(self) -> bool:
        return self._state.is_typing

    @property
    def preferences(self) -> Preferences:
        return self._state.preferences.model_copy()

    @property
    def world(self) -> World:
        return self._lookup_world(self._state.preferences.world)

    @property
    def worlds(self) -> list[World]:
        return list(self._worlds.values())

    @property
    def session_token(self) -> int:
        return self._session.current()

    @property
    def phase(self) -> Phase:
        state = self._state
        if state.player.is_game_over:
            return "game_over"
        if state.is_processing:
            return "initializing" if state.is_opening else "processing"
        if not state.history:
            return "uninitialized"
        return "playing"

    def snapshot(self) -> GameSnapshot:
        animate = self.latest_animatable()
        speed = None
        if animate is not None:
            speed = speed_for(animate.kind, self._state.preferences.text_speed)
        return GameSnapshot(
            phase=self.phase,
            player=self.player,
            is_processing=self.is_processing,
            is_typing=self.is_typing,
            preferences=self.preferences,
            world_title=self.world.title,
            entries=list(self.entries),
            animate=animate,
            animate_speed=speed,
        )

    # ------------------------------------------------------------------
    # Game operations
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Generate the opening scene of the current world.

        Does nothing once the story has begun or while a round-trip is in
        flight, so duplicate boot calls are harmless.
        """
        state = self._state
        if state.history or state.is_processing:
            return

        world = self.world
        token = self._session.current()
        state.is_processing = True
        state.is_opening = True
        logger.info("initializing world=%s session=%d", world.key, token)

        request = GenerationRequest(
            command=world.opening_command,
            history=[],
            player_state=PlayerState(),
            system_prompt=build_system_prompt(world.system_prompt),
            opening=True,
        )
        await self._round_trip(token, request)

    async def submit_command(self, text: str) -> None:
        state = self._state
        if state.is_processing or state.player.is_game_over:
            return

        normalized = text.strip().lower()
        if not normalized:
            return
        if normalized in LOCAL_HELP_COMMANDS:
            self._append("system", self.world.help_text)
            return

        # Echo before any latency so the player sees their input at once.
        self._append("player", text)

        token = self._session.current()
        state.is_processing = True
        request = GenerationRequest(
            command=text,
            history=state.history[-MAX_HISTORY_MESSAGES:],
            player_state=state.player,
            system_prompt=build_system_prompt(self.world.system_prompt),
        )
        await self._round_trip(token, request)

    async def reset_game(self) -> None:
        """Start the current world over; preferences are kept."""
        token = self._session.advance()
        self._state.restore_defaults()
        logger.info("game reset session=%d", token)
        await self.initialize()

    async def change_world(self, key: str) -> None:
        """Switch world and start it from the beginning.

        Raises UnknownWorldError, before touching any state, for a bad key.
        """
        world = self._lookup_world(key)
        token = self._session.advance()
        self._state.restore_defaults()
        self._state.preferences.world = world.key
        logger.info("world changed to %s session=%d", world.key, token)
        await self.initialize()

    # ------------------------------------------------------------------
    # Presentation hooks and preferences
    # ------------------------------------------------------------------

    def finish_typing(self) -> None:
        """Called when the typewriter for the newest entry completes."""
        self._state.is_typing = False

    def set_muted(self, muted: bool) -> None:
        self._state.preferences.muted = muted

    def toggle_mute(self) -> bool:
        self.set_muted(not self._state.preferences.muted)
        return self._state.preferences.muted

    def set_text_speed(self, speed: TextSpeed) -> None:
        if speed not in get_args(TextSpeed):
            raise ValueError(f"unknown text speed {speed!r}")
        self._state.preferences.text_speed = speed

    # ------------------------------------------------------------------
    # Round-trip handling
    # ------------------------------------------------------------------

    async def _round_trip(self, token: int, request: GenerationRequest) -> None:
        try:
            outcome = await self._generate(request)

            if not self._session.is_current(token):
                logger.info(
                    "discarding result from stale session %d (current %d)",
                    token, self._session.current(),
                )
                return

            if isinstance(outcome, GenerationFailure):
                self._commit_failure(outcome)
            else:
                self._commit_response(request.command, outcome)
        finally:
            # A newer session owns the flag once the token has moved.
            if self._session.is_current(token):
                self._state.is_processing = False
                self._state.is_opening = False

    async def _generate(
        self, request: GenerationRequest
    ) -> StructuredResponse | GenerationFailure:
        try:
            result: Any = await self._generator(request)
        except GeneratorError as e:
            return e.to_failure()
        except Exception:
            logger.exception("generator raised an unexpected error")
            return GenerationFailure(message="generator raised an unexpected error")

        if isinstance(result, (StructuredResponse, GenerationFailure)):
            return result
        return validate_response(result)

    def _commit_response(self, command: str, response: StructuredResponse) -> None:
        state = self._state
        before = state.player
        state.player = apply_state_delta(before, response.state_delta)

        self._append("narrator", response.narrative)
        if response.visual_cue != "none":
            art = self._art(response.visual_cue)
            if art:
                self._append("art", art)

        gained, lost = inventory_changes(before, state.player)
        for item in gained:
            self._append("system", f"► ACQUIRED: {item.upper()}")
        for item in lost:
            self._append("system", f"► USED: {item.upper()}")

        state.history.append(ConversationTurn(role="user", content=command))
        state.history.append(ConversationTurn(role="assistant", content=response.narrative))

        if response.sound_cue != "none" and not state.preferences.muted:
            try:
                self._sounds.play(response.sound_cue)
            except Exception:
                logger.warning("sound cue %s failed to play", response.sound_cue, exc_info=True)

        if state.player.is_game_over:
            logger.info("game over session=%d", self._session.current())

    def _commit_failure(self, failure: GenerationFailure) -> None:
        logger.warning("round-trip failed kind=%s: %s", failure.kind, failure.message)
        self._append("system", FAILURE_MESSAGES.get(failure.kind, FAILURE_MESSAGES["unknown"]))

    def _append(self, kind: EntryKind, content: str) -> NarrativeEntry:
        entry = self._state.log.append(kind, content)
        if kind in ("narrator", "art"):
            self._state.is_typing = True
        return entry

    def _lookup_world(self, key: str) -> World:
        try:
            return self._worlds[key]
        except KeyError:
            raise UnknownWorldError(key) from None
