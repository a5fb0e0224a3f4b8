"""Typewriter animation: character-by-character text reveal.

One Typewriter instance animates one piece of text:

    idle ──start──▶ running ⇄ paused ──▶ complete
                       │         │
                       └──stop───┴──▶ stopped   (start() is allowed again)

Ticks are scheduled through an injected scheduler with the asyncio
``call_later(delay, callback) -> handle`` shape, so an event loop drives the
real thing and tests drive a fake clock. on_complete fires at most once per
instance, via natural completion or skip().
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Literal, Protocol

from echoes.models import EntryKind, TextSpeed

TypewriterState = Literal["idle", "running", "paused", "complete", "stopped"]

# Seconds per revealed character.
TYPEWRITER_SPEEDS: dict[str, float] = {
    "narrative": 0.030,
    "art": 0.005,  # art reveals faster than prose
    "system": 0.020,
    "fast": 0.010,
}

_PROSE_SPEEDS: dict[str, float] = {
    "slow": 0.050,
    "normal": TYPEWRITER_SPEEDS["narrative"],
    "fast": TYPEWRITER_SPEEDS["fast"],
}


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle: ...


def speed_for(kind: EntryKind, text_speed: TextSpeed = "normal") -> float:
    """Per-character delay for an entry kind under the player's preference."""
    if kind == "art":
        return TYPEWRITER_SPEEDS["art"]
    if kind == "system":
        return TYPEWRITER_SPEEDS["system"]
    return _PROSE_SPEEDS[text_speed]


def typewriter_duration(text: str, speed: float = TYPEWRITER_SPEEDS["narrative"]) -> float:
    """Estimated time in seconds to reveal *text* at *speed*."""
    return len(text) * speed


class Typewriter:
    """Reveals *text* one character per tick.

    Args:
        text:        The complete text to reveal.
        speed:       Delay between characters, in seconds.
        on_update:   Called with the revealed prefix after every tick, and
                     with the full text on skip().
        on_complete: Called once when the whole text has been revealed.
        scheduler:   Tick scheduler. Defaults to the running event loop,
                     looked up on start().
    """

    def __init__(
        self,
        text: str,
        *,
        speed: float = TYPEWRITER_SPEEDS["narrative"],
        on_update: Callable[[str], None] | None = None,
        on_complete: Callable[[], None] | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._text = text
        self._speed = speed
        self._on_update = on_update
        self._on_complete = on_complete
        self._scheduler = scheduler
        self._state: TypewriterState = "idle"
        self._index = 0
        self._handle: Handle | None = None
        self._completed = False

    @property
    def state(self) -> TypewriterState:
        return self._state

    @property
    def text(self) -> str:
        return self._text

    @property
    def current_text(self) -> str:
        return self._text[: self._index]

    def is_running(self) -> bool:
        return self._state == "running"

    def is_complete(self) -> bool:
        return self._state == "complete"

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._state not in ("idle", "stopped"):
            return
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        self._state = "running"
        self._tick()

    def pause(self) -> None:
        if self._state != "running":
            return
        self._cancel_pending()
        self._state = "paused"

    def resume(self) -> None:
        if self._state != "paused":
            return
        self._state = "running"
        self._schedule()

    def skip(self) -> None:
        if self._state == "complete":
            return
        self._cancel_pending()
        self._index = len(self._text)
        self._emit(self._text)
        self._finish()

    def stop(self) -> None:
        if self._state == "complete":
            return
        self._cancel_pending()
        self._index = 0
        self._state = "stopped"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _tick(self) -> None:
        self._handle = None
        if self._state != "running":
            return
        if self._index < len(self._text):
            self._index += 1
            self._emit(self._text[: self._index])
        if self._index >= len(self._text):
            self._finish()
        else:
            self._schedule()

    def _schedule(self) -> None:
        if self._scheduler is None:
            raise RuntimeError("Typewriter has no scheduler; call start() first")
        self._handle = self._scheduler.call_later(self._speed, self._tick)

    def _cancel_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _emit(self, text: str) -> None:
        if self._on_update is not None:
            self._on_update(text)

    def _finish(self) -> None:
        self._state = "complete"
        if self._completed:
            return
        self._completed = True
        if self._on_complete is not None:
            self._on_complete()
