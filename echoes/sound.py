"""Sound cue playback boundary.

The engine only ever calls play(cue) and never waits on it. Actual audio
output belongs to whatever front end is attached; the server-side player
here resolves the asset and records the request in the log.
"""

from __future__ import annotations

import logging
from typing import Protocol

from echoes.models import SoundCue

logger = logging.getLogger(__name__)

SOUND_PATHS: dict[str, str] = {
    "none": "",
    "wind": "/sounds/wind.mp3",
    "scream": "/sounds/scream.mp3",
    "drip": "/sounds/drip.mp3",
    "combat": "/sounds/combat.mp3",
}


class SoundPlayer(Protocol):
    def play(self, cue: SoundCue) -> None: ...


class LogSoundPlayer:
    """Resolves cues to asset paths and logs them; plays nothing itself."""

    def __init__(self, volume: float = 0.5) -> None:
        self._volume = 0.5
        self.set_volume(volume)

    @property
    def volume(self) -> float:
        return self._volume

    def set_volume(self, volume: float) -> None:
        self._volume = max(0.0, min(1.0, volume))

    def play(self, cue: SoundCue) -> None:
        path = SOUND_PATHS.get(cue, "")
        if not path:
            return
        logger.info("sound cue=%s path=%s volume=%.2f", cue, path, self._volume)
