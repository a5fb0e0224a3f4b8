"""Terminal player: plays a game in the console with a real typewriter.

Commands other than the slash commands below go to the narrator:

    /reset          start the current world over
    /world <key>    switch world (horror, cyberpunk, fantasy)
    /mute           toggle sound cues
    /speed <speed>  slow | normal | fast
    /quit           leave the game
"""

from __future__ import annotations

import asyncio
import sys
from typing import TextIO

from echoes.models import NarrativeEntry
from echoes.pipeline.orchestrator import Orchestrator
from echoes.typewriter import Typewriter, speed_for
from echoes.worlds import UnknownWorldError

PROMPT = "> "


class TerminalPlayer:
    """Drives an Orchestrator from stdin, printing new log entries."""

    def __init__(self, orchestrator: Orchestrator, out: TextIO | None = None) -> None:
        self._orch = orchestrator
        self._out = out or sys.stdout
        self._shown = 0

    async def run(self) -> None:
        self._write(f"=== {self._orch.world.title.upper()} ===\n")
        await self._orch.initialize()
        await self.render()

        while True:
            if self._orch.player.is_game_over:
                self._write("\nYOU HAVE DIED. Type /reset to try again or /quit to leave.\n")
            try:
                line = await asyncio.to_thread(input, PROMPT)
            except EOFError:
                break
            if not await self.handle(line):
                break

    async def handle(self, line: str) -> bool:
        """Process one input line. Returns False when the player quits."""
        command, _, arg = line.strip().partition(" ")
        arg = arg.strip()

        if command == "/quit":
            return False
        if command == "/reset":
            await self._orch.reset_game()
            self._shown = 0
        elif command == "/world":
            try:
                await self._orch.change_world(arg)
            except UnknownWorldError:
                keys = ", ".join(w.key for w in self._orch.worlds)
                self._write(f"Unknown world {arg!r}. Choose one of: {keys}\n")
                return True
            self._shown = 0
            self._write(f"=== {self._orch.world.title.upper()} ===\n")
        elif command == "/mute":
            muted = self._orch.toggle_mute()
            self._write("Sound off.\n" if muted else "Sound on.\n")
        elif command == "/speed":
            try:
                self._orch.set_text_speed(arg)  # type: ignore[arg-type]
            except ValueError:
                self._write("Speed must be slow, normal or fast.\n")
        else:
            await self._orch.submit_command(line)

        await self.render()
        return True

    async def render(self) -> None:
        """Print entries added since the last render; animate narrator/art."""
        entries = self._orch.entries
        if len(entries) < self._shown:
            self._shown = 0
        new, self._shown = entries[self._shown:], len(entries)

        for entry in new:
            if entry.kind == "player":
                continue  # already on screen as typed input
            if entry.kind in ("narrator", "art"):
                await self._animate(entry)
            else:
                self._write(entry.content + "\n")
        if self._orch.is_typing:
            self._orch.finish_typing()

        player = self._orch.player
        inventory = ", ".join(player.inventory) or "empty"
        self._write(f"[HP {player.health}] [Inventory: {inventory}]\n")

    async def _animate(self, entry: NarrativeEntry) -> None:
        done = asyncio.get_running_loop().create_future()
        printed = 0

        def on_update(text: str) -> None:
            nonlocal printed
            self._write(text[printed:])
            printed = len(text)

        def on_complete() -> None:
            if not done.done():
                done.set_result(None)

        speed = speed_for(entry.kind, self._orch.preferences.text_speed)
        writer = Typewriter(entry.content, speed=speed, on_update=on_update, on_complete=on_complete)
        writer.start()
        try:
            await done
        finally:
            writer.stop()
        self._write("\n")

    def _write(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()


async def play(orchestrator: Orchestrator) -> None:
    await TerminalPlayer(orchestrator).run()
