"""ASCII art shown for generator visual cues."""

from __future__ import annotations

from echoes.models import VisualCue

ASCII_ART: dict[str, str] = {
    "none": "",
    "skeleton": r"""
    .---.
   /     \
   \.@-@./
    /`\_/`\
   //  _  \\
  | \     / |
   \|  |  |/
    |  |  |
   /___|___\
""",
    "door": r"""
   ______________
  |\             \
  | \             \
  |  \-------------\
  |   |            |
  |   |    .-.     |
  |   |    | |     |
  |   |    '-'     |
   \  |            |
    \ |            |
     \|____________|
""",
    "chest": r"""
      ____
     /    \
    /______\
   |  ____  |
   | |    | |
   | |____| |
   |________|
""",
    "monster": r"""
      ,     ,
     /(     )\
    /  \   /  \
   /    ) (    \
  /   .' _ '.   \
 /   /   ^   \   \
(   (  (o o)  )   )
 \   \  \_/  /   /
  '._/       \_.'
""",
    "void": r"""
    . . .  .  . . .
   .  *  .   .  *  .
  . .   . . . .   . .
    .  .  ___  .  .
   . . . |   | . . .
  .  *  .|   |.  *  .
   . . . |___|. . .
    .  .  . .  .  .
   .  *  .   .  *  .
    . . .  .  . . .
""",
}


def get_art(cue: VisualCue | str) -> str:
    """Art for *cue*, or "" when the cue has none."""
    return ASCII_ART.get(cue, "")


def has_art(cue: VisualCue | str) -> bool:
    return bool(get_art(cue))
