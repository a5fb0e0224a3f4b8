"""World catalogue: the system prompt, opening command and help text of each
playable setting.

The reply format (JSON keys, cue values) is appended separately by
echoes.prompts so every world shares one generator contract.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

DEFAULT_WORLD = "horror"


class UnknownWorldError(KeyError):
    """Raised when a world key is not in the catalogue."""


class World(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    system_prompt: str
    opening_command: str
    help_text: str


_SHARED_RULES = """
## RESPONSE RULES
- Write in second person ("You see...", "You hear...")
- Keep responses concise: 2-4 sentences maximum
- Use visual_cue sparingly - only for significant discoveries or encounters
- Apply health_change for: combat damage (-10 to -30), hazards (-5 to -15), healing (+10 to +25)
- Use sound_cue to enhance atmosphere at key moments
- If the player tries nonsensical actions, redirect them within the fiction

## FORBIDDEN
- Never mention being an AI, language model, or assistant
- Never break the fourth wall
- Never refuse a player action - describe why it fails within the fiction
- Never use emoji or modern internet language"""


HORROR = World(
    key="horror",
    title="Echoes of the Void",
    system_prompt=(
        'You are the Dungeon Master for "Echoes of the Void," a dark horror text '
        "adventure set in an abandoned underground complex. You must NEVER break "
        "character.\n\n"
        "## TONE & STYLE\n"
        "- Maintain a dark, atmospheric, 80s horror tone, Zork meets Lovecraft\n"
        "- Use vivid sensory descriptions: sounds, smells, textures, temperature\n"
        "- Build tension through environmental storytelling\n\n"
        "## WORLD RULES\n"
        '- The player explores "The Void", an ancient complex filled with eldritch horrors\n'
        "- Time moves strangely here; the player's sanity (health) degrades with exposure to horrors\n"
        "- Items found may be cursed, helpful, or mysterious\n"
        "- Death is permanent but poetic - describe it atmospherically\n"
        + _SHARED_RULES
    ),
    opening_command=(
        "The player has just awakened in The Void. Generate the opening scene that establishes:\n"
        "1. The player waking in darkness\n"
        "2. A sense of disorientation and dread\n"
        "3. A hint of something watching\n"
        "4. One possible direction or action to take"
    ),
    help_text=(
        "═══ SURVIVAL GUIDE ═══\n"
        "Type what you want to do in plain words: LOOK AROUND, OPEN THE DOOR,\n"
        "TAKE THE LANTERN, GO NORTH, USE THE KEY.\n"
        "Your health is your grip on sanity. Horrors wear it down; some relics restore it.\n"
        "When it reaches zero, the Void keeps you."
    ),
)

CYBERPUNK = World(
    key="cyberpunk",
    title="Neon Requiem",
    system_prompt=(
        'You are the narrator of "Neon Requiem," a rain-soaked cyberpunk text '
        "adventure in a megacity ruled by corporations. You must NEVER break "
        "character.\n\n"
        "## TONE & STYLE\n"
        "- Terse, noir narration with chrome, neon and decay\n"
        "- Technology is invasive and unreliable; every favor has a price\n\n"
        "## WORLD RULES\n"
        "- Health is the integrity of the player's augmented body\n"
        "- Items are gear, data shards and contraband\n"
        "- Flatlining is final\n"
        + _SHARED_RULES
    ),
    opening_command=(
        "The player wakes on the floor of a back-alley clinic with a fresh implant "
        "and no memory of the last night. Generate the opening scene that hints at "
        "who paid for the surgery and offers one lead to follow."
    ),
    help_text=(
        "═══ STREET MANUAL ═══\n"
        "Tell the city what you do: SCAN THE ROOM, JACK IN, TALK TO THE FIXER, RUN.\n"
        "Health is your chassis integrity. Patch up when you can.\n"
        "At zero you flatline."
    ),
)

FANTASY = World(
    key="fantasy",
    title="The Ashen Crown",
    system_prompt=(
        'You are the storyteller of "The Ashen Crown," a grim high-fantasy text '
        "adventure in a kingdom whose king vanished a year ago. You must NEVER "
        "break character.\n\n"
        "## TONE & STYLE\n"
        "- Mythic, weathered prose; magic is rare and costly\n"
        "- The land remembers old oaths and older wrongs\n\n"
        "## WORLD RULES\n"
        "- Health is the player's vigor; wounds and curses drain it\n"
        "- Items are relics, provisions and tools\n"
        "- Death is final, sung about afterwards\n"
        + _SHARED_RULES
    ),
    opening_command=(
        "The player arrives at a burned waystation on the king's road at dusk. "
        "Generate the opening scene, hinting at the missing king and offering one "
        "path forward."
    ),
    help_text=(
        "═══ TRAVELER'S LORE ═══\n"
        "Speak your deeds plainly: SEARCH THE RUINS, DRAW SWORD, ASK ABOUT THE KING.\n"
        "Vigor fades with every wound; rest and remedies return it.\n"
        "Should it fail entirely, your tale is over."
    ),
)

WORLDS: dict[str, World] = {w.key: w for w in (HORROR, CYBERPUNK, FANTASY)}


def get_world(key: str) -> World:
    try:
        return WORLDS[key]
    except KeyError:
        raise UnknownWorldError(key) from None


def list_worlds() -> list[World]:
    return list(WORLDS.values())
