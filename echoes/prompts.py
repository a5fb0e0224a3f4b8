"""Handlebars prompt rendering for generator requests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, get_args

import pybars

from echoes.models import GenerationRequest, SoundCue, VisualCue

# Last 5 turns = 10 messages (user + assistant pairs).
MAX_HISTORY_MESSAGES = 10

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_last(this, options, items, count):
    """{{#last array N}}...{{/last}}: iterate over the last N items."""
    result = []
    for item in list(items)[-int(count):]:
        result.extend(options["fn"](item))
    return result


def _helper_upper(this, value):
    """{{upper value}}: upper-case a string."""
    return str(value).upper()


_HELPERS: dict[str, Callable] = {
    "last": _helper_last,
    "upper": _helper_upper,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Templates ────────────────────────────────────────────

# Triple-stash everywhere: prompts are plain text, not HTML.
TURN_TEMPLATE = """## CURRENT PLAYER STATE
- Health: {{health}}/100{{#if critical}} (CRITICAL - describe their weakened state){{/if}}
- Inventory: {{#if inventory}}{{{inventory}}}{{else}}Empty{{/if}}
{{#if dead}}- STATUS: DEAD - Describe their final moments poetically
{{/if}}
## RECENT HISTORY
{{#last history 10}}{{upper role}}: {{{content}}}
{{/last}}
Player: {{{command}}}"""

OPENING_TEMPLATE = """{{{command}}}

This is the START_GAME trigger. Set the tone for the entire experience."""

RESPONSE_CONTRACT_TEMPLATE = """

## REPLY FORMAT
Always respond with a single JSON object and nothing else, with the keys:
- "narrative": the story text, 2-4 sentences
- "visual_cue": one of {{{visual_cues}}}
- "sound_cue": one of {{{sound_cues}}}
- "game_state_update": an object with the optional keys
  "health_change" (integer), "inventory_add" (item name), "inventory_remove" (item name)"""


def build_context(request: GenerationRequest) -> dict[str, Any]:
    """Assemble template variables from a generation request.

    History is capped at the last MAX_HISTORY_MESSAGES messages.
    """
    state = request.player_state
    history = request.history[-MAX_HISTORY_MESSAGES:]
    return {
        "command": request.command,
        "health": state.health,
        "critical": state.is_critical,
        "dead": state.is_game_over,
        "inventory": ", ".join(state.inventory),
        "history": [{"role": t.role, "content": t.content} for t in history],
    }


def build_user_prompt(request: GenerationRequest) -> str:
    template = OPENING_TEMPLATE if request.opening else TURN_TEMPLATE
    return render_prompt(template, build_context(request))


def build_system_prompt(world_prompt: str) -> str:
    """World prompt followed by the JSON reply contract."""
    contract = render_prompt(
        RESPONSE_CONTRACT_TEMPLATE,
        {
            "visual_cues": ", ".join(f'"{c}"' for c in get_args(VisualCue)),
            "sound_cues": ", ".join(f'"{c}"' for c in get_args(SoundCue)),
        },
    )
    return world_prompt + contract
