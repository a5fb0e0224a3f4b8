"""Player state transitions.

apply_state_delta() is the only way player state changes. It is pure and
total: bad deltas are rejected earlier by the validator, so everything that
reaches it can be applied.
"""

from __future__ import annotations

from echoes.models import MAX_HEALTH, PlayerState, StateDelta


def apply_state_delta(state: PlayerState, delta: StateDelta) -> PlayerState:
    """Return the state that results from applying *delta* to *state*.

    Order matters and is fixed: health (clamped to 0..100), then the added
    item (ignored when already held), then the removed item (ignored when
    absent). is_game_over follows from health.
    """
    health = state.health
    if delta.health_change is not None:
        health = max(0, min(MAX_HEALTH, health + delta.health_change))

    inventory = state.inventory
    if delta.add_item is not None and delta.add_item not in inventory:
        inventory += (delta.add_item,)
    if delta.remove_item is not None:
        inventory = tuple(item for item in inventory if item != delta.remove_item)

    return PlayerState(health=health, inventory=inventory)


def inventory_changes(before: PlayerState, after: PlayerState) -> tuple[list[str], list[str]]:
    """Return (gained, lost) items between two states, in inventory order."""
    gained = [item for item in after.inventory if item not in before.inventory]
    lost = [item for item in before.inventory if item not in after.inventory]
    return gained, lost
