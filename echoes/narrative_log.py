"""Append-only story log rendered by the presentation layer."""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterator
from datetime import datetime, timezone

from echoes.models import ANIMATED_KINDS, EntryKind, NarrativeEntry


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class NarrativeLog:
    """Ordered narrative entries for the current session.

    Entries are never edited or removed individually; clear() wipes the log
    on reset. Player and system entries render in full at once; only the
    newest narrator or art entry is animated.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._clock = clock or _utcnow
        self._id_factory = id_factory or _new_id
        self._entries: list[NarrativeEntry] = []

    def append(self, kind: EntryKind, content: str) -> NarrativeEntry:
        entry = NarrativeEntry(
            id=self._id_factory(),
            kind=kind,
            content=content,
            created_at=self._clock(),
        )
        self._entries.append(entry)
        return entry

    def latest_animatable(self) -> NarrativeEntry | None:
        for entry in reversed(self._entries):
            if entry.kind in ANIMATED_KINDS:
                return entry
        return None

    def since(self, index: int) -> list[NarrativeEntry]:
        """Entries appended after the first *index* entries."""
        return self._entries[index:]

    def clear(self) -> None:
        self._entries.clear()

    @property
    def entries(self) -> tuple[NarrativeEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[NarrativeEntry]:
        return iter(tuple(self._entries))
