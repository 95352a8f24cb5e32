"""Chronologically ordered change log for a single tracked entity."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from datetime import datetime

from .clock import to_utc
from .errors import InvalidEntityError


@dataclass(slots=True, frozen=True)
class ChangeEntry:
    """One audited field change."""

    occurred_at: datetime
    field: str
    from_value: str | None = None
    to_value: str | None = None


class ChangeLog:
    """Immutable, time-ordered sequence of ``ChangeEntry`` items.

    Entries are sorted by ``occurred_at`` with a stable sort, so entries that
    share a timestamp keep the order in which the tracker reported them.
    Naive timestamps are treated as UTC; every stored ``occurred_at`` is an
    aware UTC ``datetime``.

    Parameters
    ----------
    entries : Iterable[ChangeEntry]
        Raw entries in any order.
    entity_key : str, optional
        Key of the owning entity, used in error messages.
    created_at : datetime, optional
        Creation instant of the owning entity. When given, entries dated
        before it are rejected.

    Raises
    ------
    InvalidEntityError
        If an entry has no timestamp or precedes ``created_at``.
    """

    __slots__ = ("_entries", "entity_key")

    def __init__(
        self,
        entries: Iterable[ChangeEntry] = (),
        *,
        entity_key: str | None = None,
        created_at: datetime | None = None,
    ):
        self.entity_key = entity_key
        created_at = to_utc(created_at)
        items: list[ChangeEntry] = []
        for entry in entries:
            if entry.occurred_at is None:
                raise InvalidEntityError(
                    f"change to field {entry.field!r} has no timestamp", entity_key
                )
            entry = replace(entry, occurred_at=to_utc(entry.occurred_at))
            if created_at is not None and entry.occurred_at < created_at:
                raise InvalidEntityError(
                    f"change to field {entry.field!r} at {entry.occurred_at.isoformat()} "
                    f"precedes creation at {created_at.isoformat()}",
                    entity_key,
                )
            items.append(entry)
        items.sort(key=lambda e: e.occurred_at)
        self._entries: tuple[ChangeEntry, ...] = tuple(items)

    @property
    def entries(self) -> tuple[ChangeEntry, ...]:
        return self._entries

    def for_field(self, field_name: str) -> ChangeLog:
        """Return the entries that changed ``field_name``, still in order."""
        filtered = ChangeLog.__new__(ChangeLog)
        filtered.entity_key = self.entity_key
        filtered._entries = tuple(e for e in self._entries if e.field == field_name)
        return filtered

    def fields(self) -> set[str]:
        return {e.field for e in self._entries}

    def first(self) -> ChangeEntry | None:
        return self._entries[0] if self._entries else None

    def last(self) -> ChangeEntry | None:
        return self._entries[-1] if self._entries else None

    def __iter__(self) -> Iterator[ChangeEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ChangeLog):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"ChangeLog(entity_key={self.entity_key!r}, entries={len(self._entries)})"
