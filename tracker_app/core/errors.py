"""Exceptions raised when input violates the timeline engine contract."""

from __future__ import annotations


class InvalidEntityError(ValueError):
    """Raised when a tracked entity or its change log cannot be replayed.

    The offending entity key (when known) is kept on ``entity_key`` and
    prefixed to the message so report callers can surface it directly.
    """

    def __init__(self, message: str, entity_key: str | None = None):
        self.entity_key = entity_key
        prefix = f"{entity_key}: " if entity_key else ""
        super().__init__(f"{prefix}{message}")
