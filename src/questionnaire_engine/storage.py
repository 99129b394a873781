"""Session-scoped storage for the session snapshot.

Browser hosts back this with ``sessionStorage`` (survives a reload, not a
restart); other hosts provide whatever lives exactly as long as the user's
session.  The store only ever writes one string value under one key.

``dump_state`` / ``load_state`` are the explicit (de)serialisation step:
``visited_pages`` travels as a sorted list and timestamps as ISO-8601
strings, and both are rebuilt into a set and datetimes on load.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from pydantic import ValidationError as PydanticValidationError

from questionnaire_engine.models.session import SessionState

logger = logging.getLogger(__name__)


class SessionStorage(ABC):
    """Minimal key/value string storage scoped to one user session."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...


class InMemorySessionStorage(SessionStorage):
    """Dict-backed storage; lives as long as the object does."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


def dump_state(state: SessionState) -> str:
    """Serialise a session snapshot to JSON."""
    return state.model_dump_json()


def load_state(raw: str | None) -> SessionState | None:
    """Rebuild a snapshot written by :func:`dump_state`.

    Returns None when there is nothing stored or the stored value is
    unreadable (a corrupt snapshot is discarded, not fatal).
    """
    if not raw:
        return None
    try:
        return SessionState.model_validate_json(raw)
    except PydanticValidationError as exc:
        logger.warning("Discarding unreadable session snapshot: %s", exc)
        return None
