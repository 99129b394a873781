"""Navigation guard and keyboard mapping.

``NavigationGuard`` protects a session from being left with unsaved answers:
hosts route every "leave" (route change, back button, close) through
:meth:`NavigationGuard.guarded_navigate`.

``resolve_key`` maps a key press to a wizard action.  Outside input fields:

  - ArrowRight / Enter / PageDown  -> next
  - ArrowLeft / PageUp             -> previous
  - Ctrl/Cmd+S                     -> save
  - Escape                         -> blur

Inside input fields only Ctrl/Cmd+Enter (next) and Ctrl/Cmd+S (save) are
handled; every other key belongs to the field.
"""

from __future__ import annotations

import enum
import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from questionnaire_engine.session import QuestionnaireSession

logger = logging.getLogger(__name__)

DEFAULT_LEAVE_MESSAGE = "You have unsaved changes. Are you sure you want to leave?"

Confirm = Callable[[str], Union[bool, Awaitable[bool]]]


class NavAction(str, enum.Enum):
    NEXT = "next"
    PREVIOUS = "previous"
    SAVE = "save"
    BLUR = "blur"


@dataclass(frozen=True)
class KeyEvent:
    """A key press as reported by the host."""

    key: str
    ctrl: bool = False
    meta: bool = False
    in_input: bool = False

    @property
    def command(self) -> bool:
        return self.ctrl or self.meta


def resolve_key(
    event: KeyEvent, *, can_go_next: bool = False, can_go_previous: bool = False
) -> Optional[NavAction]:
    """Map *event* to an action, or None when the key should be left alone.

    Next/previous are only returned when that direction is currently allowed.
    """
    key = event.key
    if event.command and key.lower() == "s":
        return NavAction.SAVE

    if event.in_input:
        if event.command and key == "Enter":
            return NavAction.NEXT if can_go_next else None
        return None

    if key in ("ArrowRight", "Enter", "PageDown"):
        return NavAction.NEXT if can_go_next else None
    if key in ("ArrowLeft", "PageUp"):
        return NavAction.PREVIOUS if can_go_previous else None
    if key == "Escape":
        return NavAction.BLUR
    return None


async def _ask(confirm: Confirm, message: str) -> bool:
    answer = confirm(message)
    if inspect.isawaitable(answer):
        answer = await answer
    return bool(answer)


class NavigationGuard:
    """Save-before-leave policy for one session.

    Args:
        session: the session whose dirty flag is guarded
        message: prompt shown when the user must confirm leaving
        on_before_navigate: optional hook that decides instead of a prompt,
            typically "try to save, allow leaving if that worked"
    """

    def __init__(
        self,
        session: QuestionnaireSession,
        *,
        message: str = DEFAULT_LEAVE_MESSAGE,
        on_before_navigate: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> None:
        self._session = session
        self.message = message
        self._on_before_navigate = on_before_navigate

    @property
    def has_unsaved_changes(self) -> bool:
        return self._session.state.current_submission is not None and self._session.is_dirty

    async def can_leave(self, confirm: Optional[Confirm] = None) -> bool:
        """Decide whether leaving is allowed right now.

        Clean sessions may always leave.  Otherwise the custom hook decides,
        or *confirm* is asked with :attr:`message`.  With neither, leaving a
        dirty session is refused.
        """
        if not self.has_unsaved_changes:
            return True
        if self._on_before_navigate is not None:
            return bool(await self._on_before_navigate())
        if confirm is not None:
            return await _ask(confirm, self.message)
        return False

    async def guarded_navigate(
        self,
        navigate: Callable[[], Union[None, Awaitable[None]]],
        confirm: Optional[Confirm] = None,
    ) -> bool:
        """Run *navigate* if :meth:`can_leave` allows it.  Returns whether it ran."""
        if not await self.can_leave(confirm):
            logger.debug("Navigation blocked: unsaved changes")
            return False
        result = navigate()
        if inspect.isawaitable(result):
            await result
        return True
