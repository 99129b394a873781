"""Autosave coordinator — periodic and event-driven flushing of dirty state.

The coordinator owns one periodic task on a :class:`Scheduler` and three
entry points into :meth:`QuestionnaireSession.save_progress`:

  - the timer tick (silent; failures are logged and retried next tick)
  - :meth:`AutosaveCoordinator.manual_save` (explicit user action; the
    result is returned so the host can show feedback)
  - :meth:`AutosaveCoordinator.before_teardown` (host lifecycle hook before
    the page/app goes away; reports whether the user should be warned)

Overlapping saves are prevented by the session's in-flight flag, so a tick
that fires while a save is pending is simply skipped.  Manual and teardown
saves wait for the pending save instead.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from questionnaire_engine.constants import AUTOSAVE_INTERVAL_SECONDS
from questionnaire_engine.scheduling import AsyncioScheduler, ScheduledTask, Scheduler
from questionnaire_engine.session import QuestionnaireSession, SessionStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeardownResult:
    """Outcome of the before-teardown flush.

    ``needs_confirmation`` tells the host to show its native "leave page?"
    prompt because unsaved answers could not be flushed in time.
    """

    saved: bool
    needs_confirmation: bool


class AutosaveCoordinator:
    """Drives :meth:`QuestionnaireSession.save_progress` on a timer.

    Args:
        session: the session to flush
        scheduler: periodic task factory; defaults to the asyncio event loop
        interval: seconds between ticks
        enabled: initial enabled flag (also gated by the session's
            ``autosave_enabled``)
        on_save: called with the save result after every tick that saved
        on_error: called with the exception if a tick fails unexpectedly
    """

    def __init__(
        self,
        session: QuestionnaireSession,
        scheduler: Optional[Scheduler] = None,
        *,
        interval: float = AUTOSAVE_INTERVAL_SECONDS,
        enabled: bool = True,
        on_save: Optional[Callable[[bool], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._session = session
        self._scheduler = scheduler or AsyncioScheduler()
        self._interval = interval
        self.enabled = enabled
        self._on_save = on_save
        self._on_error = on_error
        self._task: Optional[ScheduledTask] = None

    # ------------------------------------------------------------------
    # Timer lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.cancelled

    def start(self) -> None:
        """Start the periodic timer.  Calling it while running is a no-op."""
        if self.is_running:
            return
        self._task = self._scheduler.call_every(self._interval, self.tick)
        logger.debug("Autosave started (every %ss)", self._interval)

    def stop(self) -> None:
        """Cancel the timer.  Safe to call more than once."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug("Autosave stopped")

    async def __aenter__(self) -> "AutosaveCoordinator":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Save triggers
    # ------------------------------------------------------------------

    def _should_save(self) -> bool:
        state = self._session.state
        return (
            self.enabled
            and state.autosave_enabled
            and self._session.status is SessionStatus.ACTIVE
            and state.is_dirty
        )

    async def tick(self) -> None:
        """One timer firing.  Never raises."""
        if self._session.status is SessionStatus.COMPLETED:
            # Nothing left to flush once the submission is final
            self.stop()
            return
        if not self._should_save():
            return
        try:
            saved = await self._session.save_progress()
        except Exception as exc:
            logger.exception("Autosave tick failed")
            if self._on_error is not None:
                self._on_error(exc)
            return
        if not saved:
            logger.warning("Autosave did not complete; will retry on the next tick")
        if self._on_save is not None:
            self._on_save(saved)

    async def manual_save(self) -> bool:
        """Save now on explicit user request.  Returns whether the session is clean.

        A save already running (an autosave tick) is waited for rather than
        reported as a failure.
        """
        if self._session.status is SessionStatus.UNINITIALIZED:
            return False
        saved = await self._session.save_progress(wait=True)
        if not saved:
            logger.info("Manual save failed; answers remain unsaved")
        return saved

    async def before_teardown(self, timeout: float = 1.0) -> TeardownResult:
        """Best-effort flush when the host is about to go away.

        Stops the timer, then tries to save within *timeout* seconds.  If
        there were unsaved answers and the save did not finish in time (or
        failed), the result asks the host to confirm with the user.
        """
        self.stop()
        state = self._session.state
        if state.current_submission is None or not state.is_dirty:
            return TeardownResult(saved=True, needs_confirmation=False)
        if self._session.status is SessionStatus.COMPLETED:
            return TeardownResult(saved=True, needs_confirmation=False)

        try:
            saved = await asyncio.wait_for(self._session.save_progress(wait=True), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Teardown save did not finish within %ss", timeout)
            saved = False
        self._session.dispose()
        return TeardownResult(saved=saved, needs_confirmation=not saved)
