"""QuestionnaireSession — the state store for one in-progress attempt.

The session is an explicit object owned by whatever drives the questionnaire
(a page flow, a request handler, a test).  It is not a module-level
singleton: construct one per attempt, pass it to the autosave coordinator and
navigation guard, and call :meth:`dispose` when the host goes away.

Lifecycle::

    uninitialized ──initialize_session──► active ◄──► saving
                                            │
                                            └──complete_submission──► completed

``reset_session`` returns to uninitialized from any state (abandonment).

Every mutation builds a complete new ``SessionState`` and swaps it in with
one assignment, so listeners and re-renders never observe a half-applied
update.  Network calls are the only suspension points; their results are
applied only if the attempt they belong to is still current.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import math
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, TypeVar

from questionnaire_engine.constants import (
    REQUEST_TIMEOUT_SECONDS,
    SESSION_STORAGE_KEY,
    SUBMISSION_TOKEN_PREFIX,
    TEMP_ID_PREFIX,
)
from questionnaire_engine.errors import NetworkError, StateInvariantViolation
from questionnaire_engine.interfaces import SubmissionClient
from questionnaire_engine.models.session import SessionState
from questionnaire_engine.models.submission import Answer, Submission
from questionnaire_engine.storage import SessionStorage, dump_state, load_state

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[SessionState], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_submission_token() -> str:
    """Client-side resume key: millisecond timestamp plus a random suffix."""
    return f"{SUBMISSION_TOKEN_PREFIX}{int(time.time() * 1000)}_{uuid.uuid4().hex[:13]}"


class SessionStatus(str, enum.Enum):
    """Observable lifecycle state of a :class:`QuestionnaireSession`."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    SAVING = "saving"
    COMPLETED = "completed"


class QuestionnaireSession:
    """Single source of truth for the active questionnaire attempt.

    Args:
        submissions: collaborator that persists submissions
        storage: session-scoped storage for the snapshot; ``None`` keeps
            state in memory only
        storage_key: key the snapshot is written under
        request_timeout: seconds before a collaborator call counts as failed
        clock: returns the current time (timezone-aware)
    """

    def __init__(
        self,
        submissions: SubmissionClient,
        *,
        storage: SessionStorage | None = None,
        storage_key: str = SESSION_STORAGE_KEY,
        request_timeout: float = REQUEST_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._submissions = submissions
        self._storage = storage
        self._storage_key = storage_key
        self._timeout = request_timeout
        self._clock = clock

        self._state = SessionState()
        self._listeners: list[Listener] = []

        # Bumped whenever the attempt is replaced, reset or completed; a
        # network result tagged with an older generation is discarded.
        self._generation = 0
        self._save_in_flight = False
        self._save_finished: asyncio.Event | None = None
        self._create_task: asyncio.Task | None = None
        self._completion: asyncio.Task | None = None
        self._disposed = False

    # ==================================================================
    # Read access
    # ==================================================================

    @property
    def state(self) -> SessionState:
        """The current snapshot.  Treat as read-only; it is replaced, never edited."""
        return self._state

    @property
    def status(self) -> SessionStatus:
        submission = self._state.current_submission
        if submission is None:
            return SessionStatus.UNINITIALIZED
        if submission.is_complete:
            return SessionStatus.COMPLETED
        if self._save_in_flight:
            return SessionStatus.SAVING
        return SessionStatus.ACTIVE

    @property
    def is_dirty(self) -> bool:
        return self._state.is_dirty

    @property
    def save_in_flight(self) -> bool:
        return self._save_in_flight

    def answer_values(self) -> dict[str, Any]:
        """Flat ``{question_id: value}`` view used by validation and conditional logic."""
        return {qid: answer.value for qid, answer in self._state.answers.items()}

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with every new state.  Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ==================================================================
    # Lifecycle
    # ==================================================================

    async def initialize_session(
        self, template_id: str, *, total_pages: int | None = None
    ) -> SessionState:
        """Start a new attempt at *template_id*.

        The local submission shell gets a temporary id immediately so the UI
        can proceed; the server id replaces it once the create call succeeds.
        A failed create leaves a local-only session that retries the create
        before its first save.
        """
        now = self._clock()
        token = generate_submission_token()
        shell = Submission(
            id=f"{TEMP_ID_PREFIX}{int(now.timestamp() * 1000)}",
            template_id=template_id,
            submission_token=token,
            created_at=now,
            updated_at=now,
        )

        self._generation += 1
        self._completion = None
        self._create_task = None
        pages = self._state.total_pages if total_pages is None else total_pages
        self._commit(
            SessionState(
                current_submission=shell,
                current_template_id=template_id,
                current_page=1,
                total_pages=pages,
                answers={},
                is_dirty=False,
                last_saved=None,
                can_navigate_back=False,
                can_navigate_forward=1 < pages,
                visited_pages={1},
                autosave_enabled=self._state.autosave_enabled,
                session_start_time=now,
            )
        )
        logger.info("Session initialised for template %s (token=%s)", template_id, token)

        await self._create_remote()
        return self._state

    def reset_session(self) -> None:
        """Abandon the current attempt and return to uninitialised defaults."""
        self._generation += 1
        self._completion = None
        self._create_task = None
        self._commit(SessionState(), persist=False)
        if self._storage is not None:
            self._storage.remove_item(self._storage_key)
        logger.info("Session reset")

    def restore(self) -> bool:
        """Load the snapshot from session storage.  Returns True if one was found."""
        if self._storage is None:
            return False
        restored = load_state(self._storage.get_item(self._storage_key))
        if restored is None:
            return False
        self._generation += 1
        self._commit(restored, persist=False)
        logger.info(
            "Session restored at page %d with %d answers",
            restored.current_page, len(restored.answers),
        )
        return True

    def dispose(self) -> None:
        """Detach the host: write a final snapshot and drop listeners."""
        if self._disposed:
            return
        self._disposed = True
        self._persist()
        self._listeners.clear()

    # ==================================================================
    # Navigation
    # ==================================================================

    def set_current_page(self, page: int) -> None:
        """Move to *page* and record it as visited.

        Reachability is the caller's policy (see :meth:`can_navigate_to_page`).
        """
        state = self._state
        self._commit(
            state.model_copy(
                update={
                    "current_page": page,
                    "visited_pages": state.visited_pages | {page},
                    "can_navigate_back": page > 1,
                    "can_navigate_forward": page < state.total_pages,
                }
            )
        )

    def set_total_pages(self, total: int) -> None:
        state = self._state
        self._commit(
            state.model_copy(
                update={
                    "total_pages": total,
                    "can_navigate_forward": state.current_page < total,
                }
            )
        )

    def can_navigate_to_page(self, page: int) -> bool:
        """True for a visited page or the page right after the current one."""
        state = self._state
        return page in state.visited_pages or page == state.current_page + 1

    # ==================================================================
    # Answers
    # ==================================================================

    def update_answer(self, question_id: str, value: Any, page_id: str | None = None) -> None:
        """Upsert an answer and mark the session dirty.  No validation here."""
        if self._refuse_if_completed("update_answer"):
            return
        state = self._state
        answer = Answer(
            question_id=question_id,
            value=value,
            page_id=page_id,
            answered_at=self._clock(),
        )
        self._commit(
            state.model_copy(
                update={"answers": {**state.answers, question_id: answer}, "is_dirty": True}
            )
        )

    def remove_answer(self, question_id: str) -> None:
        if self._refuse_if_completed("remove_answer"):
            return
        state = self._state
        answers = {qid: a for qid, a in state.answers.items() if qid != question_id}
        self._commit(state.model_copy(update={"answers": answers, "is_dirty": True}))

    def mark_dirty(self) -> None:
        self._commit(self._state.model_copy(update={"is_dirty": True}))

    def mark_clean(self) -> None:
        self._commit(self._state.model_copy(update={"is_dirty": False}))

    def set_autosave_enabled(self, enabled: bool) -> None:
        self._commit(self._state.model_copy(update={"autosave_enabled": enabled}))

    # ==================================================================
    # Progress
    # ==================================================================

    def get_completion_percentage(self) -> int:
        """Share of pages visited, 0-100.

        Page visitation is the progress measure, not answer completeness:
        a visited page counts in full even if its optional questions were
        skipped.
        """
        state = self._state
        if state.total_pages <= 0:
            return 0
        ratio = 100 * len(state.visited_pages) / state.total_pages
        # Half-up rounding, so 12.5 -> 13 rather than banker's 12
        return max(0, min(100, math.floor(ratio + 0.5)))

    def get_time_spent_seconds(self) -> int:
        start = self._state.session_start_time
        if start is None:
            return 0
        return max(0, int((self._clock() - start).total_seconds()))

    def get_time_spent_minutes(self) -> int:
        return self.get_time_spent_seconds() // 60

    # ==================================================================
    # Persistence to the submission collaborator
    # ==================================================================

    async def save_progress(self, *, wait: bool = False) -> bool:
        """Flush dirty answers to the submission collaborator.

        Returns True when the session is clean afterwards (including when
        there was nothing to save), False when the save was skipped or failed.
        Never raises: a failure leaves the session dirty for the next attempt.

        A save already in flight is skipped (False) unless *wait* is set, in
        which case the call waits for it and then saves whatever is still
        dirty.
        """
        state = self._state
        submission = state.current_submission
        if submission is None:
            logger.debug("save_progress skipped: no active submission")
            return False
        if submission.is_complete or not state.is_dirty:
            return True
        if self._save_in_flight:
            if not wait:
                logger.debug("save_progress skipped: a save is already in flight")
                return False
            logger.debug("save_progress waiting for the save in flight")
            await self._save_finished.wait()
            return await self.save_progress(wait=True)

        self._save_in_flight = True
        self._save_finished = asyncio.Event()
        generation = self._generation
        try:
            if self._state.current_submission.is_temporary:
                if not await self._create_remote():
                    logger.debug("save_progress deferred: submission not created yet")
                    return False
                if generation != self._generation:
                    logger.debug("save_progress abandoned: session moved on during create")
                    return False

            sent = self._state
            submission_id = sent.current_submission.id
            percentage = self.get_completion_percentage()
            time_spent = self.get_time_spent_seconds()
            try:
                saved = await self._call(
                    self._submissions.update_submission(
                        submission_id,
                        submission_data=self._submission_data(sent),
                        completion_percentage=percentage,
                        time_spent_seconds=time_spent,
                    )
                )
            except NetworkError as exc:
                logger.warning("Failed to save progress for %s: %s", submission_id, exc)
                return False
        finally:
            self._save_in_flight = False
            self._save_finished.set()

        current = self._state
        if generation != self._generation or current.current_submission is None:
            logger.debug("Discarding superseded save result for %s", submission_id)
            return False
        if current.current_submission.is_complete:
            return True

        # Answers edited while the PATCH was in flight are not on the server yet
        still_dirty = current.answers != sent.answers
        self._commit(
            current.model_copy(
                update={
                    "is_dirty": still_dirty,
                    "last_saved": self._clock(),
                    "current_submission": current.current_submission.model_copy(
                        update={
                            "completion_percentage": saved.completion_percentage,
                            "time_spent_seconds": saved.time_spent_seconds,
                            "updated_at": saved.updated_at,
                        }
                    ),
                }
            )
        )
        logger.debug("Progress saved for %s (%d%%)", submission_id, percentage)
        return True

    async def complete_submission(self) -> Submission:
        """Finalise the attempt.

        Concurrent or repeated calls share one completion; once completed the
        stored submission is returned without another network call.  Any save
        still in flight is superseded and its result discarded.

        Raises
        ------
        StateInvariantViolation
            If no session has been initialised.
        NetworkError
            If the submission could not be created or completed.
        """
        submission = self._state.current_submission
        if submission is None:
            raise StateInvariantViolation("No active submission to complete")
        if submission.is_complete:
            return submission

        if self._completion is None or self._completion.done():
            self._completion = asyncio.ensure_future(self._complete())
        return await asyncio.shield(self._completion)

    async def _complete(self) -> Submission:
        generation = self._generation

        if self._state.current_submission.is_temporary:
            if not await self._create_remote():
                raise NetworkError("Submission could not be created on the server")

        sent = self._state
        submission_id = sent.current_submission.id
        time_spent = self.get_time_spent_seconds()
        try:
            completed = await self._call(
                self._submissions.complete_submission(
                    submission_id,
                    submission_data=self._submission_data(sent),
                    time_spent_seconds=time_spent,
                )
            )
        except NetworkError as exc:
            logger.error("Failed to complete submission %s: %s", submission_id, exc)
            raise

        if generation != self._generation:
            logger.warning("Completion of %s finished after the session was replaced", submission_id)
            return completed

        # Completion outranks every save: later save results see a new generation
        self._generation += 1
        now = self._clock()
        current = self._state
        self._commit(
            current.model_copy(
                update={
                    "current_submission": current.current_submission.model_copy(
                        update={
                            "is_complete": True,
                            "completion_percentage": 100,
                            "time_spent_seconds": time_spent,
                            "completed_at": completed.completed_at or now,
                            "updated_at": completed.updated_at or now,
                        }
                    ),
                    "is_dirty": False,
                    "last_saved": now,
                }
            )
        )
        logger.info("Submission %s completed after %ds", submission_id, time_spent)
        return self._state.current_submission

    # ==================================================================
    # Internals
    # ==================================================================

    async def _create_remote(self) -> bool:
        """Create the server-side record for the current shell.

        Returns True once the submission has a server id.  A failure is
        logged and leaves the temporary id in place.  Callers arriving while
        a create is in flight wait for that same request.
        """
        submission = self._state.current_submission
        if submission is None:
            return False
        if not submission.is_temporary:
            return True

        if self._create_task is None or self._create_task.done():
            self._create_task = asyncio.ensure_future(
                self._create_once(submission, self._generation)
            )
        return await asyncio.shield(self._create_task)

    async def _create_once(self, submission: Submission, generation: int) -> bool:
        token = submission.submission_token
        try:
            created = await self._call(
                self._submissions.create_submission(submission.template_id, token)
            )
        except NetworkError as exc:
            logger.error("Failed to create submission for template %s: %s", submission.template_id, exc)
            return False

        current = self._state
        if generation != self._generation or current.current_submission is None:
            logger.debug("Discarding create result for superseded token %s", token)
            return False

        self._commit(
            current.model_copy(
                update={
                    "current_submission": current.current_submission.model_copy(
                        update={
                            "id": created.id,
                            "created_at": created.created_at or current.current_submission.created_at,
                            "updated_at": created.updated_at or current.current_submission.updated_at,
                        }
                    )
                }
            )
        )
        logger.info("Submission %s created (token=%s)", created.id, token)
        return True

    async def _call(self, call: Awaitable[T]) -> T:
        """Await a collaborator call under the request timeout."""
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise NetworkError(f"Request timed out after {self._timeout}s") from exc

    @staticmethod
    def _submission_data(state: SessionState) -> dict[str, Any]:
        return {qid: answer.model_dump(mode="json") for qid, answer in state.answers.items()}

    def _refuse_if_completed(self, operation: str) -> bool:
        submission = self._state.current_submission
        if submission is not None and submission.is_complete:
            logger.warning("%s ignored: submission %s is already complete", operation, submission.id)
            return True
        return False

    def _commit(self, new_state: SessionState, *, persist: bool = True) -> None:
        self._state = new_state
        if persist:
            self._persist()
        for listener in list(self._listeners):
            listener(new_state)

    def _persist(self) -> None:
        if self._storage is None or self._state.current_submission is None:
            return
        self._storage.set_item(self._storage_key, dump_state(self._state))
