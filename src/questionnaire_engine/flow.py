"""QuestionnaireFlow — the page driver a host UI sits on.

Ties the catalog, session store, evaluator and validation engine together:

  1. :meth:`QuestionnaireFlow.start` loads the catalog (failure raises
     ``CatalogError`` and is terminal for the render) and initialises the
     session
  2. the host renders :attr:`QuestionnaireFlow.visible_questions` and feeds
     edits into :meth:`QuestionnaireFlow.answer`
  3. :meth:`next_page` validates the visible questions and only moves when
     they pass; :meth:`previous_page` and :meth:`jump_to` honour the page's
     back-navigation flag and the session's reachability rule
  4. :meth:`finish` validates the last page and completes the submission

Moving between pages flushes unsaved answers first (best effort; a failed
save leaves the session dirty for autosave to retry).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from questionnaire_engine.catalog import QuestionnaireCatalog
from questionnaire_engine.errors import StateInvariantViolation
from questionnaire_engine.evaluator import ConditionalEvaluator
from questionnaire_engine.interfaces import AnalyticsClient, CatalogClient
from questionnaire_engine.models.catalog import Page
from questionnaire_engine.models.question import Question
from questionnaire_engine.models.submission import Submission
from questionnaire_engine.navigation import KeyEvent, NavAction, resolve_key
from questionnaire_engine.session import QuestionnaireSession
from questionnaire_engine.validation import can_navigate_from_page, validate_answers

logger = logging.getLogger(__name__)


@dataclass
class NavigationResult:
    """Outcome of a navigation request.

    ``errors`` is populated when validation blocked a forward move;
    ``at_end`` is set when "next" was requested on the last page.
    """

    moved: bool
    page: int
    errors: dict[str, str] = field(default_factory=dict)
    at_end: bool = False


class QuestionnaireFlow:
    """Drive one session through a template's pages.

    Args:
        catalog_client: source of the template and pages
        session: the session store for this attempt
        analytics: optional event sink
        evaluator: conditional logic evaluator (a default one is created)
    """

    def __init__(
        self,
        catalog_client: CatalogClient,
        session: QuestionnaireSession,
        *,
        analytics: Optional[AnalyticsClient] = None,
        evaluator: Optional[ConditionalEvaluator] = None,
    ) -> None:
        self._catalog_client = catalog_client
        self.session = session
        self._analytics = analytics
        self._evaluator = evaluator or ConditionalEvaluator()
        self.catalog: Optional[QuestionnaireCatalog] = None
        self.errors: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    async def load(self, template_id: str) -> QuestionnaireCatalog:
        """Fetch the catalog without touching the session."""
        self.catalog = await QuestionnaireCatalog.fetch(self._catalog_client, template_id)
        return self.catalog

    async def start(self, template_id: str) -> None:
        """Load *template_id* and begin a fresh attempt on page 1."""
        catalog = await self.load(template_id)
        await self.session.initialize_session(template_id, total_pages=catalog.total_pages)
        self.errors = {}
        await self._track("questionnaire_started", template_id)

    async def resume(self) -> bool:
        """Reattach to a session restored from storage.  Returns False if there is none."""
        if not self.session.restore():
            return False
        template_id = self.session.state.current_template_id
        if template_id is None:
            return False
        catalog = await self.load(template_id)
        self.session.set_total_pages(catalog.total_pages)
        return True

    def _require_catalog(self) -> QuestionnaireCatalog:
        if self.catalog is None:
            raise StateInvariantViolation("Questionnaire has not been loaded")
        return self.catalog

    # ------------------------------------------------------------------
    # Current page
    # ------------------------------------------------------------------

    @property
    def page_number(self) -> int:
        return self.session.state.current_page

    @property
    def current_page(self) -> Page:
        return self._require_catalog().get_page(self.page_number)

    @property
    def is_last_page(self) -> bool:
        return self.page_number >= self._require_catalog().total_pages

    @property
    def visible_questions(self) -> list[Question]:
        return self._evaluator.visible_questions(
            self.current_page.questions, self.session.answer_values()
        )

    def answer(self, question_id: str, value: Any) -> list[Question]:
        """Record an answer on the current page.

        Clears any shown error for that question and returns the questions
        whose visibility depends on it, so the host can re-render just those.
        """
        self.session.update_answer(question_id, value, self.current_page.id)
        self.errors.pop(question_id, None)
        return self._evaluator.dependent_questions(
            question_id, self._require_catalog().all_questions()
        )

    def validate_page(self) -> dict[str, str]:
        """Validate the visible questions of the current page and remember the errors."""
        self.errors = validate_answers(self.visible_questions, self.session.answer_values())
        return self.errors

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def can_go_next(self) -> bool:
        return can_navigate_from_page(self.visible_questions, self.session.answer_values())

    @property
    def can_go_previous(self) -> bool:
        return self.page_number > 1 and self.current_page.allow_back_navigation

    async def next_page(self) -> NavigationResult:
        errors = self.validate_page()
        if errors:
            logger.debug("Page %d blocked by %d validation errors", self.page_number, len(errors))
            return NavigationResult(moved=False, page=self.page_number, errors=errors)
        if self.is_last_page:
            return NavigationResult(moved=False, page=self.page_number, at_end=True)
        return await self._go(self.page_number + 1)

    async def previous_page(self) -> NavigationResult:
        if not self.can_go_previous:
            return NavigationResult(moved=False, page=self.page_number)
        return await self._go(self.page_number - 1)

    async def jump_to(self, page: int) -> NavigationResult:
        """Jump to a visited page or the immediate next one."""
        catalog = self._require_catalog()
        if page < 1 or page > catalog.total_pages or not self.session.can_navigate_to_page(page):
            return NavigationResult(moved=False, page=self.page_number)
        if page < self.page_number and not self.current_page.allow_back_navigation:
            return NavigationResult(moved=False, page=self.page_number)
        if page > self.page_number:
            errors = self.validate_page()
            if errors:
                return NavigationResult(moved=False, page=self.page_number, errors=errors)
        return await self._go(page)

    async def _go(self, page: int) -> NavigationResult:
        if self.session.is_dirty:
            await self.session.save_progress()
        self.session.set_current_page(page)
        self.errors = {}
        return NavigationResult(moved=True, page=page)

    async def handle_key(self, event: KeyEvent) -> Optional[NavAction]:
        """Apply the action mapped to a key press and return it."""
        action = resolve_key(
            event, can_go_next=self.can_go_next, can_go_previous=self.can_go_previous
        )
        if action is NavAction.NEXT:
            await self.next_page()
        elif action is NavAction.PREVIOUS:
            await self.previous_page()
        elif action is NavAction.SAVE:
            await self.session.save_progress(wait=True)
        return action

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def finish(self) -> Submission:
        """Validate the current page and complete the submission.

        Raises ``StateInvariantViolation`` if the page has errors and
        ``NetworkError`` if completion fails.
        """
        errors = self.validate_page()
        if errors:
            raise StateInvariantViolation(
                f"Cannot finish: {len(errors)} question(s) on page {self.page_number} are invalid"
            )
        return await self.session.complete_submission()

    async def _track(self, event: str, template_id: str, **data: Any) -> None:
        if self._analytics is None:
            return
        try:
            await self._analytics.track_event(event, template_id, **data)
        except Exception:
            logger.warning("Analytics event %s failed", event, exc_info=True)
