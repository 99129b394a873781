"""QuestionnaireCatalog — one template with its ordered pages and questions.

A catalog is built from one of three sources:

  - :meth:`QuestionnaireCatalog.fetch` — via a ``CatalogClient`` at render time
  - :meth:`QuestionnaireCatalog.from_payload` — from the REST response shapes
    (``GET /templates/{id}`` and ``GET /pages/{template_id}``)
  - :func:`load_catalog_yaml` — from a YAML fixture, for seeding and tests

Rules and conditions are parsed into their tagged variants when the catalog
is built, so malformed entries are already downgraded to inapplicable rules
or ``UnsupportedCondition`` by the time anything evaluates them.

Usage::

    catalog = load_catalog_yaml("tests/fixtures/dental_intake.yaml")
    for issue in catalog.validate():
        print(issue)

    page = catalog.get_page(1)
    q = catalog.get_question("q_email")
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from questionnaire_engine.constants import QUESTION_TYPES, REQUEST_TIMEOUT_SECONDS
from questionnaire_engine.errors import CatalogError, NetworkError
from questionnaire_engine.evaluator import validate_conditional_logic
from questionnaire_engine.interfaces import CatalogClient
from questionnaire_engine.models.catalog import Page, Template
from questionnaire_engine.models.question import Question

logger = logging.getLogger(__name__)


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


class QuestionnaireCatalog:
    """Read-only view of a template and its pages.

    Attributes:
        template — the ``Template`` record
        pages    — pages sorted by page_number, each with ordered questions
    """

    def __init__(self, template: Template, pages: list[Page]) -> None:
        self.template = template
        self.pages = sorted(pages, key=lambda p: p.page_number)
        self._by_number = {p.page_number: p for p in self.pages}
        self._questions: dict[str, Question] = {}
        self._page_of: dict[str, int] = {}
        for page in self.pages:
            for q in page.questions:
                if q.id in self._questions:
                    logger.warning("Duplicate question id %s in template %s", q.id, template.id)
                self._questions[q.id] = q
                self._page_of[q.id] = page.page_number
                if q.question_type not in QUESTION_TYPES:
                    logger.warning(
                        "Question %s has unknown type %r; type checks skipped",
                        q.id, q.question_type,
                    )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_payload(cls, template: dict, pages: list[dict]) -> "QuestionnaireCatalog":
        """Build from the JSON shapes returned by the REST API.

        Raises ``CatalogError`` if the payload does not describe a template.
        """
        try:
            tmpl = Template.model_validate(template)
            page_models = [Page.model_validate(p) for p in pages]
        except PydanticValidationError as exc:
            raise CatalogError(f"Invalid catalog payload: {exc}") from exc
        return cls(tmpl, page_models)

    @classmethod
    async def fetch(
        cls,
        client: CatalogClient,
        template_id: str,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> "QuestionnaireCatalog":
        """Load template and pages through *client*.

        Any failure is terminal for the render and surfaces as ``CatalogError``.
        That includes a template without pages or with gaps in its page
        numbering, which page navigation could not step through.
        """
        try:
            template, pages = await asyncio.wait_for(
                asyncio.gather(client.get_template(template_id), client.get_pages(template_id)),
                timeout=timeout,
            )
        except CatalogError:
            raise
        except asyncio.TimeoutError as exc:
            raise CatalogError(f"Timed out loading template {template_id}") from exc
        except NetworkError as exc:
            raise CatalogError(f"Could not load template {template_id}: {exc}") from exc
        if not template.is_active:
            raise CatalogError(f"Template {template_id} is not active")
        catalog = cls(template, pages)
        # Navigation steps through page numbers one at a time
        numbers = [p.page_number for p in catalog.pages]
        if not numbers:
            raise CatalogError(f"Template {template_id} has no pages")
        if numbers != list(range(1, len(numbers) + 1)):
            raise CatalogError(
                f"Template {template_id} page numbers {numbers} are not contiguous from 1"
            )
        logger.info(
            "Catalog loaded: template %s, %d pages, %d questions",
            template_id, len(catalog.pages), len(catalog._questions),
        )
        return catalog

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    def get_page(self, page_number: int) -> Page:
        """Return the page with *page_number*.  Raises ``KeyError`` if absent."""
        try:
            return self._by_number[page_number]
        except KeyError:
            raise KeyError(
                f"Page {page_number} not found in template {self.template.id}"
            ) from None

    def get_question(self, question_id: str) -> Question:
        """Return a question by id.  Raises ``KeyError`` if absent."""
        try:
            return self._questions[question_id]
        except KeyError:
            raise KeyError(
                f"Question {question_id} not found in template {self.template.id}"
            ) from None

    def page_of(self, question_id: str) -> Optional[int]:
        """Page number a question lives on, or None."""
        return self._page_of.get(question_id)

    def all_questions(self) -> Iterator[Question]:
        """Every question in page then order_index order."""
        for page in self.pages:
            yield from page.questions

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> list[str]:
        """Return readable issues with the catalog.  An empty list is clean.

        Checks page numbering is 1..N without gaps, order_index is unique
        within a page, and every question's conditional logic references
        questions that exist in this template.
        """
        issues: list[str] = []

        numbers = [p.page_number for p in self.pages]
        expected = list(range(1, len(numbers) + 1))
        if numbers != expected:
            issues.append(f"Page numbers {numbers} are not contiguous from 1")
        if self.template.total_pages and self.template.total_pages != len(self.pages):
            issues.append(
                f"Template declares {self.template.total_pages} pages but has {len(self.pages)}"
            )

        all_questions = list(self.all_questions())
        for page in self.pages:
            seen: set[int] = set()
            for q in page.questions:
                if q.order_index in seen:
                    issues.append(
                        f"Page {page.page_number}: duplicate order_index {q.order_index} ({q.id})"
                    )
                seen.add(q.order_index)

        for q in all_questions:
            if q.conditional_logic is None:
                continue
            for issue in validate_conditional_logic(q.conditional_logic, all_questions):
                issues.append(f"Question {q.id}: {issue}")

        for issue in issues:
            logger.warning("Catalog %s: %s", self.template.id, issue)
        return issues


def load_catalog_yaml(path: Path | str) -> QuestionnaireCatalog:
    """Load a catalog from a YAML fixture.

    Expected layout::

        template:
          id: dental-intake
          name: Dental Intake
        pages:
          - page_number: 1
            title: About you
            questions:
              - id: q_name
                question_type: text
                is_required: true

    Page ids default to ``<template_id>-p<number>``; ``template_id`` and
    ``page_id`` are filled in on pages and questions when omitted.
    """
    raw = load_yaml(path)
    if not isinstance(raw, dict) or "template" not in raw:
        raise CatalogError(f"{path}: expected a mapping with a 'template' key")

    template = dict(raw["template"])
    template_id = template.get("id")
    pages = []
    for raw_page in raw.get("pages") or []:
        page = dict(raw_page)
        page.setdefault("template_id", template_id)
        page.setdefault("id", f"{template_id}-p{page.get('page_number')}")
        page["questions"] = [
            {"template_id": template_id, "page_id": page["id"], **q}
            for q in page.get("questions") or []
        ]
        pages.append(page)
    template.setdefault("total_pages", len(pages))

    return QuestionnaireCatalog.from_payload(template, pages)
