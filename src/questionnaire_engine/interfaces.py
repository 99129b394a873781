"""Abstract interfaces for the engine's external collaborators.

The engine never talks to a database or a transport directly.  It is handed
implementations of these ABCs:

  - ``CatalogClient``    — read-only template / page / question catalog
  - ``SubmissionClient`` — create, patch and complete submissions
  - ``AnalyticsClient``  — fire-and-forget event tracking

``questionnaire_engine.http_client.HttpQuestionnaireClient`` implements all
three against the REST API in ``questionnaire_server``; tests use in-memory
fakes.

Implementations signal failure by raising ``NetworkError`` (or
``CatalogError`` for a missing template).  Every call is expected to be
non-blocking.
"""

from abc import ABC, abstractmethod
from typing import Any

from questionnaire_engine.models.catalog import Page, Template
from questionnaire_engine.models.submission import Submission


class CatalogClient(ABC):
    """Read-only access to templates and their ordered pages."""

    @abstractmethod
    async def get_template(self, template_id: str) -> Template:
        """Return an active template.

        Raises
        ------
        CatalogError
            If the template does not exist or is inactive.
        NetworkError
            If the catalog could not be reached.
        """
        ...

    @abstractmethod
    async def get_pages(self, template_id: str) -> list[Page]:
        """Return the template's pages ordered by page_number, each with its
        questions ordered by order_index."""
        ...


class SubmissionClient(ABC):
    """Persistence for in-progress and completed submissions."""

    @abstractmethod
    async def create_submission(self, template_id: str, submission_token: str) -> Submission:
        """Create a new submission record and return it with its server id.

        Not idempotent on ``submission_token``: each call creates a record.
        """
        ...

    @abstractmethod
    async def update_submission(
        self,
        submission_id: str,
        *,
        submission_data: dict[str, Any] | None = None,
        completion_percentage: int | None = None,
        time_spent_seconds: int | None = None,
    ) -> Submission:
        """Partially update a submission; omitted fields are left unchanged."""
        ...

    @abstractmethod
    async def complete_submission(
        self,
        submission_id: str,
        *,
        submission_data: dict[str, Any],
        time_spent_seconds: int,
    ) -> Submission:
        """Mark a submission complete (is_complete, 100%, completed_at)."""
        ...


class AnalyticsClient(ABC):
    """Fire-and-forget analytics sink."""

    @abstractmethod
    async def track_event(self, event: str, template_id: str, **data: Any) -> None:
        """Record an event.  Implementations swallow and log their own failures."""
        ...
