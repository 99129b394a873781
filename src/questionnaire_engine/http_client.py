"""HttpQuestionnaireClient — httpx implementation of the engine collaborators.

Talks to the ``/api/v1`` REST API served by ``questionnaire_server`` and
implements ``CatalogClient``, ``SubmissionClient`` and ``AnalyticsClient``
in one object.  Transport problems, timeouts and non-2xx responses are
raised as ``NetworkError`` (a missing template as ``CatalogError``); the
analytics call swallows its own failures.

Usage::

    async with HttpQuestionnaireClient("http://localhost:8000") as api:
        catalog = await QuestionnaireCatalog.fetch(api, template_id)
        session = QuestionnaireSession(api)
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Optional

import httpx

from questionnaire_engine.constants import REQUEST_TIMEOUT_SECONDS
from questionnaire_engine.errors import CatalogError, NetworkError
from questionnaire_engine.interfaces import AnalyticsClient, CatalogClient, SubmissionClient
from questionnaire_engine.models.catalog import Page, Template
from questionnaire_engine.models.submission import Submission

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class HttpQuestionnaireClient(CatalogClient, SubmissionClient, AnalyticsClient):
    """Async HTTP client for the questionnaire API.

    Args:
        base_url: server root, e.g. ``http://localhost:8000``
        timeout: per-request timeout in seconds
        transport: optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpQuestionnaireClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def list_templates(self) -> list[Template]:
        data = await self._request("GET", "/templates")
        return [Template.model_validate(t) for t in data.get("templates", [])]

    async def get_template(self, template_id: str) -> Template:
        try:
            data = await self._request("GET", f"/templates/{template_id}")
        except NetworkError as exc:
            if exc.status_code == 404:
                raise CatalogError(f"Template {template_id} not found") from exc
            raise
        return Template.model_validate(data)

    async def get_pages(self, template_id: str) -> list[Page]:
        data = await self._request("GET", f"/pages/{template_id}")
        return [Page.model_validate(p) for p in data.get("pages", [])]

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    async def create_submission(self, template_id: str, submission_token: str) -> Submission:
        data = await self._request(
            "POST",
            "/submissions",
            json={"template_id": template_id, "submission_token": submission_token},
        )
        return Submission.model_validate(data)

    async def get_submission(self, submission_id: str) -> Submission:
        data = await self._request("GET", f"/submissions/{submission_id}")
        return Submission.model_validate(data)

    async def update_submission(
        self,
        submission_id: str,
        *,
        submission_data: dict[str, Any] | None = None,
        completion_percentage: int | None = None,
        time_spent_seconds: int | None = None,
    ) -> Submission:
        body: dict[str, Any] = {}
        if submission_data is not None:
            body["submission_data"] = submission_data
        if completion_percentage is not None:
            body["completion_percentage"] = completion_percentage
        if time_spent_seconds is not None:
            body["time_spent_seconds"] = time_spent_seconds
        data = await self._request("PATCH", f"/submissions/{submission_id}", json=body)
        return Submission.model_validate(data)

    async def complete_submission(
        self,
        submission_id: str,
        *,
        submission_data: dict[str, Any],
        time_spent_seconds: int,
    ) -> Submission:
        data = await self._request(
            "POST",
            f"/submissions/{submission_id}/complete",
            json={"submission_data": submission_data, "time_spent_seconds": time_spent_seconds},
        )
        return Submission.model_validate(data)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def track_event(self, event: str, template_id: str, **data: Any) -> None:
        body = {
            "event": event,
            "template_id": template_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **data,
        }
        try:
            await self._request("POST", "/analytics", json=body)
        except NetworkError as exc:
            logger.warning("Analytics event %s dropped: %s", event, exc)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        """Send a request and return the decoded JSON body.

        Raises ``NetworkError`` for transport failures, timeouts, non-2xx
        statuses and undecodable bodies.
        """
        try:
            resp = await self._client.request(method, f"{API_PREFIX}{path}", json=json)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        if resp.is_error:
            detail = _error_detail(resp)
            raise NetworkError(
                f"{method} {path} returned {resp.status_code}: {detail}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise NetworkError(f"{method} {path} returned a non-JSON body") from exc


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)
