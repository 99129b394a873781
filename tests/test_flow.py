"""QuestionnaireFlow walkthrough tests on the dental intake fixture.

Page layout (tests/fixtures/dental_intake.yaml):
    1  q_name (required, 2..80 chars), q_email (required), q_phone
    2  q_reason (required choice)
       q_pain_level (required, 0..10, shown only when q_reason == pain)
       q_treatments (max 2 selections, hidden when q_reason == pain)
    3  q_notes (optional, max 500 chars)
"""

from unittest.mock import AsyncMock

import pytest

from helpers.fakes import FakeCatalogClient
from questionnaire_engine.catalog import QuestionnaireCatalog
from questionnaire_engine.errors import CatalogError, StateInvariantViolation
from questionnaire_engine.flow import QuestionnaireFlow
from questionnaire_engine.navigation import KeyEvent, NavAction
from questionnaire_engine.session import QuestionnaireSession, SessionStatus

TEMPLATE = "dental-intake"


@pytest.fixture
def flow(catalog_client, session, analytics):
    return QuestionnaireFlow(catalog_client, session, analytics=analytics)


def _fill_page_one(flow):
    flow.answer("q_name", "Ann Lee")
    flow.answer("q_email", "ann@example.com")


async def _to_page_two(flow):
    await flow.start(TEMPLATE)
    _fill_page_one(flow)
    result = await flow.next_page()
    assert result.moved and result.page == 2, f"Setup failed: {result}"


# =====================================================================
# Start / resume
# =====================================================================


class TestStart:

    @pytest.mark.asyncio
    async def test_start(self, flow, session, analytics):
        await flow.start(TEMPLATE)
        assert flow.catalog.total_pages == 3
        assert session.status is SessionStatus.ACTIVE
        assert session.state.total_pages == 3
        assert flow.page_number == 1
        assert analytics.events == [("questionnaire_started", TEMPLATE, {})]

    @pytest.mark.asyncio
    async def test_catalog_failure_is_terminal(self, flow, catalog_client, session):
        catalog_client.fail = True
        with pytest.raises(CatalogError):
            await flow.start(TEMPLATE)
        assert session.status is SessionStatus.UNINITIALIZED, "No session without a catalog"

    @pytest.mark.asyncio
    async def test_page_gap_is_terminal(self, session):
        catalog = QuestionnaireCatalog.from_payload(
            {"id": "t", "name": "Gapped"},
            [
                {"id": "p1", "page_number": 1, "questions": []},
                {"id": "p3", "page_number": 3, "questions": []},
            ],
        )
        flow = QuestionnaireFlow(FakeCatalogClient(catalog), session)
        with pytest.raises(CatalogError, match="not contiguous"):
            await flow.start("t")
        assert session.status is SessionStatus.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_analytics_failure_is_swallowed(self, catalog_client, session):
        analytics = AsyncMock()
        analytics.track_event.side_effect = RuntimeError("sink down")
        flow = QuestionnaireFlow(catalog_client, session, analytics=analytics)
        await flow.start(TEMPLATE)
        assert session.status is SessionStatus.ACTIVE

    def test_page_access_before_load(self, flow):
        with pytest.raises(StateInvariantViolation):
            flow.current_page

    @pytest.mark.asyncio
    async def test_resume_from_storage(self, flow, catalog_client, submissions, storage, clock):
        await _to_page_two(flow)
        flow.answer("q_reason", "checkup")

        reloaded = QuestionnaireSession(submissions, storage=storage, clock=clock)
        resumed = QuestionnaireFlow(catalog_client, reloaded)
        assert await resumed.resume() is True
        assert resumed.page_number == 2
        assert resumed.session.answer_values()["q_reason"] == "checkup"
        assert [q.id for q in resumed.visible_questions] == ["q_reason", "q_treatments"]

    @pytest.mark.asyncio
    async def test_resume_with_nothing_stored(self, flow):
        assert await flow.resume() is False


# =====================================================================
# Visibility and validation
# =====================================================================


class TestPageContent:

    @pytest.mark.asyncio
    async def test_first_page_questions(self, flow):
        await flow.start(TEMPLATE)
        assert [q.id for q in flow.visible_questions] == ["q_name", "q_email", "q_phone"]

    @pytest.mark.asyncio
    async def test_conditional_questions(self, flow):
        await _to_page_two(flow)
        assert [q.id for q in flow.visible_questions] == ["q_reason", "q_treatments"]

        dependents = flow.answer("q_reason", "pain")
        assert [q.id for q in dependents] == ["q_pain_level", "q_treatments"]
        assert [q.id for q in flow.visible_questions] == ["q_reason", "q_pain_level"]

        flow.answer("q_reason", "cosmetic")
        assert [q.id for q in flow.visible_questions] == ["q_reason", "q_treatments"]

    @pytest.mark.asyncio
    async def test_answer_records_page_id(self, flow, session):
        await flow.start(TEMPLATE)
        flow.answer("q_name", "Ann")
        assert session.state.answers["q_name"].page_id == "dental-intake-p1"

    @pytest.mark.asyncio
    async def test_validate_page(self, flow):
        await flow.start(TEMPLATE)
        flow.answer("q_name", "A")
        flow.answer("q_phone", "12")
        errors = flow.validate_page()
        assert errors == {
            "q_name": "Minimum 2 characters required",
            "q_email": "Email address is required",
            "q_phone": "Please enter a valid phone number",
        }
        assert flow.errors == errors

    @pytest.mark.asyncio
    async def test_answer_clears_its_error(self, flow):
        await flow.start(TEMPLATE)
        flow.validate_page()
        assert "q_name" in flow.errors
        flow.answer("q_name", "Ann")
        assert "q_name" not in flow.errors
        assert "q_email" in flow.errors, "Other errors stay until revalidated"


# =====================================================================
# Navigation
# =====================================================================


class TestNextPage:

    @pytest.mark.asyncio
    async def test_blocked_by_errors(self, flow, submissions):
        await flow.start(TEMPLATE)
        result = await flow.next_page()
        assert result.moved is False
        assert result.page == 1
        assert set(result.errors) == {"q_name", "q_email"}
        assert submissions.update_calls == []

    @pytest.mark.asyncio
    async def test_moves_and_saves(self, flow, session, submissions):
        await flow.start(TEMPLATE)
        _fill_page_one(flow)
        assert flow.can_go_next is True

        result = await flow.next_page()

        assert result.moved is True
        assert result.page == 2
        assert result.errors == {}
        assert session.state.visited_pages == {1, 2}
        assert len(submissions.update_calls) == 1, "Dirty answers flushed on page change"
        assert session.is_dirty is False

    @pytest.mark.asyncio
    async def test_hidden_required_question_does_not_block(self, flow):
        await _to_page_two(flow)
        flow.answer("q_reason", "checkup")
        result = await flow.next_page()
        assert result.moved is True, f"q_pain_level is hidden, got errors {result.errors}"

    @pytest.mark.asyncio
    async def test_visible_required_question_blocks(self, flow):
        await _to_page_two(flow)
        flow.answer("q_reason", "pain")
        assert flow.can_go_next is False
        result = await flow.next_page()
        assert result.errors == {"q_pain_level": "How bad is the pain? is required"}

    @pytest.mark.asyncio
    async def test_range_rule_blocks(self, flow):
        await _to_page_two(flow)
        flow.answer("q_reason", "pain")
        flow.answer("q_pain_level", 11)
        result = await flow.next_page()
        assert result.errors == {"q_pain_level": "Value must be at most 10"}

    @pytest.mark.asyncio
    async def test_selection_limit_blocks(self, flow):
        await _to_page_two(flow)
        flow.answer("q_reason", "cosmetic")
        flow.answer("q_treatments", ["whitening", "veneers", "implants"])
        result = await flow.next_page()
        assert result.errors == {"q_treatments": "Maximum 2 selections allowed"}

    @pytest.mark.asyncio
    async def test_last_page_reports_end(self, flow):
        await _to_page_two(flow)
        flow.answer("q_reason", "checkup")
        await flow.next_page()
        assert flow.is_last_page is True
        result = await flow.next_page()
        assert result.moved is False
        assert result.at_end is True
        assert result.page == 3

    @pytest.mark.asyncio
    async def test_failed_save_does_not_block_navigation(self, flow, session, submissions):
        await flow.start(TEMPLATE)
        _fill_page_one(flow)
        submissions.fail_update = True
        result = await flow.next_page()
        assert result.moved is True
        assert session.is_dirty is True, "Left for autosave to retry"


class TestBackAndJump:

    @pytest.mark.asyncio
    async def test_previous_page(self, flow):
        await _to_page_two(flow)
        assert flow.can_go_previous is True
        result = await flow.previous_page()
        assert result.moved is True
        assert flow.page_number == 1

    @pytest.mark.asyncio
    async def test_previous_on_first_page(self, flow):
        await flow.start(TEMPLATE)
        assert flow.can_go_previous is False
        assert (await flow.previous_page()).moved is False

    @pytest.mark.asyncio
    async def test_back_navigation_disallowed_by_page(self, session):
        catalog = QuestionnaireCatalog.from_payload(
            {"id": "t", "name": "Locked"},
            [
                {"id": "p1", "page_number": 1, "questions": []},
                {"id": "p2", "page_number": 2, "allow_back_navigation": False, "questions": []},
            ],
        )
        flow = QuestionnaireFlow(FakeCatalogClient(catalog), session)
        await flow.start("t")
        await flow.next_page()

        assert flow.can_go_previous is False
        assert (await flow.previous_page()).moved is False
        assert (await flow.jump_to(1)).moved is False
        assert flow.page_number == 2

    @pytest.mark.asyncio
    async def test_jump_to_unvisited_page(self, flow):
        await flow.start(TEMPLATE)
        _fill_page_one(flow)
        result = await flow.jump_to(3)
        assert result.moved is False, "Page 3 is neither visited nor next"

    @pytest.mark.asyncio
    async def test_jump_forward_validates(self, flow):
        await flow.start(TEMPLATE)
        result = await flow.jump_to(2)
        assert result.moved is False
        assert "q_name" in result.errors

    @pytest.mark.asyncio
    async def test_jump_between_visited_pages(self, flow):
        await _to_page_two(flow)
        flow.answer("q_reason", "checkup")
        await flow.next_page()

        assert (await flow.jump_to(1)).moved is True
        assert (await flow.jump_to(3)).moved is True, "Visited pages stay reachable"

    @pytest.mark.asyncio
    async def test_jump_out_of_range(self, flow):
        await flow.start(TEMPLATE)
        assert (await flow.jump_to(0)).moved is False
        assert (await flow.jump_to(9)).moved is False


class TestKeyboard:

    @pytest.mark.asyncio
    async def test_arrow_right_moves_when_valid(self, flow):
        await flow.start(TEMPLATE)
        assert await flow.handle_key(KeyEvent("ArrowRight")) is None, "Required answers missing"
        _fill_page_one(flow)
        assert await flow.handle_key(KeyEvent("ArrowRight")) is NavAction.NEXT
        assert flow.page_number == 2

    @pytest.mark.asyncio
    async def test_arrow_left_moves_back(self, flow):
        await _to_page_two(flow)
        assert await flow.handle_key(KeyEvent("ArrowLeft")) is NavAction.PREVIOUS
        assert flow.page_number == 1

    @pytest.mark.asyncio
    async def test_save_shortcut(self, flow, submissions):
        await flow.start(TEMPLATE)
        flow.answer("q_name", "Ann")
        assert await flow.handle_key(KeyEvent("s", ctrl=True, in_input=True)) is NavAction.SAVE
        assert len(submissions.update_calls) == 1


# =====================================================================
# Completion
# =====================================================================


class TestFinish:

    @pytest.mark.asyncio
    async def test_full_walkthrough(self, flow, session, submissions):
        await _to_page_two(flow)
        flow.answer("q_reason", "pain")
        flow.answer("q_pain_level", 7)
        await flow.next_page()
        flow.answer("q_notes", "Left molar")

        submission = await flow.finish()

        assert submission.is_complete is True
        assert submission.completion_percentage == 100
        assert session.status is SessionStatus.COMPLETED
        sent = submissions.complete_calls[0].submission_data
        assert {k: v["value"] for k, v in sent.items()} == {
            "q_name": "Ann Lee",
            "q_email": "ann@example.com",
            "q_reason": "pain",
            "q_pain_level": 7,
            "q_notes": "Left molar",
        }

    @pytest.mark.asyncio
    async def test_finish_with_errors(self, flow, submissions):
        await _to_page_two(flow)
        flow.answer("q_reason", "checkup")
        await flow.next_page()
        flow.answer("q_notes", "x" * 501)

        with pytest.raises(StateInvariantViolation, match="invalid"):
            await flow.finish()
        assert submissions.complete_calls == []
