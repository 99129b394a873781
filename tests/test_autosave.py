"""AutosaveCoordinator tests on the virtual-clock scheduler.

Ticks are driven with ``ManualScheduler.advance``; the fake submission
client's ``update_gate`` holds a PATCH open so overlapping ticks can be
observed.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from questionnaire_engine.autosave import AutosaveCoordinator, TeardownResult
from questionnaire_engine.constants import SESSION_STORAGE_KEY
from questionnaire_engine.scheduling import ManualScheduler
from questionnaire_engine.session import SessionStatus


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def results():
    """Collects on_save callback values."""
    return []


@pytest.fixture
def autosave(session, scheduler, results):
    return AutosaveCoordinator(session, scheduler, interval=30, on_save=results.append)


async def _dirty(session):
    await session.initialize_session("dental-intake", total_pages=3)
    session.update_answer("q_name", "Ann")


async def _tick(scheduler, seconds=30):
    await scheduler.advance(seconds)
    await scheduler.settle()


# =====================================================================
# Timer lifecycle
# =====================================================================


class TestTimer:

    def test_rejects_non_positive_interval(self, session, scheduler):
        with pytest.raises(ValueError):
            AutosaveCoordinator(session, scheduler, interval=0)

    def test_start_and_stop(self, autosave, scheduler):
        assert autosave.is_running is False
        autosave.start()
        autosave.start()
        assert autosave.is_running is True
        assert scheduler.active_tasks == 1, "start() twice must not schedule twice"
        autosave.stop()
        autosave.stop()
        assert autosave.is_running is False
        assert scheduler.active_tasks == 0

    @pytest.mark.asyncio
    async def test_context_manager(self, autosave, scheduler):
        async with autosave as running:
            assert running.is_running is True
        assert autosave.is_running is False
        assert scheduler.active_tasks == 0


# =====================================================================
# Periodic saves
# =====================================================================


class TestTick:

    @pytest.mark.asyncio
    async def test_dirty_session_saved_each_interval(self, session, autosave, scheduler, submissions, results):
        await _dirty(session)
        autosave.start()

        await _tick(scheduler)
        assert len(submissions.update_calls) == 1
        assert results == [True]
        assert session.is_dirty is False

        await _tick(scheduler)
        assert len(submissions.update_calls) == 1, "Clean session is not re-sent"

        session.update_answer("q_email", "ann@example.com")
        await _tick(scheduler)
        assert len(submissions.update_calls) == 2

    @pytest.mark.asyncio
    async def test_nothing_before_interval(self, session, autosave, scheduler, submissions):
        await _dirty(session)
        autosave.start()
        await _tick(scheduler, 29)
        assert submissions.update_calls == []

    @pytest.mark.asyncio
    async def test_uninitialized_session_is_skipped(self, autosave, scheduler, submissions, results):
        autosave.start()
        await _tick(scheduler)
        assert submissions.update_calls == []
        assert results == []

    @pytest.mark.asyncio
    async def test_disabled_coordinator(self, session, autosave, scheduler, submissions):
        await _dirty(session)
        autosave.enabled = False
        autosave.start()
        await _tick(scheduler)
        assert submissions.update_calls == []

    @pytest.mark.asyncio
    async def test_disabled_on_session(self, session, autosave, scheduler, submissions):
        await _dirty(session)
        session.set_autosave_enabled(False)
        autosave.start()
        await _tick(scheduler)
        assert submissions.update_calls == []

    @pytest.mark.asyncio
    async def test_failed_save_retried_next_tick(self, session, autosave, scheduler, submissions, results):
        await _dirty(session)
        submissions.fail_update = True
        autosave.start()

        await _tick(scheduler)
        assert results == [False]
        assert session.is_dirty is True

        submissions.fail_update = False
        await _tick(scheduler)
        assert results == [False, True]
        assert session.is_dirty is False

    @pytest.mark.asyncio
    async def test_unexpected_error_reported(self, session, scheduler):
        errors = []
        await _dirty(session)
        session.save_progress = AsyncMock(side_effect=RuntimeError("boom"))
        autosave = AutosaveCoordinator(session, scheduler, interval=30, on_error=errors.append)
        autosave.start()

        await _tick(scheduler)

        assert len(errors) == 1
        assert isinstance(errors[0], RuntimeError)
        assert autosave.is_running is True, "A failing tick does not stop the timer"

    @pytest.mark.asyncio
    async def test_stops_after_completion(self, session, autosave, scheduler, submissions):
        await _dirty(session)
        autosave.start()
        await session.complete_submission()

        await _tick(scheduler)

        assert autosave.is_running is False
        assert submissions.update_calls == []


# =====================================================================
# Races
# =====================================================================


class TestOverlap:

    @pytest.mark.asyncio
    async def test_tick_during_slow_save_sends_one_patch(self, session, autosave, scheduler, submissions):
        await _dirty(session)
        submissions.update_gate = asyncio.Event()
        autosave.start()

        await scheduler.advance(30)
        assert session.status is SessionStatus.SAVING
        await scheduler.advance(30)
        await scheduler.advance(30)
        submissions.update_gate.set()
        await scheduler.settle()

        assert len(submissions.update_calls) == 1, "Overlapping ticks must not send extra PATCHes"
        assert session.is_dirty is False

    @pytest.mark.asyncio
    async def test_manual_save_during_tick(self, session, autosave, scheduler, submissions):
        await _dirty(session)
        submissions.update_gate = asyncio.Event()
        autosave.start()

        await scheduler.advance(30)
        manual = asyncio.create_task(autosave.manual_save())
        await asyncio.sleep(0)
        assert not manual.done(), "Waits for the tick's save"
        submissions.update_gate.set()
        await scheduler.settle()

        assert await manual is True
        assert len(submissions.update_calls) == 1
        assert session.is_dirty is False

    @pytest.mark.asyncio
    async def test_manual_save_during_tick_sends_later_edits(self, session, autosave, scheduler, submissions):
        await _dirty(session)
        submissions.update_gate = asyncio.Event()
        autosave.start()

        await scheduler.advance(30)
        session.update_answer("q_email", "ann@example.com")
        manual = asyncio.create_task(autosave.manual_save())
        await asyncio.sleep(0)
        submissions.update_gate.set()
        await scheduler.settle()

        assert await manual is True
        assert len(submissions.update_calls) == 2
        assert session.is_dirty is False

    @pytest.mark.asyncio
    async def test_completion_during_tick_wins(self, session, autosave, scheduler, submissions):
        await _dirty(session)
        submissions.update_gate = asyncio.Event()
        autosave.start()

        await scheduler.advance(30)
        await session.complete_submission()
        submissions.update_gate.set()
        await scheduler.settle()

        submission = session.state.current_submission
        assert submission.is_complete is True
        assert submission.completion_percentage == 100

        await _tick(scheduler)
        assert autosave.is_running is False


# =====================================================================
# Manual save
# =====================================================================


class TestManualSave:

    @pytest.mark.asyncio
    async def test_uninitialized(self, autosave):
        assert await autosave.manual_save() is False

    @pytest.mark.asyncio
    async def test_saves_immediately(self, session, autosave, submissions):
        await _dirty(session)
        assert await autosave.manual_save() is True
        assert len(submissions.update_calls) == 1

    @pytest.mark.asyncio
    async def test_reports_failure(self, session, autosave, submissions):
        await _dirty(session)
        submissions.fail_update = True
        assert await autosave.manual_save() is False

    @pytest.mark.asyncio
    async def test_works_with_autosave_disabled(self, session, autosave, submissions):
        await _dirty(session)
        autosave.enabled = False
        assert await autosave.manual_save() is True


# =====================================================================
# Before teardown
# =====================================================================


class TestBeforeTeardown:

    @pytest.mark.asyncio
    async def test_clean_session(self, session, autosave):
        await session.initialize_session("dental-intake", total_pages=3)
        autosave.start()
        result = await autosave.before_teardown()
        assert result == TeardownResult(saved=True, needs_confirmation=False)
        assert autosave.is_running is False

    @pytest.mark.asyncio
    async def test_no_session(self, autosave):
        assert await autosave.before_teardown() == TeardownResult(True, False)

    @pytest.mark.asyncio
    async def test_dirty_session_flushed(self, session, autosave, submissions, storage):
        await _dirty(session)
        result = await autosave.before_teardown()
        assert result == TeardownResult(saved=True, needs_confirmation=False)
        assert len(submissions.update_calls) == 1
        assert storage.get_item(SESSION_STORAGE_KEY) is not None

    @pytest.mark.asyncio
    async def test_failed_flush_asks_for_confirmation(self, session, autosave, submissions):
        await _dirty(session)
        submissions.fail_update = True
        result = await autosave.before_teardown()
        assert result == TeardownResult(saved=False, needs_confirmation=True)

    @pytest.mark.asyncio
    async def test_slow_flush_asks_for_confirmation(self, session, autosave, submissions):
        await _dirty(session)
        submissions.update_gate = asyncio.Event()
        result = await autosave.before_teardown(timeout=0.05)
        assert result.needs_confirmation is True
        assert session.save_in_flight is False
        assert session.is_dirty is True

    @pytest.mark.asyncio
    async def test_completed_session(self, session, autosave, submissions):
        await _dirty(session)
        await session.complete_submission()
        session.mark_dirty()
        result = await autosave.before_teardown()
        assert result == TeardownResult(True, False)
        assert submissions.update_calls == []
