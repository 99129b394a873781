"""Keyboard mapping and NavigationGuard tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from questionnaire_engine.navigation import (
    DEFAULT_LEAVE_MESSAGE,
    KeyEvent,
    NavAction,
    NavigationGuard,
    resolve_key,
)


# =====================================================================
# resolve_key
# =====================================================================


class TestResolveKey:

    @pytest.mark.parametrize("key", ["ArrowRight", "Enter", "PageDown"])
    def test_next_keys(self, key):
        assert resolve_key(KeyEvent(key), can_go_next=True) is NavAction.NEXT
        assert resolve_key(KeyEvent(key), can_go_next=False) is None, "Blocked when next not allowed"

    @pytest.mark.parametrize("key", ["ArrowLeft", "PageUp"])
    def test_previous_keys(self, key):
        assert resolve_key(KeyEvent(key), can_go_previous=True) is NavAction.PREVIOUS
        assert resolve_key(KeyEvent(key), can_go_previous=False) is None

    @pytest.mark.parametrize("event", [
        KeyEvent("s", ctrl=True),
        KeyEvent("s", meta=True),
        KeyEvent("S", ctrl=True),
        KeyEvent("s", ctrl=True, in_input=True),
    ])
    def test_save_shortcut(self, event):
        assert resolve_key(event) is NavAction.SAVE

    def test_escape_blurs(self):
        assert resolve_key(KeyEvent("Escape")) is NavAction.BLUR

    def test_plain_s_is_ignored(self):
        assert resolve_key(KeyEvent("s")) is None

    @pytest.mark.parametrize("key", ["ArrowRight", "ArrowLeft", "Enter", "Escape", "PageDown"])
    def test_keys_inside_inputs_belong_to_the_field(self, key):
        event = KeyEvent(key, in_input=True)
        assert resolve_key(event, can_go_next=True, can_go_previous=True) is None

    def test_command_enter_inside_input(self):
        event = KeyEvent("Enter", meta=True, in_input=True)
        assert resolve_key(event, can_go_next=True) is NavAction.NEXT
        assert resolve_key(event, can_go_next=False) is None

    def test_unmapped_key(self):
        assert resolve_key(KeyEvent("Tab"), can_go_next=True) is None


# =====================================================================
# NavigationGuard
# =====================================================================


class TestNavigationGuard:

    @pytest.mark.asyncio
    async def test_clean_session_leaves_freely(self, session):
        await session.initialize_session("t", total_pages=2)
        guard = NavigationGuard(session)
        calls = []
        navigate = lambda: calls.append("left")

        assert guard.has_unsaved_changes is False
        assert await guard.guarded_navigate(navigate) is True
        assert calls == ["left"]

    @pytest.mark.asyncio
    async def test_uninitialized_session_leaves_freely(self, session):
        session.mark_dirty()
        assert await NavigationGuard(session).can_leave() is True

    @pytest.mark.asyncio
    async def test_dirty_without_confirm_is_blocked(self, session):
        await session.initialize_session("t", total_pages=2)
        session.update_answer("q", "x")
        guard = NavigationGuard(session)
        calls = []
        navigate = lambda: calls.append("left")

        assert await guard.guarded_navigate(navigate) is False
        assert calls == [], "navigate must not run"

    @pytest.mark.asyncio
    async def test_confirm_is_asked_with_message(self, session):
        await session.initialize_session("t", total_pages=2)
        session.update_answer("q", "x")
        guard = NavigationGuard(session)
        confirm = MagicMock(return_value=True)

        assert await guard.can_leave(confirm) is True
        confirm.assert_called_once_with(DEFAULT_LEAVE_MESSAGE)

    @pytest.mark.asyncio
    async def test_declined_confirm_blocks(self, session):
        await session.initialize_session("t", total_pages=2)
        session.update_answer("q", "x")
        guard = NavigationGuard(session, message="Leave?")
        navigate = AsyncMock()

        assert await guard.guarded_navigate(navigate, confirm=lambda msg: False) is False
        navigate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_async_confirm(self, session):
        await session.initialize_session("t", total_pages=2)
        session.update_answer("q", "x")
        guard = NavigationGuard(session)
        navigate = AsyncMock()

        assert await guard.guarded_navigate(navigate, confirm=AsyncMock(return_value=True)) is True
        navigate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_hook_decides_instead_of_prompt(self, session, submissions):
        await session.initialize_session("t", total_pages=2)
        session.update_answer("q", "x")
        guard = NavigationGuard(session, on_before_navigate=session.save_progress)
        confirm = MagicMock(return_value=False)

        assert await guard.can_leave(confirm) is True
        confirm.assert_not_called()
        assert len(submissions.update_calls) == 1, "Hook saved before leaving"

    @pytest.mark.asyncio
    async def test_hook_refusal(self, session, submissions):
        await session.initialize_session("t", total_pages=2)
        session.update_answer("q", "x")
        submissions.fail_update = True
        guard = NavigationGuard(session, on_before_navigate=session.save_progress)
        assert await guard.can_leave() is False
