import asyncio

import pytest

from paytrack_assist.core.exceptions import OrchestratorClosedError
from paytrack_assist.orchestration.cancellation import (
    CancellationController,
    CancellationToken,
)


class TestCancellationController:
    @pytest.mark.unit
    def test_begin_issues_a_new_current_token(self):
        controller = CancellationController()
        token = controller.begin()
        assert controller.current is token
        assert controller.is_current(token)
        assert not token.cancelled

    @pytest.mark.unit
    def test_begin_cancels_the_previous_token_as_superseded(self):
        controller = CancellationController()
        first = controller.begin()
        second = controller.begin()
        assert first.cancelled
        assert first.reason == "superseded"
        assert not controller.is_current(first)
        assert controller.is_current(second)

    @pytest.mark.unit
    def test_tokens_compare_by_identity(self):
        controller = CancellationController()
        token = controller.begin()
        assert not controller.is_current(CancellationToken())
        assert controller.is_current(token)

    @pytest.mark.unit
    def test_cancel_all_tears_down_and_refuses_new_tokens(self):
        controller = CancellationController()
        token = controller.begin()
        controller.cancel_all()
        assert controller.closed
        assert token.reason == "teardown"
        assert not controller.is_current(token)
        with pytest.raises(OrchestratorClosedError):
            controller.begin()


class TestCancellationToken:
    @pytest.mark.unit
    def test_first_reason_wins(self):
        token = CancellationToken()
        token.cancel("deadline")
        token.cancel("superseded")
        assert token.reason == "deadline"
        assert token.deadline_exceeded

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cancel_cancels_the_bound_task(self):
        token = CancellationToken()
        task = asyncio.ensure_future(asyncio.sleep(10))
        token.bind(task)
        token.cancel("superseded")
        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_binding_to_a_cancelled_token_cancels_immediately(self):
        token = CancellationToken()
        token.cancel()
        task = asyncio.ensure_future(asyncio.sleep(10))
        token.bind(task)
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_deadline_fires_with_deadline_reason(self):
        token = CancellationToken()
        task = asyncio.ensure_future(asyncio.sleep(10))
        token.bind(task)
        token.arm_deadline(0.01)
        with pytest.raises(asyncio.CancelledError):
            await task
        assert token.deadline_exceeded

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_disarm_stops_the_deadline(self):
        token = CancellationToken()
        token.arm_deadline(0.01)
        token.disarm()
        await asyncio.sleep(0.03)
        assert not token.cancelled
