# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for the timeout guard and the time_limiter decorator."""

from __future__ import annotations

import asyncio

import pytest

from txflow.kernel.exceptions import BusinessLogicException, OperationTimeoutException
from txflow.resilience.time_limiter import CancellationToken, TimeoutGuard, accepts_token, invoke, time_limiter


class TestCancellationToken:
    async def test_starts_uncancelled(self) -> None:
        token = CancellationToken()
        assert not token.cancelled
        token.raise_if_cancelled()

    async def test_cancel(self) -> None:
        token = CancellationToken()
        token.cancel()
        assert token.cancelled
        with pytest.raises(OperationTimeoutException):
            token.raise_if_cancelled()

    async def test_wait_returns_after_cancel(self) -> None:
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()
        token.cancel()
        await asyncio.wait_for(waiter, timeout=1.0)


class TestInvoke:
    def test_accepts_token(self) -> None:
        async def with_token(token: CancellationToken) -> None: ...

        async def without_token() -> None: ...

        def with_default(token: CancellationToken | None = None) -> None: ...

        assert accepts_token(with_token)
        assert not accepts_token(without_token)
        assert not accepts_token(with_default)

    async def test_sync_callable_runs_in_executor(self) -> None:
        assert await invoke(lambda: 7) == 7

    async def test_sync_callable_returning_awaitable(self) -> None:
        async def compute() -> int:
            return 8

        assert await invoke(lambda: compute()) == 8

    async def test_token_passed_when_requested(self) -> None:
        token = CancellationToken()
        seen: list[CancellationToken] = []

        async def operation(t: CancellationToken) -> str:
            seen.append(t)
            return "ok"

        assert await invoke(operation, token) == "ok"
        assert seen == [token]


class TestTimeoutGuard:
    async def test_fast_operation_returns_result(self) -> None:
        async def fast() -> str:
            await asyncio.sleep(0.01)
            return "done"

        assert await TimeoutGuard().run(fast, 500) == "done"

    async def test_exception_preserved(self) -> None:
        async def failing() -> None:
            raise ValueError("bad input")

        with pytest.raises(ValueError, match="bad input"):
            await TimeoutGuard().run(failing, 500)

    async def test_operation_cancelled_from_inside(self) -> None:
        shared: asyncio.Future[str] = asyncio.get_running_loop().create_future()

        async def waits_on_shared() -> str:
            return await shared

        asyncio.get_running_loop().call_later(0.01, shared.cancel)

        with pytest.raises(BusinessLogicException, match="Operation was cancelled") as exc_info:
            await TimeoutGuard().run(waits_on_shared, 500)
        assert exc_info.value.code == "CANCELLED"

    async def test_slow_operation_times_out(self) -> None:
        async def slow() -> None:
            await asyncio.sleep(0.2)

        guard = TimeoutGuard()
        with pytest.raises(OperationTimeoutException) as exc_info:
            await guard.run(slow, 50)

        assert exc_info.value.code == "TIMEOUT"
        assert exc_info.value.context == {"timeout_ms": 50}
        assert "50 ms" in str(exc_info.value)

        while guard.abandoned:
            await asyncio.sleep(0.02)

    async def test_timed_out_operation_is_abandoned_not_killed(self) -> None:
        finished: list[bool] = []

        async def slow() -> None:
            await asyncio.sleep(0.1)
            finished.append(True)

        guard = TimeoutGuard()
        with pytest.raises(OperationTimeoutException):
            await guard.run(slow, 20)

        assert guard.abandoned == 1
        assert finished == []

        await asyncio.sleep(0.2)
        assert finished == [True]
        assert guard.abandoned == 0

    async def test_cancel_on_timeout_cancels_task(self) -> None:
        cancelled: list[bool] = []

        async def slow() -> None:
            try:
                await asyncio.sleep(1.0)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise

        guard = TimeoutGuard(cancel_on_timeout=True)
        with pytest.raises(OperationTimeoutException):
            await guard.run(slow, 20)

        await asyncio.sleep(0.05)
        assert cancelled == [True]
        assert guard.abandoned == 0

    async def test_token_cancelled_on_timeout(self) -> None:
        token = CancellationToken()
        stopped: list[bool] = []

        async def cooperative(t: CancellationToken) -> None:
            await t.wait()
            stopped.append(True)

        guard = TimeoutGuard()
        with pytest.raises(OperationTimeoutException):
            await guard.run(cooperative, 20, token)

        assert token.cancelled
        await asyncio.sleep(0.01)
        assert stopped == [True]

    async def test_outer_cancellation_cancels_operation(self) -> None:
        started = asyncio.Event()
        cancelled: list[bool] = []

        async def slow() -> None:
            started.set()
            try:
                await asyncio.sleep(1.0)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise

        runner = asyncio.create_task(TimeoutGuard().run(slow, 5_000))
        await started.wait()
        runner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await runner
        await asyncio.sleep(0.01)
        assert cancelled == [True]


class TestTimeLimiter:
    async def test_fast_call_succeeds(self) -> None:
        @time_limiter(timeout_ms=100)
        async def fast_op() -> str:
            await asyncio.sleep(0.01)
            return "done"

        assert await fast_op() == "done"

    async def test_slow_call_times_out(self) -> None:
        @time_limiter(timeout_ms=50)
        async def slow_op() -> str:
            await asyncio.sleep(1.0)
            return "done"

        with pytest.raises(OperationTimeoutException):
            await slow_op()

    async def test_timeout_message_includes_function_name(self) -> None:
        @time_limiter(timeout_ms=50)
        async def my_slow_function() -> None:
            await asyncio.sleep(1.0)

        with pytest.raises(OperationTimeoutException, match="my_slow_function exceeded timeout of 50ms"):
            await my_slow_function()

    async def test_arguments_forwarded(self) -> None:
        @time_limiter(timeout_ms=100)
        async def add(a: int, b: int = 0) -> int:
            return a + b

        assert await add(2, b=3) == 5

    async def test_exception_preserved(self) -> None:
        @time_limiter(timeout_ms=100)
        async def failing_op() -> None:
            raise ValueError("something went wrong")

        with pytest.raises(ValueError, match="something went wrong"):
            await failing_op()
