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
"""Timeout guard racing an operation against a deadline.

The guard is cooperative: when the deadline wins, the operation is
*abandoned, not killed*. It keeps running in the background and its eventual
result or error is discarded. Operations that want to stop early accept a
:class:`CancellationToken` and check it at their own suspension points.

Limitation: this is a best-effort timeout, not a hard resource bound.
Synchronous callables run in the default thread pool and can never be
interrupted, even with ``cancel_on_timeout=True``.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Callable
from typing import Any

from txflow.kernel.exceptions import BusinessLogicException, OperationTimeoutException
from txflow.observability.logging import get_logger

logger = get_logger("txflow.resilience")


class CancellationToken:
    """Cooperative cancellation signal set by the guard when time runs out."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationTimeoutException` once the token is cancelled."""
        if self._event.is_set():
            raise OperationTimeoutException("Operation cancelled after its deadline", code="TIMEOUT")

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()


def accepts_token(operation: Callable[..., Any]) -> bool:
    """Whether *operation* declares a required positional parameter for the token."""
    try:
        params = inspect.signature(operation).parameters.values()
    except (TypeError, ValueError):
        return False
    return any(
        p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
        for p in params
    )


async def invoke(operation: Callable[..., Any], token: CancellationToken | None = None) -> Any:
    """Call *operation*, passing *token* when it asks for one.

    Coroutine functions are awaited; synchronous callables run in the default
    executor so they can be raced against the deadline. An awaitable returned
    by a synchronous callable is awaited too.
    """
    args = (token,) if token is not None and accepts_token(operation) else ()

    if inspect.iscoroutinefunction(operation):
        return await operation(*args)

    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, functools.partial(operation, *args))
    if inspect.isawaitable(result):
        return await result
    return result


class TimeoutGuard:
    """Runs an operation under a deadline; whichever settles first wins.

    Args:
        cancel_on_timeout: Also cancel the operation's task when the deadline
            wins. By default the task is left running and only abandoned.
    """

    def __init__(self, cancel_on_timeout: bool = False) -> None:
        self._cancel_on_timeout = cancel_on_timeout
        self._abandoned: set[asyncio.Task[Any]] = set()

    @property
    def cancel_on_timeout(self) -> bool:
        return self._cancel_on_timeout

    @property
    def abandoned(self) -> int:
        """Number of timed-out operations still running in the background."""
        return len(self._abandoned)

    async def run(
        self,
        operation: Callable[..., Any],
        timeout_ms: float,
        token: CancellationToken | None = None,
    ) -> Any:
        """Return the operation's result, or raise if the deadline wins.

        Raises:
            OperationTimeoutException: If *timeout_ms* elapses first.
            BusinessLogicException: If the operation ended cancelled while
                the guard itself was not.
            Exception: Whatever the operation raised, if it settled first.
        """
        task = asyncio.ensure_future(invoke(operation, token))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000.0)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task in done:
            if task.cancelled():
                raise BusinessLogicException("Operation was cancelled", code="CANCELLED")
            return task.result()

        if token is not None:
            token.cancel()
        self._abandoned.add(task)
        task.add_done_callback(self._discard)
        if self._cancel_on_timeout:
            task.cancel()

        raise OperationTimeoutException(
            f"Operation did not complete within {timeout_ms} ms",
            code="TIMEOUT",
            context={"timeout_ms": timeout_ms},
        )

    def _discard(self, task: asyncio.Task[Any]) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            logger.debug("abandoned_operation_cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("abandoned_operation_failed", error=str(exc), error_type=type(exc).__name__)
        else:
            logger.debug("abandoned_operation_completed")


def time_limiter(
    timeout_ms: int,
    cancel_on_timeout: bool = True,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator that limits execution time of an async function.

    Args:
        timeout_ms: Maximum time allowed for the function to complete.
        cancel_on_timeout: Cancel the call when it overruns (default), or
            abandon it and let it finish in the background.

    Raises:
        OperationTimeoutException: If the function exceeds the timeout.
    """
    guard = TimeoutGuard(cancel_on_timeout=cancel_on_timeout)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await guard.run(functools.partial(func, *args, **kwargs), timeout_ms)
            except OperationTimeoutException as exc:
                raise OperationTimeoutException(
                    f"{func.__name__} exceeded timeout of {timeout_ms}ms",
                    code="TIMEOUT",
                    context={"timeout_ms": timeout_ms},
                ) from exc

        return wrapper

    return decorator
