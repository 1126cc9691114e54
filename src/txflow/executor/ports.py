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
"""Outbound port protocols for the transaction executor.

These ``@runtime_checkable`` ``Protocol`` definitions form the boundary
between the executor and its collaborators. The executor treats every
implementation as a black box: authorization may deny, while audit,
notification, metrics and dead-letter failures are isolated from the
transaction result.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol, TypeVar, runtime_checkable

from txflow.context.model import MetricsContext, NotificationContext
from txflow.executor.result import TransactionError
from txflow.kernel.ids import TransactionId
from txflow.resilience.time_limiter import CancellationToken
from txflow.security.context import AuthorizationRequest

T = TypeVar("T")

BusinessLogic = Callable[[], Awaitable[T] | T] | Callable[[CancellationToken], Awaitable[T] | T]
"""Opaque operation wrapped by the executor; may ask for the attempt's token."""


@runtime_checkable
class AuthorizationService(Protocol):
    """Port deciding whether a user may perform an operation.

    Must be safe to call before any business-logic side effect.
    """

    async def check_permission(self, permission: str, request: AuthorizationRequest) -> bool:
        """Return ``True`` when *request.user* holds *permission*."""
        ...


@runtime_checkable
class AuditService(Protocol):
    """Port recording business actions and errors for compliance."""

    async def log_business_action(self, name: str, detail: Mapping[str, Any]) -> None:
        """Record a completed business action."""
        ...

    async def log_business_error(self, name: str, detail: Mapping[str, Any]) -> None:
        """Record a denied or failed business action."""
        ...


@runtime_checkable
class NotificationService(Protocol):
    """Port delivering a notification about a completed transaction."""

    async def notify(self, notification: NotificationContext) -> Any:
        """Deliver *notification* and return a backend-specific outcome."""
        ...


@runtime_checkable
class MetricsCollector(Protocol):
    """Passive sink invoked at the start, success and error of each transaction."""

    def start_transaction(self, metrics: MetricsContext) -> None: ...

    def record_success(self, metrics: MetricsContext, duration_ms: float) -> None: ...

    def record_error(self, metrics: MetricsContext, error: TransactionError, duration_ms: float) -> None: ...


@runtime_checkable
class DeadLetterSink(Protocol):
    """Port receiving notifications whose asynchronous delivery failed."""

    async def handle(
        self,
        notification: NotificationContext,
        error: Exception,
        transaction_id: TransactionId,
    ) -> None:
        """Handle an undeliverable notification (park, alert, log)."""
        ...
