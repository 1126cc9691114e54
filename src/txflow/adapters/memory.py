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
"""In-memory adapters for the executor's outbound ports.

These keep everything they receive in plain Python lists, making them the
zero-dependency default for local runs and tests. **All state is lost on
process restart.**
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from txflow.context.model import MetricsContext, NotificationContext
from txflow.executor.result import TransactionError
from txflow.kernel.exceptions import ServiceUnavailableException
from txflow.kernel.ids import TransactionId


@dataclass(frozen=True)
class AuditEntry:
    """One record written through :class:`InMemoryAuditService`."""

    kind: str  # "action" | "error"
    name: str
    detail: Mapping[str, Any]
    recorded_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class InMemoryAuditService:
    """:class:`AuditService` appending every record to :attr:`entries`."""

    def __init__(self) -> None:
        self.entries: list[AuditEntry] = []

    async def log_business_action(self, name: str, detail: Mapping[str, Any]) -> None:
        self.entries.append(AuditEntry(kind="action", name=name, detail=dict(detail)))

    async def log_business_error(self, name: str, detail: Mapping[str, Any]) -> None:
        self.entries.append(AuditEntry(kind="error", name=name, detail=dict(detail)))

    # -- queries ------------------------------------------------------------

    @property
    def actions(self) -> list[AuditEntry]:
        return [e for e in self.entries if e.kind == "action"]

    @property
    def errors(self) -> list[AuditEntry]:
        return [e for e in self.entries if e.kind == "error"]

    def named(self, name: str) -> list[AuditEntry]:
        """Return the entries recorded under *name*, oldest first."""
        return [e for e in self.entries if e.name == name]

    def clear(self) -> None:
        self.entries.clear()


class InMemoryNotificationService:
    """:class:`NotificationService` that stores delivered notifications.

    Args:
        delay_s: Simulated delivery latency in seconds.
        fail: When ``True`` every delivery raises
            :class:`ServiceUnavailableException` after the delay.
    """

    def __init__(self, delay_s: float = 0.0, fail: bool = False) -> None:
        self.delivered: list[NotificationContext] = []
        self.attempts = 0
        self._delay_s = delay_s
        self._fail = fail

    async def notify(self, notification: NotificationContext) -> str:
        self.attempts += 1
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        if self._fail:
            raise ServiceUnavailableException(
                f"Notification backend unavailable for '{notification.event_type}'",
                code="NOTIFICATION_BACKEND_DOWN",
            )
        self.delivered.append(notification)
        return f"notification-{len(self.delivered)}"


class RecordingMetricsCollector:
    """:class:`MetricsCollector` keeping every event for later inspection."""

    def __init__(self) -> None:
        self.started: list[MetricsContext] = []
        self.successes: list[tuple[MetricsContext, float]] = []
        self.errors: list[tuple[MetricsContext, TransactionError, float]] = []

    def start_transaction(self, metrics: MetricsContext) -> None:
        self.started.append(metrics)

    def record_success(self, metrics: MetricsContext, duration_ms: float) -> None:
        self.successes.append((metrics, duration_ms))

    def record_error(self, metrics: MetricsContext, error: TransactionError, duration_ms: float) -> None:
        self.errors.append((metrics, error, duration_ms))

    @property
    def in_flight(self) -> int:
        """Transactions started but not yet resolved."""
        return len(self.started) - len(self.successes) - len(self.errors)


@dataclass(frozen=True)
class DeadLetter:
    """A notification whose asynchronous delivery failed."""

    notification: NotificationContext
    error: Exception
    transaction_id: TransactionId
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class InMemoryDeadLetterSink:
    """:class:`DeadLetterSink` parking failed notifications in :attr:`letters`."""

    def __init__(self) -> None:
        self.letters: list[DeadLetter] = []

    async def handle(
        self,
        notification: NotificationContext,
        error: Exception,
        transaction_id: TransactionId,
    ) -> None:
        self.letters.append(DeadLetter(notification, error, transaction_id))

    def for_transaction(self, transaction_id: TransactionId) -> list[DeadLetter]:
        return [letter for letter in self.letters if letter.transaction_id == transaction_id]
