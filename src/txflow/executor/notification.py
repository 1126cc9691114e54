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
"""Background delivery of asynchronous notifications.

Fire-and-forget with an explicit handle: the executor returns a
:class:`NotificationHandle` instead of dropping the task, and every failed
delivery is logged and forwarded to a :class:`DeadLetterSink`. The delivery
task never raises, so a failure cannot reach the caller of ``execute``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from txflow.context.model import NotificationContext
from txflow.executor.ports import DeadLetterSink, NotificationService
from txflow.kernel.exceptions import NotificationDeliveryException
from txflow.kernel.ids import TransactionId
from txflow.observability.logging import get_logger

logger = get_logger("txflow.notification")


@dataclass(frozen=True)
class DeliveryOutcome:
    """How an asynchronous delivery ended."""

    delivered: bool
    result: Any = None
    error: NotificationDeliveryException | None = None


class NotificationHandle:
    """Handle on an in-flight asynchronous notification."""

    def __init__(self, task: asyncio.Task[DeliveryOutcome], notification: NotificationContext) -> None:
        self._task = task
        self._notification = notification

    @property
    def notification(self) -> NotificationContext:
        return self._notification

    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> DeliveryOutcome:
        """Wait for delivery to settle. Never raises a delivery error."""
        return await asyncio.shield(self._task)


class NotificationDispatcher:
    """Delivers notifications in the background and tracks pending deliveries.

    Args:
        service: Notification backend.
        dead_letter: Receives notifications whose delivery failed.
    """

    def __init__(self, service: NotificationService, dead_letter: DeadLetterSink | None = None) -> None:
        self._service = service
        self._dead_letter = dead_letter
        self._tasks: set[asyncio.Task[DeliveryOutcome]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def deliver(self, notification: NotificationContext) -> Any:
        """Deliver and wait, wrapping any failure in NotificationDeliveryException."""
        try:
            return await self._service.notify(notification)
        except Exception as exc:
            raise NotificationDeliveryException(
                f"Delivery of '{notification.event_type}' failed: {exc}",
                code="NOTIFICATION_DELIVERY",
                context={"event_type": notification.event_type},
            ) from exc

    def dispatch(self, notification: NotificationContext, transaction_id: TransactionId) -> NotificationHandle:
        """Start delivery in the background and return immediately."""
        task = asyncio.create_task(
            self._deliver_in_background(notification, transaction_id),
            name=f"txflow-notify-{transaction_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return NotificationHandle(task, notification)

    async def drain(self) -> None:
        """Wait for every pending background delivery to settle."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _deliver_in_background(
        self, notification: NotificationContext, transaction_id: TransactionId
    ) -> DeliveryOutcome:
        try:
            result = await self.deliver(notification)
        except NotificationDeliveryException as exc:
            logger.warning(
                "notification_delivery_failed",
                transaction_id=transaction_id,
                event_type=notification.event_type,
                delivery_mode=notification.delivery_mode.value,
                error=str(exc.__cause__ or exc),
            )
            await self._dead_letter_safely(notification, exc, transaction_id)
            return DeliveryOutcome(delivered=False, error=exc)

        logger.debug(
            "notification_delivered",
            transaction_id=transaction_id,
            event_type=notification.event_type,
        )
        return DeliveryOutcome(delivered=True, result=result)

    async def _dead_letter_safely(
        self,
        notification: NotificationContext,
        error: NotificationDeliveryException,
        transaction_id: TransactionId,
    ) -> None:
        if self._dead_letter is None:
            return
        try:
            await self._dead_letter.handle(notification, error, transaction_id)
        except Exception:
            logger.exception(
                "dead_letter_sink_failed",
                transaction_id=transaction_id,
                event_type=notification.event_type,
            )
