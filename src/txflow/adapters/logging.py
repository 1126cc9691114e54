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
"""Adapters that write audit records and dead letters to the stdlib logger."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from txflow.context.model import NotificationContext
from txflow.kernel.ids import TransactionId

_audit_logger = logging.getLogger("txflow.audit")
_dead_letter_logger = logging.getLogger("txflow.dead_letter")


class LoggerAuditService:
    """Writes audit records through the ``txflow.audit`` logger.

    Actions log at :data:`logging.INFO`; denials and failures at
    :data:`logging.WARNING`.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _audit_logger

    async def log_business_action(self, name: str, detail: Mapping[str, Any]) -> None:
        self._logger.info(
            "Audit action '%s' on %s/%s by %s [compliance=%s, correlation_id=%s]",
            name,
            detail.get("entity_type"),
            detail.get("entity_id"),
            detail.get("performed_by"),
            detail.get("compliance_level"),
            detail.get("correlation_id"),
        )

    async def log_business_error(self, name: str, detail: Mapping[str, Any]) -> None:
        self._logger.warning(
            "Audit error '%s' on %s/%s by %s [compliance=%s, correlation_id=%s]: %s",
            name,
            detail.get("entity_type"),
            detail.get("entity_id"),
            detail.get("attempted_by"),
            detail.get("compliance_level"),
            detail.get("correlation_id"),
            detail.get("error_reason"),
        )


class LoggingDeadLetterSink:
    """Logs undeliverable notifications at :data:`logging.ERROR`."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _dead_letter_logger

    async def handle(
        self,
        notification: NotificationContext,
        error: Exception,
        transaction_id: TransactionId,
    ) -> None:
        self._logger.error(
            "Undeliverable notification '%s' for %s/%s [transaction=%s, priority=%s]: %s",
            notification.event_type,
            notification.target_entity.type,
            notification.target_entity.id,
            transaction_id,
            notification.priority.value,
            error,
        )
