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
"""Tests for the stdlib-logging audit and dead-letter adapters."""

from __future__ import annotations

import logging

import pytest

from txflow.adapters.logging import LoggerAuditService, LoggingDeadLetterSink
from txflow.context.model import NotificationContext, NotificationPriority, TargetEntity
from txflow.executor.ports import AuditService, DeadLetterSink
from txflow.kernel.ids import ResourceId, TransactionId


class TestLoggerAuditService:
    @pytest.fixture
    def audit(self) -> LoggerAuditService:
        return LoggerAuditService()

    def test_implements_port(self, audit: LoggerAuditService) -> None:
        assert isinstance(audit, AuditService)

    async def test_action_logs_at_info(self, audit: LoggerAuditService, caplog: pytest.LogCaptureFixture) -> None:
        detail = {
            "entity_type": "Employee",
            "entity_id": "emp-1",
            "performed_by": "u-hr-1",
            "compliance_level": "high",
            "correlation_id": "corr-9",
        }
        with caplog.at_level(logging.INFO, logger="txflow.audit"):
            await audit.log_business_action("ADD_EMPLOYEE", detail)

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.levelno == logging.INFO
        expected = "Audit action 'ADD_EMPLOYEE' on Employee/emp-1 by u-hr-1 [compliance=high, correlation_id=corr-9]"
        assert expected in record.message

    async def test_error_logs_at_warning(self, audit: LoggerAuditService, caplog: pytest.LogCaptureFixture) -> None:
        detail = {
            "entity_type": "Employee",
            "entity_id": "emp-1",
            "attempted_by": "u-clerk-7",
            "compliance_level": "medium",
            "correlation_id": "corr-9",
            "error_reason": "Insufficient permissions",
        }
        with caplog.at_level(logging.WARNING, logger="txflow.audit"):
            await audit.log_business_error("ADD_EMPLOYEE_DENIED", detail)

        record = caplog.records[0]
        assert record.levelno == logging.WARNING
        assert "'ADD_EMPLOYEE_DENIED'" in record.message
        assert "by u-clerk-7" in record.message
        assert record.message.endswith(": Insufficient permissions")

    async def test_custom_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        audit = LoggerAuditService(logging.getLogger("payroll.compliance"))
        with caplog.at_level(logging.INFO, logger="payroll.compliance"):
            await audit.log_business_action("RUN_PAYROLL", {})

        assert caplog.records[0].name == "payroll.compliance"


class TestLoggingDeadLetterSink:
    def test_implements_port(self) -> None:
        assert isinstance(LoggingDeadLetterSink(), DeadLetterSink)

    async def test_logs_at_error(self, caplog: pytest.LogCaptureFixture) -> None:
        notification = NotificationContext(
            "EMPLOYEE_ADDED",
            TargetEntity("Employee", ResourceId("emp-1")),
            priority=NotificationPriority.URGENT,
        )
        with caplog.at_level(logging.ERROR, logger="txflow.dead_letter"):
            await LoggingDeadLetterSink().handle(notification, RuntimeError("smtp down"), TransactionId("tx-5"))

        record = caplog.records[0]
        assert record.levelno == logging.ERROR
        expected = "Undeliverable notification 'EMPLOYEE_ADDED' for Employee/emp-1 [transaction=tx-5, priority=urgent]: smtp down"
        assert expected in record.message
