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
"""Tests for TransactionContextBuilder."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from txflow.context.builder import TransactionContextBuilder
from txflow.context.model import (
    BackoffStrategy,
    ComplianceLevel,
    DeliveryMode,
    NotificationPriority,
    PerformanceConfig,
    RetryPolicy,
)
from txflow.core.properties import ExecutorProperties
from txflow.kernel.exceptions import MissingRequiredContextException, ValidationException
from txflow.kernel.ids import ResourceId, TransactionId, UserId


class TestCreate:
    def test_seeds_metrics_and_performance(self):
        builder = TransactionContextBuilder.create()
        assert builder.metrics is not None
        assert builder.metrics.transaction_id
        assert builder.performance == PerformanceConfig(timeout_ms=30_000, enable_metrics=True)

    def test_each_builder_gets_a_unique_transaction_id(self):
        first = TransactionContextBuilder.create()
        second = TransactionContextBuilder.create()
        assert first.metrics.transaction_id != second.metrics.transaction_id  # type: ignore[union-attr]

    def test_explicit_transaction_id(self):
        builder = TransactionContextBuilder.create(transaction_id=TransactionId("tx-fixed"))
        assert builder.metrics.transaction_id == "tx-fixed"  # type: ignore[union-attr]

    def test_properties_override_defaults(self):
        props = ExecutorProperties(default_timeout_ms=5_000, enable_metrics=False)
        builder = TransactionContextBuilder.create(properties=props)
        assert builder.performance == PerformanceConfig(timeout_ms=5_000, enable_metrics=False)


class TestBuild:
    def test_empty_builder_reports_every_missing_fragment(self):
        with pytest.raises(MissingRequiredContextException) as exc_info:
            TransactionContextBuilder().build()
        assert exc_info.value.missing == ["business", "performance", "metrics"]

    def test_created_builder_without_business(self):
        with pytest.raises(MissingRequiredContextException) as exc_info:
            TransactionContextBuilder.create().build()
        assert exc_info.value.missing == ["business"]

    def test_explicit_metrics_without_create(self):
        started = datetime(2026, 1, 5, 9, 30, tzinfo=UTC)
        ctx = (
            TransactionContextBuilder()
            .with_business("ADD_EMPLOYEE", "onboarding")
            .with_performance(timeout_ms=1_000)
            .with_metrics(TransactionId("tx-7"), start_time=started)
            .build()
        )
        assert ctx.transaction_id == "tx-7"
        assert ctx.metrics.start_time == started

    def test_minimal_context(self, base_builder):
        ctx = base_builder.build()
        assert ctx.business.operation_type == "ADD_EMPLOYEE"
        assert ctx.business.metadata == {"department": "payroll"}
        assert ctx.authorization is None
        assert ctx.audit is None
        assert ctx.notification is None
        assert ctx.retry_policy is None

    def test_full_context(self, base_builder, hr_manager, employee_id):
        policy = RetryPolicy(
            max_attempts=3, backoff_strategy=BackoffStrategy.FIXED, base_delay_ms=10, max_delay_ms=10
        )
        ctx = (
            base_builder.with_performance(timeout_ms=15_000, retry_policy=policy)
            .with_authorization("employee:write", hr_manager, employee_id, "Employee")
            .with_audit(
                "ADD_EMPLOYEE",
                "Employee",
                employee_id,
                hr_manager.id,
                compliance_level="high",
                business_data={"hourly_rate": 21.5},
            )
            .with_notification(
                "EMPLOYEE_ADDED",
                "Employee",
                employee_id,
                priority="high",
                delivery_mode="sync",
                recipients=["hr@example.com"],
            )
            .with_metrics_tags({"operation": "ADD_EMPLOYEE"})
            .with_custom_metrics({"hourly_rate": 21.5})
            .build()
        )
        assert ctx.performance.timeout_ms == 15_000
        assert ctx.retry_policy is policy
        assert ctx.authorization.required_permission == "employee:write"  # type: ignore[union-attr]
        assert ctx.authorization.user is hr_manager  # type: ignore[union-attr]
        assert ctx.audit.compliance_level is ComplianceLevel.HIGH  # type: ignore[union-attr]
        assert ctx.audit.performed_by == UserId("u-hr-1")  # type: ignore[union-attr]
        assert ctx.notification.priority is NotificationPriority.HIGH  # type: ignore[union-attr]
        assert ctx.notification.delivery_mode is DeliveryMode.SYNC  # type: ignore[union-attr]
        assert ctx.notification.target_entity.id == ResourceId("emp-1001")  # type: ignore[union-attr]
        assert ctx.metrics.tags == {"operation": "ADD_EMPLOYEE"}
        assert ctx.metrics.custom_metrics == {"hourly_rate": 21.5}

    def test_correlation_id_can_be_supplied(self):
        builder = TransactionContextBuilder.create().with_business("OP", "dom", correlation_id="corr-1")
        assert builder.build().business.correlation_id == "corr-1"


class TestImmutability:
    def test_with_methods_return_new_builders(self, base_builder):
        tagged = base_builder.with_metrics_tags({"service": "payroll"})
        assert tagged is not base_builder
        assert dict(base_builder.metrics_tags) == {}

    def test_template_reuse_does_not_alias(self, base_builder):
        first = base_builder.with_metrics_tags({"region": "eu"}).build()
        second = base_builder.with_metrics_tags({"region": "us"}).build()
        assert first.metrics.tags == {"region": "eu"}
        assert second.metrics.tags == {"region": "us"}

    def test_tags_merge_later_wins(self, base_builder):
        ctx = base_builder.with_metrics_tags({"a": "1", "b": "1"}).with_metrics_tags({"b": "2"}).build()
        assert ctx.metrics.tags == {"a": "1", "b": "2"}

    def test_caller_mutation_after_build_does_not_leak(self, base_builder, hr_manager, employee_id):
        business_data = {"hourly_rate": 20}
        ctx = base_builder.with_audit("ADD_EMPLOYEE", "Employee", employee_id, hr_manager.id, business_data=business_data).build()
        business_data["hourly_rate"] = 99
        assert ctx.audit.business_data == {"hourly_rate": 20}  # type: ignore[union-attr]

    def test_with_performance_overrides_merge(self):
        builder = TransactionContextBuilder.create().with_performance(timeout_ms=1_000)
        builder = builder.with_performance(enable_metrics=False)
        assert builder.performance == PerformanceConfig(timeout_ms=1_000, enable_metrics=False)

    def test_with_performance_from_config(self):
        config = PerformanceConfig(timeout_ms=2_000)
        builder = TransactionContextBuilder.create().with_performance(config)
        assert builder.performance is not None
        assert builder.performance.timeout_ms == 2_000


class TestEnumValidation:
    def test_invalid_compliance_level(self, base_builder, hr_manager, employee_id):
        with pytest.raises(ValidationException, match="Invalid compliance_level 'HIGH'"):
            base_builder.with_audit("ADD_EMPLOYEE", "Employee", employee_id, hr_manager.id, compliance_level="HIGH")

    def test_invalid_delivery_mode(self, base_builder, employee_id):
        with pytest.raises(ValidationException) as exc_info:
            base_builder.with_notification("EMPLOYEE_ADDED", "Employee", employee_id, delivery_mode="batch")
        assert exc_info.value.code == "INVALID_ENUM_VALUE"
