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
"""Immutable fluent builder for :class:`TransactionContext`.

Every ``with_*`` call returns a new builder; the receiver is left untouched,
so a partially configured builder can be reused as a template for many
transactions without aliasing::

    base = TransactionContextBuilder.create().with_metrics_tags({"service": "payroll"})
    ctx = (
        base.with_business("ADD_EMPLOYEE", "hourly-employee-onboarding")
        .with_performance(timeout_ms=15_000)
        .build()
    )
"""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from txflow.context.model import (
    AuditContext,
    AuthorizationContext,
    BusinessContext,
    ComplianceLevel,
    DeliveryMode,
    MetricsContext,
    NotificationContext,
    NotificationPriority,
    PerformanceConfig,
    TargetEntity,
    TransactionContext,
    coerce_enum,
    frozen_mapping,
)
from txflow.core.properties import ExecutorProperties
from txflow.kernel.exceptions import MissingRequiredContextException
from txflow.kernel.ids import ResourceId, TransactionId, UserId, new_transaction_id
from txflow.security.context import User


def _empty() -> Mapping[str, Any]:
    return frozen_mapping(None)


@dataclass(frozen=True)
class TransactionContextBuilder:
    """Accumulates context fragments and validates them in :meth:`build`."""

    business: BusinessContext | None = None
    performance: PerformanceConfig | None = None
    metrics: MetricsContext | None = None
    authorization: AuthorizationContext | None = None
    audit: AuditContext | None = None
    notification: NotificationContext | None = None
    metrics_tags: Mapping[str, str] = field(default_factory=_empty)
    custom_metrics: Mapping[str, float] = field(default_factory=_empty)

    @classmethod
    def create(
        cls,
        transaction_id: TransactionId | None = None,
        properties: ExecutorProperties | None = None,
    ) -> TransactionContextBuilder:
        """Start a builder seeded with fresh metrics and default performance.

        The metrics fragment gets a new unique transaction id (unless one is
        given) and the current timestamp; performance defaults to a 30 s
        timeout with metrics enabled, or to the values of *properties*.
        """
        props = properties or ExecutorProperties()
        return cls(
            metrics=MetricsContext(
                transaction_id=transaction_id or new_transaction_id(),
                start_time=datetime.now(UTC),
            ),
            performance=PerformanceConfig(
                timeout_ms=props.default_timeout_ms,
                enable_metrics=props.enable_metrics,
            ),
        )

    # ── fragments ─────────────────────────────────────────────

    def with_business(
        self,
        operation_type: str,
        domain_context: str,
        metadata: Mapping[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> TransactionContextBuilder:
        return dataclasses.replace(
            self,
            business=BusinessContext(
                operation_type=operation_type,
                domain_context=domain_context,
                metadata=frozen_mapping(metadata),
                correlation_id=correlation_id or str(uuid.uuid4()),
            ),
        )

    def with_performance(
        self,
        config: PerformanceConfig | None = None,
        **overrides: Any,
    ) -> TransactionContextBuilder:
        """Set performance limits.

        *overrides* (``timeout_ms``, ``retry_policy``, ``circuit_breaker``,
        ``enable_metrics``) are merged over *config*, or over the builder's
        current performance fragment, or over the defaults.
        """
        base = config or self.performance or PerformanceConfig()
        return dataclasses.replace(self, performance=dataclasses.replace(base, **overrides))

    def with_authorization(
        self,
        required_permission: str,
        user: User,
        resource_id: ResourceId | None = None,
        resource_type: str | None = None,
        additional_claims: Mapping[str, Any] | None = None,
    ) -> TransactionContextBuilder:
        return dataclasses.replace(
            self,
            authorization=AuthorizationContext(
                required_permission=required_permission,
                user=user,
                resource_id=resource_id,
                resource_type=resource_type,
                additional_claims=frozen_mapping(additional_claims),
            ),
        )

    def with_audit(
        self,
        operation_name: str,
        entity_type: str,
        entity_id: ResourceId,
        performed_by: UserId,
        compliance_level: ComplianceLevel | str = ComplianceLevel.MEDIUM,
        business_data: Mapping[str, Any] | None = None,
        business_impact: str | None = None,
    ) -> TransactionContextBuilder:
        return dataclasses.replace(
            self,
            audit=AuditContext(
                operation_name=operation_name,
                entity_type=entity_type,
                entity_id=entity_id,
                performed_by=performed_by,
                compliance_level=coerce_enum(ComplianceLevel, compliance_level, "compliance_level"),
                business_data=frozen_mapping(business_data),
                business_impact=business_impact,
            ),
        )

    def with_notification(
        self,
        event_type: str,
        target_entity_type: str,
        target_entity_id: ResourceId,
        priority: NotificationPriority | str = NotificationPriority.NORMAL,
        delivery_mode: DeliveryMode | str = DeliveryMode.ASYNC,
        event_data: Mapping[str, Any] | None = None,
        recipients: Sequence[str] | None = None,
    ) -> TransactionContextBuilder:
        return dataclasses.replace(
            self,
            notification=NotificationContext(
                event_type=event_type,
                target_entity=TargetEntity(type=target_entity_type, id=target_entity_id),
                priority=coerce_enum(NotificationPriority, priority, "priority"),
                delivery_mode=coerce_enum(DeliveryMode, delivery_mode, "delivery_mode"),
                event_data=frozen_mapping(event_data),
                recipients=tuple(recipients or ()),
            ),
        )

    def with_metrics(
        self,
        transaction_id: TransactionId | None = None,
        start_time: datetime | None = None,
    ) -> TransactionContextBuilder:
        """Seed the metrics fragment explicitly (``create`` does this for you)."""
        return dataclasses.replace(
            self,
            metrics=MetricsContext(
                transaction_id=transaction_id or new_transaction_id(),
                start_time=start_time or datetime.now(UTC),
            ),
        )

    def with_metrics_tags(self, tags: Mapping[str, str]) -> TransactionContextBuilder:
        """Merge *tags* into the accumulated metrics tags; later values win."""
        return dataclasses.replace(
            self, metrics_tags=frozen_mapping({**self.metrics_tags, **tags})
        )

    def with_custom_metrics(self, values: Mapping[str, float]) -> TransactionContextBuilder:
        return dataclasses.replace(
            self, custom_metrics=frozen_mapping({**self.custom_metrics, **values})
        )

    # ── finalization ──────────────────────────────────────────

    def build(self) -> TransactionContext:
        """Validate the mandatory fragments and return the immutable context.

        Raises:
            MissingRequiredContextException: If business, performance or
                metrics was never supplied.
        """
        missing = [
            name
            for name, value in (
                ("business", self.business),
                ("performance", self.performance),
                ("metrics", self.metrics),
            )
            if value is None
        ]
        if missing:
            raise MissingRequiredContextException(missing)

        assert self.business is not None
        assert self.performance is not None
        assert self.metrics is not None

        metrics = dataclasses.replace(
            self.metrics,
            tags={**self.metrics.tags, **self.metrics_tags},
            custom_metrics={**self.metrics.custom_metrics, **self.custom_metrics},
        )
        return TransactionContext(
            business=self.business,
            performance=self.performance,
            metrics=metrics,
            authorization=self.authorization,
            audit=self.audit,
            notification=self.notification,
        )
