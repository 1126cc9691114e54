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
"""Immutable value objects describing one transaction invocation.

A :class:`TransactionContext` bundles everything the executor needs beyond
the business payload itself: business intent, performance limits, and the
optional authorization, audit and notification requirements. Every mapping
is stored as a read-only copy, so callers' later mutations never leak in.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from types import MappingProxyType
from typing import Any, TypeVar

from txflow.kernel.exceptions import ValidationException
from txflow.kernel.ids import ResourceId, TransactionId, UserId, new_transaction_id
from txflow.kernel.types import DEFAULT_RETRYABLE_KINDS, ErrorKind
from txflow.security.context import User

DEFAULT_TIMEOUT_MS = 30_000


def frozen_mapping(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    """Return a read-only shallow copy of *mapping* (empty when ``None``)."""
    return MappingProxyType(dict(mapping or {}))


def _empty() -> Mapping[str, Any]:
    return MappingProxyType({})


E = TypeVar("E", bound=StrEnum)


def coerce_enum(enum_cls: type[E], value: Any, field_name: str) -> E:
    """Coerce *value* to *enum_cls*, raising :class:`ValidationException` if unknown."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationException(
            f"Invalid {field_name} {value!r}; expected one of: {allowed}",
            code="INVALID_ENUM_VALUE",
            context={"field": field_name, "value": str(value)},
        ) from None


class BackoffStrategy(StrEnum):
    """How the delay between retry attempts grows."""

    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    FIXED = "fixed"


class ComplianceLevel(StrEnum):
    """Audit severity attached to sensitive operations."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class NotificationPriority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class DeliveryMode(StrEnum):
    """Whether the executor waits for notification delivery."""

    SYNC = "sync"
    ASYNC = "async"


# ── business & performance ────────────────────────────────────


@dataclass(frozen=True)
class BusinessContext:
    """Business intent of the transaction."""

    operation_type: str
    domain_context: str
    metadata: Mapping[str, Any] = field(default_factory=_empty)
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", frozen_mapping(self.metadata))


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry configuration.

    Only failures whose :class:`ErrorKind` is listed in *retryable_errors*
    are retried in-process.
    """

    max_attempts: int = 1
    backoff_strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    base_delay_ms: float = 0
    max_delay_ms: float = 0
    retryable_errors: frozenset[ErrorKind] = DEFAULT_RETRYABLE_KINDS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValidationException(
                f"max_attempts must be >= 1, got {self.max_attempts}", code="INVALID_RETRY_POLICY"
            )
        if self.base_delay_ms < 0:
            raise ValidationException(
                f"base_delay_ms must be >= 0, got {self.base_delay_ms}", code="INVALID_RETRY_POLICY"
            )
        if self.max_delay_ms < self.base_delay_ms:
            raise ValidationException(
                f"max_delay_ms ({self.max_delay_ms}) must be >= base_delay_ms ({self.base_delay_ms})",
                code="INVALID_RETRY_POLICY",
            )
        object.__setattr__(
            self, "backoff_strategy", coerce_enum(BackoffStrategy, self.backoff_strategy, "backoff_strategy")
        )
        object.__setattr__(
            self,
            "retryable_errors",
            frozenset(coerce_enum(ErrorKind, kind, "retryable_errors") for kind in self.retryable_errors),
        )


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Circuit breaker settings passed through to collaborator services.

    The executor does not enforce these values itself.
    """

    failure_threshold: int
    recovery_timeout_ms: int
    monitoring_period_ms: int


@dataclass(frozen=True)
class PerformanceConfig:
    """Timeout, retry and metrics settings for one transaction."""

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retry_policy: RetryPolicy | None = None
    circuit_breaker: CircuitBreakerConfig | None = None
    enable_metrics: bool = True

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ValidationException(
                f"timeout_ms must be > 0, got {self.timeout_ms}", code="INVALID_PERFORMANCE_CONFIG"
            )


# ── optional cross-cutting requirements ───────────────────────


@dataclass(frozen=True)
class AuthorizationContext:
    required_permission: str
    user: User
    resource_id: ResourceId | None = None
    resource_type: str | None = None
    additional_claims: Mapping[str, Any] = field(default_factory=_empty)

    def __post_init__(self) -> None:
        object.__setattr__(self, "additional_claims", frozen_mapping(self.additional_claims))


@dataclass(frozen=True)
class AuditContext:
    operation_name: str
    entity_type: str
    entity_id: ResourceId
    performed_by: UserId
    compliance_level: ComplianceLevel = ComplianceLevel.MEDIUM
    business_data: Mapping[str, Any] = field(default_factory=_empty)
    business_impact: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "compliance_level", coerce_enum(ComplianceLevel, self.compliance_level, "compliance_level")
        )
        object.__setattr__(self, "business_data", frozen_mapping(self.business_data))


@dataclass(frozen=True)
class TargetEntity:
    type: str
    id: ResourceId


@dataclass(frozen=True)
class NotificationContext:
    event_type: str
    target_entity: TargetEntity
    priority: NotificationPriority = NotificationPriority.NORMAL
    delivery_mode: DeliveryMode = DeliveryMode.ASYNC
    event_data: Mapping[str, Any] = field(default_factory=_empty)
    recipients: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "priority", coerce_enum(NotificationPriority, self.priority, "priority"))
        object.__setattr__(self, "delivery_mode", coerce_enum(DeliveryMode, self.delivery_mode, "delivery_mode"))
        object.__setattr__(self, "event_data", frozen_mapping(self.event_data))
        object.__setattr__(self, "recipients", tuple(self.recipients))


@dataclass(frozen=True)
class MetricsContext:
    """Identity and tags under which a transaction's metrics are recorded."""

    transaction_id: TransactionId = field(default_factory=new_transaction_id)
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    tags: Mapping[str, str] = field(default_factory=_empty)
    custom_metrics: Mapping[str, float] = field(default_factory=_empty)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", frozen_mapping({k: str(v) for k, v in self.tags.items()}))
        object.__setattr__(self, "custom_metrics", frozen_mapping(self.custom_metrics))


# ── aggregate ─────────────────────────────────────────────────


@dataclass(frozen=True)
class TransactionContext:
    """Everything one transaction invocation needs beyond its payload.

    Built once by :class:`~txflow.context.builder.TransactionContextBuilder`,
    consumed once by the executor, never mutated.
    """

    business: BusinessContext
    performance: PerformanceConfig
    metrics: MetricsContext
    authorization: AuthorizationContext | None = None
    audit: AuditContext | None = None
    notification: NotificationContext | None = None

    @property
    def transaction_id(self) -> TransactionId:
        return self.metrics.transaction_id

    @property
    def retry_policy(self) -> RetryPolicy | None:
        return self.performance.retry_policy
