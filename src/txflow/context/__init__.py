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
"""txflow Context — transaction context model and builder."""

from txflow.context.builder import TransactionContextBuilder
from txflow.context.model import (
    AuditContext,
    AuthorizationContext,
    BackoffStrategy,
    BusinessContext,
    CircuitBreakerConfig,
    ComplianceLevel,
    DeliveryMode,
    MetricsContext,
    NotificationContext,
    NotificationPriority,
    PerformanceConfig,
    RetryPolicy,
    TargetEntity,
    TransactionContext,
)
from txflow.kernel.ids import ResourceId, TransactionId, UserId

__all__ = [
    "AuditContext",
    "AuthorizationContext",
    "BackoffStrategy",
    "BusinessContext",
    "CircuitBreakerConfig",
    "ComplianceLevel",
    "DeliveryMode",
    "MetricsContext",
    "NotificationContext",
    "NotificationPriority",
    "PerformanceConfig",
    "ResourceId",
    "RetryPolicy",
    "TargetEntity",
    "TransactionContext",
    "TransactionContextBuilder",
    "TransactionId",
    "UserId",
]
