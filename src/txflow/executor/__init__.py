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
"""txflow Executor — transaction lifecycle orchestration."""

from txflow.executor.classifier import ErrorClassifier
from txflow.executor.executor import TransactionExecutor
from txflow.executor.notification import DeliveryOutcome, NotificationDispatcher, NotificationHandle
from txflow.executor.ports import (
    AuditService,
    AuthorizationService,
    BusinessLogic,
    DeadLetterSink,
    MetricsCollector,
    NotificationService,
)
from txflow.executor.result import (
    Failure,
    Success,
    TransactionError,
    TransactionMetadata,
    TransactionResult,
    TransactionState,
)

__all__ = [
    # Ports
    "AuditService",
    "AuthorizationService",
    "BusinessLogic",
    "DeadLetterSink",
    "MetricsCollector",
    "NotificationService",
    # Results
    "Failure",
    "Success",
    "TransactionError",
    "TransactionMetadata",
    "TransactionResult",
    "TransactionState",
    # Engine
    "DeliveryOutcome",
    "ErrorClassifier",
    "NotificationDispatcher",
    "NotificationHandle",
    "TransactionExecutor",
]
