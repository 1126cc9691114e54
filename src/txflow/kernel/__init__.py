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
"""txflow Kernel — Foundation layer with zero external dependencies."""

from txflow.kernel.exceptions import (
    AuditLoggingException,
    BusinessException,
    BusinessLogicException,
    InfrastructureException,
    MissingRequiredContextException,
    NetworkException,
    NotificationDeliveryException,
    OperationTimeoutException,
    PermissionDeniedException,
    SecurityException,
    ServiceUnavailableException,
    TransientInfrastructureException,
    TxFlowException,
    ValidationException,
)
from txflow.kernel.types import DEFAULT_RETRYABLE_KINDS, NEVER_RETRYABLE_KINDS, ErrorKind

__all__ = [
    # Types
    "DEFAULT_RETRYABLE_KINDS",
    "NEVER_RETRYABLE_KINDS",
    "ErrorKind",
    # Base
    "TxFlowException",
    # Business
    "BusinessException",
    "BusinessLogicException",
    "ValidationException",
    "MissingRequiredContextException",
    # Security
    "SecurityException",
    "PermissionDeniedException",
    # Infrastructure
    "InfrastructureException",
    "TransientInfrastructureException",
    "ServiceUnavailableException",
    "NetworkException",
    "OperationTimeoutException",
    "NotificationDeliveryException",
    "AuditLoggingException",
]
