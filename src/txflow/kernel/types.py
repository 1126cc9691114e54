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
"""Error kind tags shared by the exception hierarchy and transaction results.

This module uses only the Python standard library.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Classifies a transaction failure by its kind.

    The value is the stable tag reported as ``TransactionError.code`` and
    listed in ``RetryPolicy.retryable_errors``.
    """

    PERMISSION_DENIED = "PermissionDenied"
    TIMEOUT = "Timeout"
    TRANSIENT_INFRASTRUCTURE = "TransientInfrastructureError"
    BUSINESS_LOGIC = "BusinessLogicError"
    NOTIFICATION_DELIVERY = "NotificationDeliveryFailure"
    AUDIT_LOGGING = "AuditLoggingFailure"
    MISSING_REQUIRED_CONTEXT = "MissingRequiredContext"


DEFAULT_RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset(
    {ErrorKind.TIMEOUT, ErrorKind.TRANSIENT_INFRASTRUCTURE}
)

NEVER_RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset(
    {ErrorKind.PERMISSION_DENIED, ErrorKind.MISSING_REQUIRED_CONTEXT}
)
