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
"""Failure classification: which ErrorKind an exception is, and whether it is retryable."""

from __future__ import annotations

from txflow.context.model import RetryPolicy
from txflow.kernel.exceptions import TxFlowException
from txflow.kernel.types import DEFAULT_RETRYABLE_KINDS, NEVER_RETRYABLE_KINDS, ErrorKind


class ErrorClassifier:
    """Maps exceptions to error kinds.

    Rules, first match wins:

    1. txflow exceptions report their own ``kind``.
    2. ``TimeoutError`` is a ``Timeout``.
    3. ``ConnectionError`` is a ``TransientInfrastructureError``.
    4. Anything else is a ``BusinessLogicError``.

    Subclass and override :meth:`classify` to teach it about a backend's
    own exception types.
    """

    def classify(self, exc: BaseException) -> ErrorKind:
        if isinstance(exc, TxFlowException):
            return exc.kind
        if isinstance(exc, TimeoutError):
            return ErrorKind.TIMEOUT
        if isinstance(exc, ConnectionError):
            return ErrorKind.TRANSIENT_INFRASTRUCTURE
        return ErrorKind.BUSINESS_LOGIC

    def is_retryable(self, kind: ErrorKind, policy: RetryPolicy | None) -> bool:
        """Whether a failure of *kind* may succeed when tried again.

        With a policy this is membership in ``policy.retryable_errors``;
        without one, membership in the default transient kinds.
        ``PermissionDenied`` and ``MissingRequiredContext`` never are.
        """
        if kind in NEVER_RETRYABLE_KINDS:
            return False
        if policy is None:
            return kind in DEFAULT_RETRYABLE_KINDS
        return kind in policy.retryable_errors
