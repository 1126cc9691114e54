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
"""Immutable result types — TransactionResult, TransactionError, TransactionMetadata."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, Literal, TypeVar

from txflow.kernel.ids import TransactionId
from txflow.kernel.types import ErrorKind

if TYPE_CHECKING:
    from txflow.executor.notification import NotificationHandle

T = TypeVar("T")


class TransactionState(StrEnum):
    """Lifecycle state of one ``execute`` call.

    ``CREATED → AUTHORIZING → {DENIED | EXECUTING} → RETRYING* → {SUCCEEDED | FAILED}``
    """

    CREATED = "CREATED"
    AUTHORIZING = "AUTHORIZING"
    DENIED = "DENIED"
    EXECUTING = "EXECUTING"
    RETRYING = "RETRYING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (TransactionState.SUCCEEDED, TransactionState.FAILED, TransactionState.DENIED)


@dataclass(frozen=True)
class TransactionMetadata:
    """Timing and identity information attached to every result.

    Fields
    ------
    transaction_id:
        Opaque id from the transaction's metrics context.
    start_time:
        When the context was created (``MetricsContext.start_time``).
    end_time:
        UTC timestamp at final resolution.
    duration_ms:
        Wall-clock time from the start of the first attempt to final
        resolution, inclusive of every retry and of synchronous
        post-processing. When the business logic never ran (a denial), it
        is measured from ``execute`` entry instead.
    retry_count:
        Number of retries performed (attempts minus one; zero when the
        business logic never ran).
    tags:
        Metrics tags of the transaction.
    attempts:
        Number of business-logic invocations.
    state:
        Terminal lifecycle state.
    """

    transaction_id: TransactionId
    start_time: datetime
    end_time: datetime
    duration_ms: float
    retry_count: int
    tags: Mapping[str, str]
    attempts: int = 0
    state: TransactionState = TransactionState.CREATED


@dataclass(frozen=True)
class TransactionError:
    """Typed description of why a transaction failed.

    ``retryable`` tells the caller whether re-invoking the whole transaction
    might succeed.
    """

    code: ErrorKind
    message: str
    retryable: bool
    cause: BaseException | None = None
    context: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dict suitable for JSON responses.

        ``code``, ``message`` and ``retryable`` are always included; the cause
        is reduced to its type name, and context only appears when non-empty.
        """
        result: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.cause is not None:
            result["cause"] = type(self.cause).__name__
        if self.context:
            result["context"] = dict(self.context)
        return result


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful transaction outcome.

    ``warnings`` lists non-fatal problems (a failed synchronous notification).
    ``notification`` is the handle of an asynchronous delivery still in
    flight, or ``None``.
    """

    data: T
    metadata: TransactionMetadata
    warnings: tuple[str, ...] = ()
    notification: NotificationHandle | None = None
    success: Literal[True] = True


@dataclass(frozen=True)
class Failure:
    """Failed transaction outcome."""

    error: TransactionError
    metadata: TransactionMetadata
    success: Literal[False] = False


TransactionResult = Success[T] | Failure
