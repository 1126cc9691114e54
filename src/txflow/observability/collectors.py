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
"""Metrics collector adapters for transaction lifecycle events.

This module provides two ``MetricsCollector`` implementations:

* :class:`LoggingMetricsCollector` -- writes a log line for every
  start, success and error reported by the executor.
* :class:`CompositeMetricsCollector` -- fans-out each event to an ordered
  sequence of child collectors, absorbing individual collector failures so
  that one broken sink never silences the others.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from txflow.context.model import MetricsContext
    from txflow.executor.ports import MetricsCollector
    from txflow.executor.result import TransactionError

_logger = logging.getLogger("txflow.metrics")


class LoggingMetricsCollector:
    """Logs transaction metrics via the standard ``logging`` module.

    All messages are emitted through the ``txflow.metrics`` logger. Starts
    and successes log at :data:`logging.INFO`; errors at
    :data:`logging.WARNING`.
    """

    def start_transaction(self, metrics: MetricsContext) -> None:
        _logger.info(
            "Transaction '%s' started [tags=%s]",
            metrics.transaction_id,
            dict(metrics.tags),
        )

    def record_success(self, metrics: MetricsContext, duration_ms: float) -> None:
        _logger.info(
            "Transaction '%s' succeeded [duration=%.1fms]",
            metrics.transaction_id,
            duration_ms,
        )

    def record_error(self, metrics: MetricsContext, error: TransactionError, duration_ms: float) -> None:
        _logger.warning(
            "Transaction '%s' failed [code=%s, retryable=%s, duration=%.1fms]: %s",
            metrics.transaction_id,
            error.code.value,
            error.retryable,
            duration_ms,
            error.message,
        )


class CompositeMetricsCollector:
    """Broadcasts transaction metrics to multiple ``MetricsCollector`` sinks.

    If an individual collector raises an exception, the error is logged and
    the remaining collectors still receive the event.

    Args:
        *collectors: One or more :class:`MetricsCollector` implementations.
    """

    def __init__(self, *collectors: MetricsCollector) -> None:
        self._collectors: Sequence[MetricsCollector] = collectors

    def _broadcast(self, method: str, *args: object) -> None:
        for collector in self._collectors:
            try:
                getattr(collector, method)(*args)
            except Exception:
                _logger.error(
                    "Metrics collector %r failed on %s",
                    collector,
                    method,
                    exc_info=True,
                )

    def start_transaction(self, metrics: MetricsContext) -> None:
        self._broadcast("start_transaction", metrics)

    def record_success(self, metrics: MetricsContext, duration_ms: float) -> None:
        self._broadcast("record_success", metrics, duration_ms)

    def record_error(self, metrics: MetricsContext, error: TransactionError, duration_ms: float) -> None:
        self._broadcast("record_error", metrics, error, duration_ms)
