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
"""Tests for the logging and composite metrics collectors."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from txflow.context.model import MetricsContext
from txflow.executor.ports import MetricsCollector
from txflow.executor.result import TransactionError
from txflow.kernel.ids import TransactionId
from txflow.kernel.types import ErrorKind
from txflow.observability.collectors import CompositeMetricsCollector, LoggingMetricsCollector


@pytest.fixture
def metrics() -> MetricsContext:
    return MetricsContext(transaction_id=TransactionId("tx-42"), tags={"operation": "ADD_EMPLOYEE"})


@pytest.fixture
def error() -> TransactionError:
    return TransactionError(code=ErrorKind.TIMEOUT, message="took too long", retryable=True)


# ---------------------------------------------------------------------------
# LoggingMetricsCollector
# ---------------------------------------------------------------------------


class TestLoggingMetricsCollector:
    @pytest.fixture
    def collector(self) -> LoggingMetricsCollector:
        return LoggingMetricsCollector()

    def test_implements_protocol(self, collector: LoggingMetricsCollector) -> None:
        assert isinstance(collector, MetricsCollector)

    def test_start_logs_at_info(
        self, collector: LoggingMetricsCollector, metrics: MetricsContext, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="txflow.metrics"):
            collector.start_transaction(metrics)

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.levelno == logging.INFO
        assert "Transaction 'tx-42' started [tags={'operation': 'ADD_EMPLOYEE'}]" in record.message

    def test_success_message_format(
        self, collector: LoggingMetricsCollector, metrics: MetricsContext, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="txflow.metrics"):
            collector.record_success(metrics, 42.567)

        assert "Transaction 'tx-42' succeeded [duration=42.6ms]" in caplog.records[0].message

    def test_error_logs_at_warning(
        self,
        collector: LoggingMetricsCollector,
        metrics: MetricsContext,
        error: TransactionError,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="txflow.metrics"):
            collector.record_error(metrics, error, 50.0)

        record = caplog.records[0]
        assert record.levelno == logging.WARNING
        expected = "Transaction 'tx-42' failed [code=Timeout, retryable=True, duration=50.0ms]: took too long"
        assert expected in record.message


# ---------------------------------------------------------------------------
# CompositeMetricsCollector
# ---------------------------------------------------------------------------


class TestCompositeMetricsCollector:
    def test_broadcasts_to_all(self, metrics: MetricsContext, error: TransactionError) -> None:
        first, second = MagicMock(), MagicMock()
        composite = CompositeMetricsCollector(first, second)

        composite.start_transaction(metrics)
        composite.record_success(metrics, 1.0)
        composite.record_error(metrics, error, 2.0)

        for child in (first, second):
            child.start_transaction.assert_called_once_with(metrics)
            child.record_success.assert_called_once_with(metrics, 1.0)
            child.record_error.assert_called_once_with(metrics, error, 2.0)

    def test_failing_collector_does_not_silence_others(
        self, metrics: MetricsContext, caplog: pytest.LogCaptureFixture
    ) -> None:
        broken, healthy = MagicMock(), MagicMock()
        broken.start_transaction.side_effect = RuntimeError("statsd unreachable")
        composite = CompositeMetricsCollector(broken, healthy)

        with caplog.at_level(logging.ERROR, logger="txflow.metrics"):
            composite.start_transaction(metrics)

        healthy.start_transaction.assert_called_once_with(metrics)
        assert len(caplog.records) == 1
        assert "failed on start_transaction" in caplog.records[0].message
        assert caplog.records[0].exc_info is not None

    def test_empty_composite_is_noop(self, metrics: MetricsContext) -> None:
        CompositeMetricsCollector().record_success(metrics, 1.0)
