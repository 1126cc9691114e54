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
"""TransactionExecutor — runs business logic inside the transaction lifecycle.

Lifecycle of one :meth:`TransactionExecutor.execute` call::

    CREATED → AUTHORIZING → {DENIED | EXECUTING} → RETRYING* → {SUCCEEDED | FAILED}

1. Authorization gate (when the context asks for it). A denial is audited
   as ``{operation}_DENIED`` and ends the transaction without running the
   business logic.
2. Business logic under the timeout guard, retried with backoff while the
   retry policy allows it.
3. On success, audit and synchronous notification run concurrently; an
   asynchronous notification is dispatched in the background.
4. On final failure, a single ``{operation}_FAILED`` audit record.

Audit, notification and metrics failures are logged and isolated: they
never turn a success into a failure nor hide a failure.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

from txflow.context.model import DeliveryMode, NotificationContext, TransactionContext
from txflow.core.config import Config
from txflow.core.properties import ExecutorProperties
from txflow.executor.classifier import ErrorClassifier
from txflow.executor.notification import NotificationDispatcher, NotificationHandle
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
from txflow.kernel.exceptions import PermissionDeniedException
from txflow.kernel.types import ErrorKind
from txflow.observability.logging import get_logger
from txflow.resilience.retry import RetryEvaluator
from txflow.resilience.time_limiter import CancellationToken, TimeoutGuard
from txflow.security.context import AuthorizationRequest

T = TypeVar("T")

logger = get_logger("txflow.executor")

DENIED_REASON = "Insufficient permissions"


@dataclass
class _Activation:
    """Per-call bookkeeping owned by a single ``execute`` invocation."""

    log: Any
    entered: float
    state: TransactionState = TransactionState.CREATED
    attempts: int = 0
    first_attempt: float | None = None

    def transition(self, state: TransactionState) -> None:
        self.log.debug("transaction_state_changed", previous=self.state.value, state=state.value)
        self.state = state

    def elapsed_ms(self) -> float:
        """Time since the first attempt started, or since entry when none ran."""
        origin = self.first_attempt if self.first_attempt is not None else self.entered
        return (time.perf_counter() - origin) * 1000


class TransactionExecutor:
    """Wraps business logic with authorization, retries, timeouts, audit,
    notification and metrics.

    Every collaborator is optional. Without an authorization service, a
    context that requires authorization is denied. Without an audit or
    notification service, the corresponding step is skipped with a warning.

    Args:
        authorization_service: Decides the authorization gate.
        audit_service: Receives action, denial and failure records.
        notification_service: Delivers the context's notification.
        metrics_collector: Passive sink for start/success/error events.
        retry_evaluator: Computes inter-attempt delays.
        timeout_guard: Races each attempt against ``timeout_ms``.
        classifier: Maps exceptions to error kinds and retryability.
        dead_letter: Receives undeliverable asynchronous notifications.
        sleep: Awaitable sleep used between attempts (seconds).
    """

    def __init__(
        self,
        authorization_service: AuthorizationService | None = None,
        audit_service: AuditService | None = None,
        notification_service: NotificationService | None = None,
        metrics_collector: MetricsCollector | None = None,
        *,
        retry_evaluator: RetryEvaluator | None = None,
        timeout_guard: TimeoutGuard | None = None,
        classifier: ErrorClassifier | None = None,
        dead_letter: DeadLetterSink | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._authorization_service = authorization_service
        self._audit_service = audit_service
        self._metrics_collector = metrics_collector
        self._retry_evaluator = retry_evaluator or RetryEvaluator()
        self._timeout_guard = timeout_guard or TimeoutGuard()
        self._classifier = classifier or ErrorClassifier()
        self._sleep = sleep
        self._dispatcher = (
            NotificationDispatcher(notification_service, dead_letter)
            if notification_service is not None
            else None
        )

    @classmethod
    def from_config(cls, config: Config, **collaborators: Any) -> TransactionExecutor:
        """Create an executor whose guard and jitter follow ``txflow.executor`` settings."""
        props = config.bind(ExecutorProperties)
        collaborators.setdefault("retry_evaluator", RetryEvaluator(jitter_max_ms=props.jitter_max_ms))
        collaborators.setdefault("timeout_guard", TimeoutGuard(cancel_on_timeout=props.cancel_on_timeout))
        return cls(**collaborators)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(
        self,
        context: TransactionContext,
        business_logic: BusinessLogic[T],
    ) -> TransactionResult[T]:
        """Run *business_logic* through the full transaction lifecycle.

        Never raises for business, timeout, authorization or collaborator
        failures; those are reported through the returned :class:`Failure`.
        Cancelling the ``execute`` call itself still propagates
        :class:`asyncio.CancelledError`, after the error metric is recorded.
        """
        run = _Activation(
            log=logger.bind(
                transaction_id=context.transaction_id,
                operation_type=context.business.operation_type,
                correlation_id=context.business.correlation_id,
            ),
            entered=time.perf_counter(),
        )
        self._emit_metric(context, "start_transaction", context.metrics)
        run.log.info("transaction_started", tags=dict(context.metrics.tags))

        try:
            await self._authorize(context, run)
            data = await self._execute_with_retry(context, business_logic, run)
        except asyncio.CancelledError:
            run.transition(TransactionState.FAILED)
            error = TransactionError(
                code=ErrorKind.BUSINESS_LOGIC,
                message="Transaction cancelled",
                retryable=False,
                context={"operation_type": context.business.operation_type},
            )
            self._emit_metric(context, "record_error", context.metrics, error, run.elapsed_ms())
            run.log.warning("transaction_cancelled", attempts=run.attempts)
            raise
        except Exception as exc:
            error = self._to_transaction_error(context, exc)
            if run.state is not TransactionState.DENIED:
                run.transition(TransactionState.FAILED)
                await self._audit_failure(context, error, run)
            duration_ms = run.elapsed_ms()
            self._emit_metric(context, "record_error", context.metrics, error, duration_ms)
            run.log.warning(
                "transaction_failed",
                code=error.code.value,
                error=error.message,
                retryable=error.retryable,
                attempts=run.attempts,
                duration_ms=round(duration_ms, 2),
            )
            return Failure(error=error, metadata=self._metadata(context, run, duration_ms))

        warnings, handle = await self._post_execute(context, run)
        run.transition(TransactionState.SUCCEEDED)
        duration_ms = run.elapsed_ms()
        self._emit_metric(context, "record_success", context.metrics, duration_ms)
        run.log.info(
            "transaction_succeeded",
            attempts=run.attempts,
            duration_ms=round(duration_ms, 2),
            warnings=len(warnings),
        )
        return Success(
            data=data,
            metadata=self._metadata(context, run, duration_ms),
            warnings=warnings,
            notification=handle,
        )

    async def drain(self) -> None:
        """Wait for every pending asynchronous notification to settle."""
        if self._dispatcher is not None:
            await self._dispatcher.drain()

    # ------------------------------------------------------------------
    # Lifecycle steps
    # ------------------------------------------------------------------

    async def _authorize(self, context: TransactionContext, run: _Activation) -> None:
        auth = context.authorization
        if auth is None:
            return

        run.transition(TransactionState.AUTHORIZING)
        if self._authorization_service is None:
            run.log.warning("authorization_unavailable", permission=auth.required_permission)
            granted = False
        else:
            granted = await self._authorization_service.check_permission(
                auth.required_permission,
                AuthorizationRequest(
                    user=auth.user,
                    resource_id=auth.resource_id,
                    resource_type=auth.resource_type,
                    additional_claims=auth.additional_claims,
                ),
            )

        if granted:
            return

        run.transition(TransactionState.DENIED)
        audit = context.audit
        if audit is not None:
            await self._audit_safely(
                "log_business_error",
                f"{audit.operation_name}_DENIED",
                {
                    "entity_type": audit.entity_type,
                    "entity_id": audit.entity_id,
                    "attempted_by": auth.user.id,
                    "error_reason": DENIED_REASON,
                    "business_impact": f"{self._impact(context)} blocked due to access control",
                    "timestamp": datetime.now(UTC),
                    "compliance_level": audit.compliance_level.value,
                    "correlation_id": context.business.correlation_id,
                },
                run,
            )
        raise PermissionDeniedException(
            f"Permission denied: {auth.required_permission}",
            code="PERMISSION_DENIED",
            context={"permission": auth.required_permission, "user_id": auth.user.id},
        )

    async def _execute_with_retry(
        self,
        context: TransactionContext,
        business_logic: BusinessLogic[T],
        run: _Activation,
    ) -> T:
        policy = context.performance.retry_policy
        max_attempts = policy.max_attempts if policy is not None else 1
        timeout_ms = context.performance.timeout_ms

        run.transition(TransactionState.EXECUTING)
        run.first_attempt = time.perf_counter()
        while True:
            run.attempts += 1
            try:
                return await self._timeout_guard.run(business_logic, timeout_ms, CancellationToken())
            except Exception as exc:
                kind = self._classifier.classify(exc)
                if (
                    run.attempts < max_attempts
                    and policy is not None
                    and self._classifier.is_retryable(kind, policy)
                ):
                    delay_ms = self._retry_evaluator.next_delay(run.attempts, policy)
                    run.transition(TransactionState.RETRYING)
                    run.log.info(
                        "transaction_retry_scheduled",
                        attempt=run.attempts,
                        max_attempts=max_attempts,
                        code=kind.value,
                        error=str(exc),
                        delay_ms=round(delay_ms, 1),
                    )
                    await self._sleep(delay_ms / 1000.0)
                    continue
                raise

    async def _post_execute(
        self, context: TransactionContext, run: _Activation
    ) -> tuple[tuple[str, ...], NotificationHandle | None]:
        """Run audit and notification obligations; return warnings and the async handle."""
        obligations: list[Awaitable[str | None]] = []
        handle: NotificationHandle | None = None

        audit = context.audit
        if audit is not None:
            obligations.append(
                self._audit_safely(
                    "log_business_action",
                    audit.operation_name,
                    {
                        "entity_type": audit.entity_type,
                        "entity_id": audit.entity_id,
                        "performed_by": audit.performed_by,
                        "timestamp": datetime.now(UTC),
                        "business_data": dict(audit.business_data),
                        "business_context": context.business.domain_context,
                        "business_impact": audit.business_impact,
                        "compliance_level": audit.compliance_level.value,
                        "correlation_id": context.business.correlation_id,
                    },
                    run,
                )
            )

        notification = context.notification
        if notification is not None:
            if self._dispatcher is None:
                run.log.warning("notification_skipped", event_type=notification.event_type)
            elif notification.delivery_mode == DeliveryMode.SYNC:
                obligations.append(self._notify_sync(notification, run))
            else:
                handle = self._dispatcher.dispatch(notification, context.transaction_id)

        results = await asyncio.gather(*obligations)
        return tuple(w for w in results if w), handle

    async def _notify_sync(self, notification: NotificationContext, run: _Activation) -> str | None:
        assert self._dispatcher is not None
        try:
            await self._dispatcher.deliver(notification)
        except Exception as exc:
            run.log.warning(
                "notification_delivery_failed",
                event_type=notification.event_type,
                delivery_mode=notification.delivery_mode.value,
                error=str(exc),
            )
            return f"{ErrorKind.NOTIFICATION_DELIVERY.value}: {exc}"
        return None

    async def _audit_failure(
        self, context: TransactionContext, error: TransactionError, run: _Activation
    ) -> None:
        audit = context.audit
        if audit is None:
            return
        await self._audit_safely(
            "log_business_error",
            f"{audit.operation_name}_FAILED",
            {
                "entity_type": audit.entity_type,
                "entity_id": audit.entity_id,
                "attempted_by": audit.performed_by,
                "error_reason": error.message,
                "business_impact": f"{self._impact(context)} failed: {error.message}",
                "timestamp": datetime.now(UTC),
                "compliance_level": audit.compliance_level.value,
                "correlation_id": context.business.correlation_id,
                "error_code": error.code.value,
            },
            run,
        )

    async def _audit_safely(
        self, method: str, name: str, detail: Mapping[str, Any], run: _Activation
    ) -> None:
        if self._audit_service is None:
            run.log.warning("audit_skipped", audit_event=name)
            return
        try:
            await getattr(self._audit_service, method)(name, detail)
        except Exception as exc:
            run.log.error(
                "audit_logging_failed",
                audit_event=name,
                code=ErrorKind.AUDIT_LOGGING.value,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _to_transaction_error(self, context: TransactionContext, exc: Exception) -> TransactionError:
        kind = self._classifier.classify(exc)
        return TransactionError(
            code=kind,
            message=str(exc) or type(exc).__name__,
            retryable=self._classifier.is_retryable(kind, context.performance.retry_policy),
            cause=exc,
            context={
                "operation_type": context.business.operation_type,
                "exception_type": type(exc).__name__,
            },
        )

    @staticmethod
    def _impact(context: TransactionContext) -> str:
        """Caller-declared business impact, else the operation type."""
        audit = context.audit
        if audit is not None and audit.business_impact:
            return audit.business_impact
        return context.business.operation_type

    @staticmethod
    def _metadata(context: TransactionContext, run: _Activation, duration_ms: float) -> TransactionMetadata:
        return TransactionMetadata(
            transaction_id=context.transaction_id,
            start_time=context.metrics.start_time,
            end_time=datetime.now(UTC),
            duration_ms=duration_ms,
            retry_count=max(run.attempts - 1, 0),
            tags=context.metrics.tags,
            attempts=run.attempts,
            state=run.state,
        )

    def _emit_metric(self, context: TransactionContext, method: str, *args: Any) -> None:
        if self._metrics_collector is None or not context.performance.enable_metrics:
            return
        try:
            getattr(self._metrics_collector, method)(*args)
        except Exception:
            logger.exception(
                "metrics_collector_failed",
                method=method,
                transaction_id=context.transaction_id,
            )
