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
"""Retry delay calculation with backoff strategies and jitter.

Delay before the retry that follows attempt ``n`` (1-based):

* exponential: ``min(base_delay_ms * 2 ** (n - 1), max_delay_ms)``
* linear:      ``min(base_delay_ms * n, max_delay_ms)``
* fixed:       ``base_delay_ms``

plus a uniformly random jitter in ``[0, jitter_max_ms)`` so that clients
failing together do not retry in lockstep.
"""

from __future__ import annotations

import random
from collections.abc import Callable

from txflow.context.model import BackoffStrategy, RetryPolicy

RandomSource = Callable[[], float]
"""Returns a float uniformly distributed in ``[0.0, 1.0)``."""

DEFAULT_JITTER_MAX_MS = 1000.0


def base_delay(attempt: int, policy: RetryPolicy) -> float:
    """Backoff delay in milliseconds for *attempt*, without jitter."""
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")

    if policy.backoff_strategy == BackoffStrategy.EXPONENTIAL:
        return float(min(policy.base_delay_ms * 2 ** (attempt - 1), policy.max_delay_ms))
    if policy.backoff_strategy == BackoffStrategy.LINEAR:
        return float(min(policy.base_delay_ms * attempt, policy.max_delay_ms))
    return float(policy.base_delay_ms)


def next_delay(
    attempt: int,
    policy: RetryPolicy,
    random_source: RandomSource = random.random,
    jitter_max_ms: float = DEFAULT_JITTER_MAX_MS,
) -> float:
    """Delay in milliseconds to wait after failed *attempt*, jitter included."""
    return base_delay(attempt, policy) + random_source() * jitter_max_ms


class RetryEvaluator:
    """Retry delay strategy handed to the transaction executor.

    Args:
        random_source: Jitter source; inject a constant for deterministic tests.
        jitter_max_ms: Upper bound (exclusive) of the additive jitter.
    """

    def __init__(
        self,
        random_source: RandomSource = random.random,
        jitter_max_ms: float = DEFAULT_JITTER_MAX_MS,
    ) -> None:
        self._random_source = random_source
        self._jitter_max_ms = jitter_max_ms

    @property
    def jitter_max_ms(self) -> float:
        return self._jitter_max_ms

    def next_delay(self, attempt: int, policy: RetryPolicy) -> float:
        return next_delay(attempt, policy, self._random_source, self._jitter_max_ms)
