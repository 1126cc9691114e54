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
"""txflow Resilience — retry delays and timeout guarding."""

from txflow.resilience.retry import RetryEvaluator, base_delay, next_delay
from txflow.resilience.time_limiter import CancellationToken, TimeoutGuard, time_limiter

__all__ = [
    "CancellationToken",
    "RetryEvaluator",
    "TimeoutGuard",
    "base_delay",
    "next_delay",
    "time_limiter",
]
