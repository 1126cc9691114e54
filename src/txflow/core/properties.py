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
"""Transaction executor configuration properties.

YAML structure::

    txflow:
      executor:
        default_timeout_ms: 30000
        enable_metrics: true
        jitter_max_ms: 1000.0
        cancel_on_timeout: false
"""

from __future__ import annotations

from dataclasses import dataclass

from txflow.core.config import config_properties


@config_properties(prefix="txflow.executor")
@dataclass
class ExecutorProperties:
    """Configuration for the transaction executor and context defaults."""

    default_timeout_ms: int = 30_000
    enable_metrics: bool = True
    jitter_max_ms: float = 1000.0
    cancel_on_timeout: bool = False
