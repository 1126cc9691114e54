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
"""Opaque identifier types.

Distinct nominal types over ``str`` so that transaction, user and resource
identifiers cannot be mixed up at call sites under a type checker.
"""

from __future__ import annotations

import uuid
from typing import NewType

TransactionId = NewType("TransactionId", str)
UserId = NewType("UserId", str)
ResourceId = NewType("ResourceId", str)


def new_transaction_id() -> TransactionId:
    """Return a fresh opaque transaction identifier."""
    return TransactionId(str(uuid.uuid4()))
