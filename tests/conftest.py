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
"""Shared fixtures for the txflow test suite."""

from __future__ import annotations

import pytest
import structlog

from txflow.context.builder import TransactionContextBuilder
from txflow.kernel.ids import ResourceId, UserId
from txflow.security.context import User


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo any ``configure_logging`` call so ``capture_logs`` keeps working."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def hr_manager() -> User:
    return User(
        id=UserId("u-hr-1"),
        name="Dana Reyes",
        email="dana@example.com",
        roles=frozenset({"hr-manager"}),
        permissions=frozenset({"employee:write", "employee:read"}),
    )


@pytest.fixture
def clerk() -> User:
    return User(id=UserId("u-clerk-7"), name="Sam Ortiz", permissions=frozenset({"employee:read"}))


@pytest.fixture
def base_builder() -> TransactionContextBuilder:
    return TransactionContextBuilder.create().with_business(
        "ADD_EMPLOYEE",
        "hourly-employee-onboarding",
        metadata={"department": "payroll"},
    )


@pytest.fixture
def employee_id() -> ResourceId:
    return ResourceId("emp-1001")
