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
"""Security principal carried by an authorization context."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from txflow.kernel.ids import ResourceId, UserId

SYSTEM_USER_ID = UserId("system")


@dataclass(frozen=True)
class User:
    """Authenticated caller on whose behalf a transaction runs.

    Roles and permissions are frozen on construction so a ``User`` can be
    shared between transactions without aliasing.
    """

    id: UserId
    name: str = ""
    email: str = ""
    roles: frozenset[str] = field(default_factory=frozenset)
    permissions: frozenset[str] = field(default_factory=frozenset)
    attributes: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", frozenset(self.roles))
        object.__setattr__(self, "permissions", frozenset(self.permissions))
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    @property
    def is_authenticated(self) -> bool:
        """Whether the user carries an identity."""
        return bool(self.id)

    def has_role(self, role: str) -> bool:
        """Check if the user has a specific role."""
        return role in self.roles

    def has_any_role(self, roles: list[str]) -> bool:
        """Check if the user has any of the specified roles."""
        return bool(self.roles & set(roles))

    def has_permission(self, permission: str) -> bool:
        """Check if the user has a specific permission."""
        return permission in self.permissions

    @classmethod
    def system(cls) -> User:
        """The internal system principal used for unattended transactions."""
        return cls(id=SYSTEM_USER_ID, name="system")


@dataclass(frozen=True)
class AuthorizationRequest:
    """What an authorization service is asked to decide on."""

    user: User
    resource_id: ResourceId | None = None
    resource_type: str | None = None
    additional_claims: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
