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
"""Reference authorization services backed by the principal's grants."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from txflow.security.context import AuthorizationRequest

WILDCARD_PERMISSION = "*"


class PermissionSetAuthorizationService:
    """Grants a permission when the user holds it directly.

    A user holding ``"*"`` is granted everything. *extra_grants* adds
    permissions per user id on top of what the principal carries.
    """

    def __init__(self, extra_grants: Mapping[str, Iterable[str]] | None = None) -> None:
        self._extra_grants: dict[str, frozenset[str]] = {
            user_id: frozenset(perms) for user_id, perms in (extra_grants or {}).items()
        }

    async def check_permission(self, permission: str, request: AuthorizationRequest) -> bool:
        granted = request.user.permissions | self._extra_grants.get(request.user.id, frozenset())
        return permission in granted or WILDCARD_PERMISSION in granted


class RoleBasedAuthorizationService:
    """Grants a permission when any of the user's roles maps to it.

    Args:
        role_permissions: Role name to the permissions that role confers.
    """

    def __init__(self, role_permissions: Mapping[str, Iterable[str]]) -> None:
        self._role_permissions: dict[str, frozenset[str]] = {
            role: frozenset(perms) for role, perms in role_permissions.items()
        }

    def permissions_for(self, roles: Iterable[str]) -> frozenset[str]:
        """Union of the permissions conferred by *roles*."""
        granted: set[str] = set()
        for role in roles:
            granted |= self._role_permissions.get(role, frozenset())
        return frozenset(granted)

    async def check_permission(self, permission: str, request: AuthorizationRequest) -> bool:
        granted = self.permissions_for(request.user.roles) | request.user.permissions
        return permission in granted or WILDCARD_PERMISSION in granted
