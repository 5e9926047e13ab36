"""Access control (`v3/access_control/...`): policies, policy groups, users.

Policy and user IDs are integers; policy groups are addressed by ID or name.
"""

from __future__ import annotations

from typing import Any, Sequence

from treasuredata.adapters.services.base import BaseService, compact, require, seg
from treasuredata.core.domain.permissions import (
    AccessControlColumnPermission,
    AccessControlPolicy,
    AccessControlPolicyGroup,
    AccessControlPolicyGroupPolicies,
    AccessControlUser,
    AccessControlUserReference,
    PolicyPermissions,
)
from treasuredata.core.errors import InvalidArgumentError

_BASE = "v3/access_control"


def _id(field: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(field, value, "must be an integer") from None
    if number <= 0:
        raise InvalidArgumentError(field, value, "must be positive")
    return number


class PermissionsService(BaseService):
    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------

    def list_policies(self, *, column_permission_tag: str | None = None) -> list[AccessControlPolicy]:
        params = compact(column_permission_tag=column_permission_tag or None)
        return self._transport.request_json(
            "GET", f"{_BASE}/policies", params=params, into=list[AccessControlPolicy]
        ) or []

    def get_policy(self, policy_id: int) -> AccessControlPolicy:
        policy_id = _id("policy_id", policy_id)
        return self._transport.request_json("GET", f"{_BASE}/policies/{policy_id}", into=AccessControlPolicy)

    def create_policy(self, name: str, description: str | None = None) -> AccessControlPolicy:
        body = {"policy": compact(name=require("name", name), description=description or None)}
        return self._transport.request_json("POST", f"{_BASE}/policies", body=body, into=AccessControlPolicy)

    def update_policy(
        self,
        policy_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> AccessControlPolicy:
        """Patch a policy; empty values are left unchanged."""

        policy_id = _id("policy_id", policy_id)
        body = {"policy": compact(name=name or None, description=description or None)}
        return self._transport.request_json(
            "PATCH", f"{_BASE}/policies/{policy_id}", body=body, into=AccessControlPolicy
        )

    def delete_policy(self, policy_id: int) -> AccessControlPolicy | None:
        """Delete a policy; the API echoes the deleted record."""

        policy_id = _id("policy_id", policy_id)
        return self._transport.request_json("DELETE", f"{_BASE}/policies/{policy_id}", into=AccessControlPolicy)

    # ------------------------------------------------------------------
    # Policy permissions
    # ------------------------------------------------------------------

    def get_policy_permissions(self, policy_id: int) -> PolicyPermissions:
        policy_id = _id("policy_id", policy_id)
        return self._transport.request_json("GET", f"{_BASE}/policies/{policy_id}/permissions") or {}

    def update_policy_permissions(self, policy_id: int, permissions: PolicyPermissions) -> PolicyPermissions:
        policy_id = _id("policy_id", policy_id)
        return (
            self._transport.request_json("PATCH", f"{_BASE}/policies/{policy_id}/permissions", body=permissions)
            or {}
        )

    def get_column_permissions(self, policy_id: int) -> list[AccessControlColumnPermission]:
        policy_id = _id("policy_id", policy_id)
        return self._transport.request_json(
            "GET",
            f"{_BASE}/policies/{policy_id}/column_permissions",
            into=list[AccessControlColumnPermission],
        ) or []

    def update_column_permissions(
        self,
        policy_id: int,
        permissions: Sequence[AccessControlColumnPermission],
    ) -> list[AccessControlColumnPermission]:
        policy_id = _id("policy_id", policy_id)
        body = {"column_permissions": list(permissions)}
        return self._transport.request_json(
            "PATCH",
            f"{_BASE}/policies/{policy_id}/column_permissions",
            body=body,
            into=list[AccessControlColumnPermission],
        ) or []

    # ------------------------------------------------------------------
    # Policy users
    # ------------------------------------------------------------------

    def get_policy_users(self, policy_id: int) -> list[AccessControlUserReference]:
        policy_id = _id("policy_id", policy_id)
        return self._transport.request_json(
            "GET", f"{_BASE}/policies/{policy_id}/users", into=list[AccessControlUserReference]
        ) or []

    def update_policy_users(self, policy_id: int, user_ids: Sequence[int]) -> list[AccessControlUser]:
        """Replace the set of users attached to a policy."""

        policy_id = _id("policy_id", policy_id)
        body = {"user_ids": [_id("user_id", uid) for uid in user_ids]}
        return self._transport.request_json(
            "PATCH", f"{_BASE}/policies/{policy_id}/users", body=body, into=list[AccessControlUser]
        ) or []

    def attach_policy_to_user(self, policy_id: int, user_id: int) -> AccessControlPolicy | None:
        policy_id = _id("policy_id", policy_id)
        user_id = _id("user_id", user_id)
        return self._transport.request_json(
            "POST", f"{_BASE}/policies/{policy_id}/users/{user_id}", into=AccessControlPolicy
        )

    def detach_policy_from_user(self, policy_id: int, user_id: int) -> AccessControlPolicy | None:
        policy_id = _id("policy_id", policy_id)
        user_id = _id("user_id", user_id)
        return self._transport.request_json(
            "DELETE", f"{_BASE}/policies/{policy_id}/users/{user_id}", into=AccessControlPolicy
        )

    # ------------------------------------------------------------------
    # User policies
    # ------------------------------------------------------------------

    def list_user_policies(self, user_id: int) -> list[AccessControlPolicy]:
        user_id = _id("user_id", user_id)
        return self._transport.request_json(
            "GET", f"{_BASE}/users/{user_id}/policies", into=list[AccessControlPolicy]
        ) or []

    def update_user_policies(self, user_id: int, policy_ids: Sequence[int | str]) -> list[AccessControlPolicy]:
        """Replace the policies of a user (IDs are sent as strings)."""

        user_id = _id("user_id", user_id)
        body = {"policy_ids": [str(_id("policy_id", pid)) for pid in policy_ids]}
        return self._transport.request_json(
            "PATCH", f"{_BASE}/users/{user_id}/policies", body=body, into=list[AccessControlPolicy]
        ) or []

    def attach_user_to_policy(self, user_id: int, policy_id: int) -> AccessControlPolicy | None:
        user_id = _id("user_id", user_id)
        policy_id = _id("policy_id", policy_id)
        return self._transport.request_json(
            "POST", f"{_BASE}/users/{user_id}/policies/{policy_id}", into=AccessControlPolicy
        )

    def detach_user_from_policy(self, user_id: int, policy_id: int) -> AccessControlPolicy | None:
        user_id = _id("user_id", user_id)
        policy_id = _id("policy_id", policy_id)
        return self._transport.request_json(
            "DELETE", f"{_BASE}/users/{user_id}/policies/{policy_id}", into=AccessControlPolicy
        )

    # ------------------------------------------------------------------
    # Access-control users
    # ------------------------------------------------------------------

    def list_users(self) -> list[AccessControlUser]:
        return self._transport.request_json("GET", f"{_BASE}/users", into=list[AccessControlUser]) or []

    def get_user(self, user_id: int) -> AccessControlUser:
        user_id = _id("user_id", user_id)
        return self._transport.request_json("GET", f"{_BASE}/users/{user_id}", into=AccessControlUser)

    # ------------------------------------------------------------------
    # Policy groups
    # ------------------------------------------------------------------

    def list_policy_groups(self) -> list[AccessControlPolicyGroup]:
        return self._transport.request_json(
            "GET", f"{_BASE}/policy_groups", into=list[AccessControlPolicyGroup]
        ) or []

    def get_policy_group(self, group: str | int) -> AccessControlPolicyGroup:
        group = require("policy_group", group)
        return self._transport.request_json(
            "GET", f"{_BASE}/policy_groups/{seg(group)}", into=AccessControlPolicyGroup
        )

    def create_policy_group(self, name: str) -> AccessControlPolicyGroup:
        body = {"name": require("name", name)}
        return self._transport.request_json(
            "POST", f"{_BASE}/policy_groups", body=body, into=AccessControlPolicyGroup
        )

    def update_policy_group(
        self,
        group: str | int,
        name: str,
        description: str | None = None,
    ) -> AccessControlPolicyGroup:
        group = require("policy_group", group)
        body = compact(name=require("name", name), description=description)
        return self._transport.request_json(
            "PATCH", f"{_BASE}/policy_groups/{seg(group)}", body=body, into=AccessControlPolicyGroup
        )

    def delete_policy_group(self, group: str | int) -> None:
        group = require("policy_group", group)
        self._transport.request("DELETE", f"{_BASE}/policy_groups/{seg(group)}")

    def list_policy_group_policies(self, group: str | int) -> AccessControlPolicyGroupPolicies:
        group = require("policy_group", group)
        resp = self._transport.request_json(
            "GET", f"{_BASE}/policy_groups/{seg(group)}/policies", into=AccessControlPolicyGroupPolicies
        )
        return resp if resp is not None else AccessControlPolicyGroupPolicies()

    def update_policy_group_policies(
        self, group: str | int, policy_ids: Sequence[int]
    ) -> AccessControlPolicyGroupPolicies:
        group = require("policy_group", group)
        body = {"policy_ids": [_id("policy_id", pid) for pid in policy_ids]}
        resp = self._transport.request_json(
            "PATCH",
            f"{_BASE}/policy_groups/{seg(group)}/policies",
            body=body,
            into=AccessControlPolicyGroupPolicies,
        )
        return resp if resp is not None else AccessControlPolicyGroupPolicies()
