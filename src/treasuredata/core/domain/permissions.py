"""Access-control models (`v3/access_control/...`)."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from treasuredata.core.domain.fields import TDTimestamp
from treasuredata.core.domain.models import TDModel

PolicyPermissions = dict[str, Any]
"""Permission sets keyed by resource type (`Databases`, `WorkflowProject`, ...).

Each entry is an open-ended object with at least an `operation` key; the set
of resource types grows server-side, so it stays a mapping.
"""


class AccessControlPolicy(TDModel):
    id: int
    account_id: int | None = None
    name: str = ""
    description: str | None = None
    user_count: int | None = None


class AccessControlPolicyGroup(TDModel):
    id: int | None = None
    account_id: int | None = None
    name: str = ""
    taggable_name: str | None = None
    description: str | None = None
    policy_count: int | None = None
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None


class AccessControlPolicyGroupPolicies(TDModel):
    policy_ids: list[int] = Field(default_factory=list)


class AccessControlColumnPermission(TDModel):
    tags: list[str] = Field(default_factory=list)
    except_: bool | None = Field(default=None, alias="except")
    masking: str | None = None


class AccessControlUser(TDModel):
    user_id: int
    account_id: int | None = None
    permissions: PolicyPermissions = Field(default_factory=dict)
    policies: list[AccessControlPolicy] = Field(default_factory=list)


class AccessControlUserReference(TDModel):
    user_id: int
    account_id: int | None = None
    email: str = ""
    name: str = ""
