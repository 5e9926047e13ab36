"""`tdcli perms`: access-control policies, policy groups and users."""

from __future__ import annotations

from typing import List, Optional

import typer

from treasuredata.cli.output import emit, emit_message, parse_json_option
from treasuredata.cli.session import client_session

app = typer.Typer(no_args_is_help=True, help="Access control: policies, policy groups, users.")
policies_app = typer.Typer(no_args_is_help=True, help="Policies.")
groups_app = typer.Typer(no_args_is_help=True, help="Policy groups.")
users_app = typer.Typer(no_args_is_help=True, help="Access-control users.")
app.add_typer(policies_app, name="policies")
app.add_typer(groups_app, name="groups")
app.add_typer(users_app, name="users")

POLICY_COLUMNS = ("id", "name", "description", "user_count")
GROUP_COLUMNS = ("id", "name", "description", "policy_count")


@policies_app.command("list")
def list_policies(
    ctx: typer.Context,
    column_tag: Optional[str] = typer.Option(None, "--column-tag", help="Only policies using this column tag."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.permissions.list_policies(column_permission_tag=column_tag), columns=POLICY_COLUMNS)


@policies_app.command("get")
def get_policy(ctx: typer.Context, policy_id: int = typer.Argument(..., help="Policy ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.permissions.get_policy(policy_id), title=f"Policy {policy_id}")


@policies_app.command("create")
def create_policy(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Policy name."),
    description: Optional[str] = typer.Option(None, "--description"),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.permissions.create_policy(name, description), title="Policy created")


@policies_app.command("update")
def update_policy(
    ctx: typer.Context,
    policy_id: int = typer.Argument(..., help="Policy ID."),
    name: Optional[str] = typer.Option(None, "--name"),
    description: Optional[str] = typer.Option(None, "--description"),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.permissions.update_policy(policy_id, name=name, description=description))


@policies_app.command("delete")
def delete_policy(ctx: typer.Context, policy_id: int = typer.Argument(..., help="Policy ID.")) -> None:
    with client_session(ctx) as client:
        client.permissions.delete_policy(policy_id)
    emit_message(f"Policy {policy_id} deleted")


@policies_app.command("permissions")
def policy_permissions(
    ctx: typer.Context,
    policy_id: int = typer.Argument(..., help="Policy ID."),
    set_json: Optional[str] = typer.Option(None, "--set", help="Replace permissions with this JSON object."),
) -> None:
    """Show (or replace) the permission sets of a policy."""

    permissions = parse_json_option(set_json, "--set")
    with client_session(ctx) as client:
        if permissions is None:
            data = client.permissions.get_policy_permissions(policy_id)
        else:
            data = client.permissions.update_policy_permissions(policy_id, permissions)
    emit(ctx, data, title=f"Permissions of policy {policy_id}")


@policies_app.command("column-permissions")
def column_permissions(ctx: typer.Context, policy_id: int = typer.Argument(..., help="Policy ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.permissions.get_column_permissions(policy_id), columns=("tags", "except_", "masking"))


@policies_app.command("users")
def policy_users(ctx: typer.Context, policy_id: int = typer.Argument(..., help="Policy ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.permissions.get_policy_users(policy_id), columns=("user_id", "name", "email"))


@policies_app.command("attach")
def attach_policy(
    ctx: typer.Context,
    policy_id: int = typer.Argument(..., help="Policy ID."),
    user_id: int = typer.Argument(..., help="User ID."),
) -> None:
    with client_session(ctx) as client:
        client.permissions.attach_policy_to_user(policy_id, user_id)
    emit_message(f"Policy {policy_id} attached to user {user_id}")


@policies_app.command("detach")
def detach_policy(
    ctx: typer.Context,
    policy_id: int = typer.Argument(..., help="Policy ID."),
    user_id: int = typer.Argument(..., help="User ID."),
) -> None:
    with client_session(ctx) as client:
        client.permissions.detach_policy_from_user(policy_id, user_id)
    emit_message(f"Policy {policy_id} detached from user {user_id}")


@groups_app.command("list")
def list_groups(ctx: typer.Context) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.permissions.list_policy_groups(), columns=GROUP_COLUMNS, title="Policy groups")


@groups_app.command("get")
def get_group(ctx: typer.Context, group: str = typer.Argument(..., help="Policy group ID or name.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.permissions.get_policy_group(group), title=f"Policy group {group}")


@groups_app.command("create")
def create_group(ctx: typer.Context, name: str = typer.Argument(..., help="Policy group name.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.permissions.create_policy_group(name), title="Policy group created")


@groups_app.command("update")
def update_group(
    ctx: typer.Context,
    group: str = typer.Argument(..., help="Policy group ID or name."),
    name: str = typer.Option(..., "--name"),
    description: Optional[str] = typer.Option(None, "--description"),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.permissions.update_policy_group(group, name, description))


@groups_app.command("delete")
def delete_group(ctx: typer.Context, group: str = typer.Argument(..., help="Policy group ID or name.")) -> None:
    with client_session(ctx) as client:
        client.permissions.delete_policy_group(group)
    emit_message(f"Policy group {group} deleted")


@groups_app.command("policies")
def group_policies(
    ctx: typer.Context,
    group: str = typer.Argument(..., help="Policy group ID or name."),
    set_ids: Optional[List[int]] = typer.Option(None, "--set", help="Replace the policies (repeatable)."),
) -> None:
    with client_session(ctx) as client:
        if set_ids:
            data = client.permissions.update_policy_group_policies(group, set_ids)
        else:
            data = client.permissions.list_policy_group_policies(group)
    emit(ctx, data, title=f"Policies of group {group}")


@users_app.command("list")
def list_acl_users(ctx: typer.Context) -> None:
    with client_session(ctx) as client:
        users = client.permissions.list_users()
    rows = [
        {"user_id": u.user_id, "policies": ", ".join(p.name for p in u.policies), "permissions": len(u.permissions)}
        for u in users
    ]
    emit(ctx, rows, title="Access-control users")


@users_app.command("get")
def get_acl_user(ctx: typer.Context, user_id: int = typer.Argument(..., help="User ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.permissions.get_user(user_id), title=f"User {user_id}")


@users_app.command("policies")
def user_policies(
    ctx: typer.Context,
    user_id: int = typer.Argument(..., help="User ID."),
    set_ids: Optional[List[int]] = typer.Option(None, "--set", help="Replace the policies (repeatable)."),
) -> None:
    with client_session(ctx) as client:
        if set_ids:
            policies = client.permissions.update_user_policies(user_id, set_ids)
        else:
            policies = client.permissions.list_user_policies(user_id)
    emit(ctx, policies, columns=POLICY_COLUMNS, title=f"Policies of user {user_id}")
