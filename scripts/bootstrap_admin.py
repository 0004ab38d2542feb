#!/usr/bin/env python3
"""Emit deterministic SQL that grants the blog admin role to a Supabase user."""

from __future__ import annotations

import argparse


def _quote_sql(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def render_sql(
    *,
    role: str,
    user_id: str | None,
    email: str | None,
    name: str | None = None,
    username: str | None = None,
) -> str:
    role_value = _quote_sql(role)

    if user_id:
        target_where = f"id = {_quote_sql(user_id)}::uuid"
    else:
        assert email is not None
        target_where = f"email = {_quote_sql(email)}"

    name_value = _quote_sql(name) if name else "coalesce(raw_user_meta_data ->> 'name', email)"
    username_value = _quote_sql(username) if username else "split_part(email, '@', 1)"

    return f"""-- Blog admin bootstrap SQL
-- Run this in the Supabase SQL editor (or equivalent privileged Postgres session).

update auth.users
set raw_app_meta_data = coalesce(raw_app_meta_data, '{{}}'::jsonb) || jsonb_build_object('role', {role_value})
where {target_where};

insert into admin_users (email, name, username, role)
select email, {name_value}, {username_value}, {role_value}
from auth.users
where {target_where}
on conflict (email) do update
set name = excluded.name, username = excluded.username, role = excluded.role;
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to bootstrap a blog admin.")
    parser.add_argument(
        "--role",
        choices=["admin", "super_admin"],
        default="super_admin",
        help="Role to assign in auth.users.raw_app_meta_data.role and admin_users.role",
    )
    identity_group = parser.add_mutually_exclusive_group(required=True)
    identity_group.add_argument("--user-id", help="Supabase auth.users id (UUID)")
    identity_group.add_argument("--email", help="Supabase auth.users email")
    parser.add_argument("--name", help="Display name shown on notifications")
    parser.add_argument("--username", help="Admin profile username")
    args = parser.parse_args()

    print(
        render_sql(
            role=args.role,
            user_id=args.user_id,
            email=args.email,
            name=args.name,
            username=args.username,
        )
    )


if __name__ == "__main__":
    main()
