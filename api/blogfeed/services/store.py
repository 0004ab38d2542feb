from __future__ import annotations

import asyncio
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from blogfeed.core.config import get_settings


class StoreError(Exception):
    """Base relational store error."""


class StoreUnavailableError(StoreError):
    """Raised when the database is unavailable, not configured, or a query fails."""


class StoreConflictError(StoreError):
    """Raised when a write violates a uniqueness or reference constraint."""


POST_COLUMNS = "id, title, description, content, image, category_id, status_id, date, likes_count"
POST_WRITE_COLUMNS = ("title", "description", "content", "image", "category_id", "status_id", "date")


class PostgresStore:
    """Table-level access to the blog schema hosted on the managed Postgres backend."""

    def __init__(self, database_url: str | None, min_pool_size: int, max_pool_size: int) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None
        self._pool_lock = asyncio.Lock()

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    # posts

    async def fetch_posts(self) -> list[dict[str, Any]]:
        rows = await self._fetch(f"select {POST_COLUMNS} from posts order by date desc nulls last")
        return [dict(row) for row in rows]

    async def fetch_post(self, post_id: int) -> dict[str, Any] | None:
        row = await self._fetchrow(f"select {POST_COLUMNS} from posts where id = $1", post_id)
        return dict(row) if row else None

    async def insert_post(self, values: dict[str, Any]) -> dict[str, Any]:
        columns = [column for column in POST_WRITE_COLUMNS if column in values]
        placeholders = ", ".join(f"${index}" for index in range(1, len(columns) + 1))
        row = await self._fetchrow(
            f"""
            insert into posts ({", ".join(columns)})
            values ({placeholders})
            returning {POST_COLUMNS}
            """,
            *[values[column] for column in columns],
        )
        if row is None:  # pragma: no cover - insert always returns
            raise StoreUnavailableError("post insert returned no row")
        return dict(row)

    async def update_post(self, post_id: int, values: dict[str, Any]) -> dict[str, Any] | None:
        columns = [column for column in POST_WRITE_COLUMNS if column in values]
        if not columns:
            return await self.fetch_post(post_id)
        assignments = ", ".join(f"{column} = ${index}" for index, column in enumerate(columns, start=2))
        row = await self._fetchrow(
            f"""
            update posts
            set {assignments}
            where id = $1
            returning {POST_COLUMNS}
            """,
            post_id,
            *[values[column] for column in columns],
        )
        return dict(row) if row else None

    async def delete_post(self, post_id: int) -> bool:
        deleted = await self._fetchval("delete from posts where id = $1 returning id", post_id)
        return deleted is not None

    async def refresh_like_counter(self, post_id: int) -> int:
        count = await self._fetchval(
            """
            update posts
            set likes_count = (select count(*) from post_likes where post_id = $1)
            where id = $1
            returning likes_count
            """,
            post_id,
        )
        return int(count or 0)

    # categories

    async def fetch_categories(self) -> list[dict[str, Any]]:
        rows = await self._fetch("select id, name from categories order by id")
        return [dict(row) for row in rows]

    async def insert_category(self, name: str) -> dict[str, Any]:
        try:
            row = await self._fetchrow(
                """
                insert into categories (name)
                select $1::text
                where not exists (select 1 from categories where lower(name) = lower($1))
                returning id, name
                """,
                name,
            )
        except StoreUnavailableError as exc:
            if isinstance(exc.__cause__, pg_exc.UniqueViolationError):
                raise StoreConflictError(f"category already exists: {name}") from exc
            raise
        if row is None:
            raise StoreConflictError(f"category already exists: {name}")
        return dict(row)

    async def update_category(self, category_id: int, name: str) -> dict[str, Any] | None:
        try:
            row = await self._fetchrow(
                "update categories set name = $2 where id = $1 returning id, name",
                category_id,
                name,
            )
        except StoreUnavailableError as exc:
            if isinstance(exc.__cause__, pg_exc.UniqueViolationError):
                raise StoreConflictError(f"category already exists: {name}") from exc
            raise
        return dict(row) if row else None

    async def delete_category(self, category_id: int) -> bool:
        try:
            deleted = await self._fetchval("delete from categories where id = $1 returning id", category_id)
        except StoreUnavailableError as exc:
            if isinstance(exc.__cause__, pg_exc.ForeignKeyViolationError):
                raise StoreConflictError("category is still referenced by posts") from exc
            raise
        return deleted is not None

    # likes

    async def find_like(self, post_id: int, user_id: str) -> int | None:
        like_id = await self._fetchval(
            "select id from post_likes where post_id = $1 and user_id::text = $2 limit 1",
            post_id,
            user_id,
        )
        return int(like_id) if like_id is not None else None

    async def insert_like(self, post_id: int, user_id: str) -> None:
        await self._execute(
            "insert into post_likes (post_id, user_id) values ($1, $2::uuid)",
            post_id,
            user_id,
        )

    async def delete_like(self, like_id: int) -> None:
        await self._execute("delete from post_likes where id = $1", like_id)

    async def count_likes(self, post_id: int) -> int:
        count = await self._fetchval("select count(*) from post_likes where post_id = $1", post_id)
        return int(count or 0)

    async def fetch_recent_likes(self, limit: int) -> list[dict[str, Any]]:
        rows = await self._fetch(
            """
            select id, post_id, user_id::text as user_id, created_at
            from post_likes
            order by created_at desc
            limit $1
            """,
            limit,
        )
        return [dict(row) for row in rows]

    # comments

    async def insert_comment(self, post_id: int, user_id: str, content: str) -> dict[str, Any]:
        row = await self._fetchrow(
            """
            insert into comments (post_id, user_id, content)
            values ($1, $2::uuid, $3)
            returning id, post_id, user_id::text as user_id, content, created_at
            """,
            post_id,
            user_id,
            content,
        )
        if row is None:  # pragma: no cover - insert always returns
            raise StoreUnavailableError("comment insert returned no row")
        return dict(row)

    async def fetch_comments(self, post_id: int) -> list[dict[str, Any]]:
        rows = await self._fetch(
            """
            select id, post_id, user_id::text as user_id, content, created_at
            from comments
            where post_id = $1
            order by created_at desc
            """,
            post_id,
        )
        return [dict(row) for row in rows]

    async def fetch_recent_comments(self, limit: int) -> list[dict[str, Any]]:
        rows = await self._fetch(
            """
            select id, post_id, user_id::text as user_id, content, created_at
            from comments
            order by created_at desc
            limit $1
            """,
            limit,
        )
        return [dict(row) for row in rows]

    # users

    async def fetch_user(self, user_id: str) -> dict[str, Any] | None:
        row = await self._fetchrow(
            "select id::text as id, name, username, avatar_url, email from users where id::text = $1",
            user_id,
        )
        return dict(row) if row else None

    async def fetch_users(self, user_ids: list[str]) -> list[dict[str, Any]]:
        if not user_ids:
            return []
        rows = await self._fetch(
            "select id::text as id, name, username, avatar_url, email from users where id::text = any($1::text[])",
            user_ids,
        )
        return [dict(row) for row in rows]

    async def fetch_post_titles(self, post_ids: list[int]) -> dict[int, str]:
        if not post_ids:
            return {}
        rows = await self._fetch("select id, title from posts where id = any($1::bigint[])", post_ids)
        return {int(row["id"]): row["title"] for row in rows}

    async def fetch_super_admin(self) -> dict[str, Any] | None:
        row = await self._fetchrow(
            """
            select email, name, username, bio, avatar_url, role
            from admin_users
            where role = 'super_admin'
            limit 1
            """
        )
        return dict(row) if row else None

    # notifications

    async def fetch_notifications(self, limit: int) -> list[dict[str, Any]]:
        rows = await self._fetch(
            """
            select id, message, post_id, is_read, created_at
            from notifications
            order by created_at desc
            limit $1
            """,
            limit,
        )
        return [dict(row) for row in rows]

    async def insert_notification(self, message: str, post_id: int | None) -> dict[str, Any]:
        row = await self._fetchrow(
            """
            insert into notifications (message, post_id, is_read)
            values ($1, $2, false)
            returning id, message, post_id, is_read, created_at
            """,
            message,
            post_id,
        )
        if row is None:  # pragma: no cover - insert always returns
            raise StoreUnavailableError("notification insert returned no row")
        return dict(row)

    async def mark_notification_read(self, notification_id: int) -> bool:
        updated = await self._fetchval(
            "update notifications set is_read = true where id = $1 returning id",
            notification_id,
        )
        return updated is not None

    async def mark_all_notifications_read(self) -> int:
        result = await self._execute("update notifications set is_read = true where is_read = false")
        # asyncpg returns the command tag, e.g. "UPDATE 3"
        _, _, count = result.rpartition(" ")
        return int(count) if count.isdigit() else 0

    # plumbing

    async def _fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        pool = await self._get_pool()
        try:
            return await pool.fetch(query, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise StoreUnavailableError("database query failed") from exc

    async def _fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        pool = await self._get_pool()
        try:
            return await pool.fetchrow(query, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise StoreUnavailableError("database query failed") from exc

    async def _fetchval(self, query: str, *args: Any) -> Any:
        pool = await self._get_pool()
        try:
            return await pool.fetchval(query, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise StoreUnavailableError("database query failed") from exc

    async def _execute(self, query: str, *args: Any) -> str:
        pool = await self._get_pool()
        try:
            return await pool.execute(query, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise StoreUnavailableError("database query failed") from exc

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise StoreUnavailableError("BLOG_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        # Concurrent first callers share one pool.
        async with self._pool_lock:
            if self._pool is not None:
                return self._pool
            try:
                self._pool = await asyncpg.create_pool(
                    dsn=self.database_url,
                    min_size=self.min_pool_size,
                    max_size=self.max_pool_size,
                    command_timeout=15,
                )
            except Exception as exc:
                raise StoreUnavailableError("database unavailable") from exc
            return self._pool


@lru_cache
def get_store() -> PostgresStore:
    settings = get_settings()
    return PostgresStore(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
    )
