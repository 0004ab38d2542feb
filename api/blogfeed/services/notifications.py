from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any

from blogfeed.schemas.notifications import ActivityItem, Notification
from blogfeed.services.content import ContentError, ContentUnavailableError
from blogfeed.services.store import PostgresStore, StoreError, get_store

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10
ADMIN_HREF = "/admin/article-management"


class NotificationNotFoundError(ContentError):
    """Raised when a notification id has no row."""


class NotificationService:
    def __init__(self, store: PostgresStore) -> None:
        self.store = store

    async def list_notifications(self, limit: int = 20) -> list[Notification]:
        try:
            rows = await self.store.fetch_notifications(limit)
        except StoreError as exc:
            raise ContentUnavailableError("relational store unavailable") from exc
        return [Notification(**row) for row in rows]

    async def mark_read(self, notification_id: int) -> None:
        try:
            updated = await self.store.mark_notification_read(notification_id)
        except StoreError as exc:
            raise ContentUnavailableError("relational store unavailable") from exc
        if not updated:
            raise NotificationNotFoundError(f"notification not found: {notification_id}")

    async def mark_all_read(self) -> int:
        try:
            return await self.store.mark_all_notifications_read()
        except StoreError as exc:
            raise ContentUnavailableError("relational store unavailable") from exc

    async def activity_feed(self, limit: int = 20) -> list[ActivityItem]:
        """System notifications plus recent comments and likes, unread system items first."""
        try:
            notifications, comments, likes = await asyncio.gather(
                self.store.fetch_notifications(limit),
                self.store.fetch_recent_comments(RECENT_ACTIVITY_LIMIT),
                self.store.fetch_recent_likes(RECENT_ACTIVITY_LIMIT),
            )
            actor_ids = list(dict.fromkeys(row["user_id"] for row in [*comments, *likes] if row.get("user_id")))
            post_ids = list(dict.fromkeys(int(row["post_id"]) for row in [*comments, *likes] if row.get("post_id")))
            users, titles = await asyncio.gather(
                self.store.fetch_users(actor_ids),
                self.store.fetch_post_titles(post_ids),
            )
        except StoreError as exc:
            raise ContentUnavailableError("relational store unavailable") from exc

        try:
            admin = await self.store.fetch_super_admin()
        except StoreError as exc:
            logger.warning("admin profile lookup failed: %s", exc)
            admin = None

        users_by_id = {user["id"]: user for user in users}
        items = [_system_item(row, admin) for row in notifications]
        items.extend(_actor_item("comment", row, users_by_id, titles) for row in comments)
        items.extend(_actor_item("like", row, users_by_id, titles) for row in likes)

        items.sort(key=lambda item: item.created_at, reverse=True)
        items.sort(key=lambda item: item.type == "system" and not item.is_read, reverse=True)
        return items


def _system_item(row: dict[str, Any], admin: dict[str, Any] | None) -> ActivityItem:
    admin = admin or {}
    post_id = row.get("post_id")
    return ActivityItem(
        id=f"system_{row['id']}",
        type="system",
        name=admin.get("name") or "Admin",
        avatar_url=admin.get("avatar_url"),
        text=row.get("message") or "",
        href=f"/post/supabase_{post_id}" if post_id is not None else ADMIN_HREF,
        created_at=row["created_at"],
        is_read=bool(row.get("is_read")),
    )


def _actor_item(
    kind: str,
    row: dict[str, Any],
    users_by_id: dict[str, dict[str, Any]],
    titles: dict[int, str],
) -> ActivityItem:
    user = users_by_id.get(row.get("user_id"), {})
    title = titles.get(int(row["post_id"])) if row.get("post_id") else None
    verb = "Commented on your article" if kind == "comment" else "liked your article"
    return ActivityItem(
        id=f"{kind}_{row['id']}",
        type=kind,
        name=user.get("name") or "Someone",
        avatar_url=user.get("avatar_url"),
        text=f"{verb}: {title or 'Untitled'}",
        detail=(row.get("content") or "") if kind == "comment" else "",
        href=ADMIN_HREF,
        created_at=row["created_at"],
    )


@lru_cache
def get_notification_service() -> NotificationService:
    return NotificationService(get_store())
