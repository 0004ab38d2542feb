from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any

from blogfeed.core.config import Settings
from blogfeed.services.categories import CategoryMap
from blogfeed.services.content import ContentService
from blogfeed.services.external import ExternalContentError
from blogfeed.services.store import StoreConflictError, StoreUnavailableError

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeStore:
    """In-memory stand-in for PostgresStore; methods listed in ``failing`` raise."""

    def __init__(self, posts: list[dict[str, Any]] | None = None) -> None:
        self.posts: list[dict[str, Any]] = [dict(row) for row in posts or []]
        self.categories: list[dict[str, Any]] = [
            {"id": 1, "name": "Cat"},
            {"id": 2, "name": "General"},
            {"id": 3, "name": "Inspiration"},
        ]
        self.likes: list[dict[str, Any]] = []
        self.comments: list[dict[str, Any]] = []
        self.users: dict[str, dict[str, Any]] = {}
        self.notifications: list[dict[str, Any]] = []
        self.admin: dict[str, Any] | None = None
        self.failing: set[str] = set()
        self.calls: Counter[str] = Counter()
        self._next_id = 1000

    def _enter(self, name: str) -> None:
        self.calls[name] += 1
        if name in self.failing or "*" in self.failing:
            raise StoreUnavailableError(f"{name} failed")

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    async def close(self) -> None:
        return None

    async def fetch_posts(self) -> list[dict[str, Any]]:
        self._enter("fetch_posts")
        return [dict(row) for row in self.posts]

    async def fetch_post(self, post_id: int) -> dict[str, Any] | None:
        self._enter("fetch_post")
        return next((dict(row) for row in self.posts if row["id"] == post_id), None)

    async def insert_post(self, values: dict[str, Any]) -> dict[str, Any]:
        self._enter("insert_post")
        row = {"id": self._new_id(), "likes_count": 0, **values}
        self.posts.append(row)
        return dict(row)

    async def update_post(self, post_id: int, values: dict[str, Any]) -> dict[str, Any] | None:
        self._enter("update_post")
        for row in self.posts:
            if row["id"] == post_id:
                row.update(values)
                return dict(row)
        return None

    async def delete_post(self, post_id: int) -> bool:
        self._enter("delete_post")
        before = len(self.posts)
        self.posts = [row for row in self.posts if row["id"] != post_id]
        return len(self.posts) != before

    async def refresh_like_counter(self, post_id: int) -> int:
        self._enter("refresh_like_counter")
        count = sum(1 for like in self.likes if like["post_id"] == post_id)
        for row in self.posts:
            if row["id"] == post_id:
                row["likes_count"] = count
        return count

    async def fetch_categories(self) -> list[dict[str, Any]]:
        self._enter("fetch_categories")
        return [dict(row) for row in self.categories]

    async def insert_category(self, name: str) -> dict[str, Any]:
        self._enter("insert_category")
        if any(row["name"].lower() == name.lower() for row in self.categories):
            raise StoreConflictError(f"category already exists: {name}")
        row = {"id": max((row["id"] for row in self.categories), default=0) + 1, "name": name}
        self.categories.append(row)
        return dict(row)

    async def update_category(self, category_id: int, name: str) -> dict[str, Any] | None:
        self._enter("update_category")
        for row in self.categories:
            if row["id"] == category_id:
                row["name"] = name
                return dict(row)
        return None

    async def delete_category(self, category_id: int) -> bool:
        self._enter("delete_category")
        before = len(self.categories)
        self.categories = [row for row in self.categories if row["id"] != category_id]
        return len(self.categories) != before

    async def find_like(self, post_id: int, user_id: str) -> int | None:
        self._enter("find_like")
        return next(
            (like["id"] for like in self.likes if like["post_id"] == post_id and like["user_id"] == user_id),
            None,
        )

    async def insert_like(self, post_id: int, user_id: str) -> None:
        self._enter("insert_like")
        self.likes.append(
            {"id": self._new_id(), "post_id": post_id, "user_id": user_id, "created_at": self._stamp()}
        )

    async def delete_like(self, like_id: int) -> None:
        self._enter("delete_like")
        self.likes = [like for like in self.likes if like["id"] != like_id]

    async def count_likes(self, post_id: int) -> int:
        self._enter("count_likes")
        return sum(1 for like in self.likes if like["post_id"] == post_id)

    async def fetch_recent_likes(self, limit: int) -> list[dict[str, Any]]:
        self._enter("fetch_recent_likes")
        return sorted(self.likes, key=lambda row: row["created_at"], reverse=True)[:limit]

    async def insert_comment(self, post_id: int, user_id: str, content: str) -> dict[str, Any]:
        self._enter("insert_comment")
        row = {
            "id": self._new_id(),
            "post_id": post_id,
            "user_id": user_id,
            "content": content,
            "created_at": self._stamp(),
        }
        self.comments.append(row)
        return dict(row)

    async def fetch_comments(self, post_id: int) -> list[dict[str, Any]]:
        self._enter("fetch_comments")
        rows = [dict(row) for row in self.comments if row["post_id"] == post_id]
        return sorted(rows, key=lambda row: row["created_at"], reverse=True)

    async def fetch_recent_comments(self, limit: int) -> list[dict[str, Any]]:
        self._enter("fetch_recent_comments")
        return sorted(self.comments, key=lambda row: row["created_at"], reverse=True)[:limit]

    async def fetch_user(self, user_id: str) -> dict[str, Any] | None:
        self._enter("fetch_user")
        return self.users.get(user_id)

    async def fetch_users(self, user_ids: list[str]) -> list[dict[str, Any]]:
        self._enter("fetch_users")
        return [self.users[user_id] for user_id in user_ids if user_id in self.users]

    async def fetch_post_titles(self, post_ids: list[int]) -> dict[int, str]:
        self._enter("fetch_post_titles")
        return {row["id"]: row["title"] for row in self.posts if row["id"] in post_ids}

    async def fetch_super_admin(self) -> dict[str, Any] | None:
        self._enter("fetch_super_admin")
        return self.admin

    async def fetch_notifications(self, limit: int) -> list[dict[str, Any]]:
        self._enter("fetch_notifications")
        return sorted(self.notifications, key=lambda row: row["created_at"], reverse=True)[:limit]

    async def insert_notification(self, message: str, post_id: int | None) -> dict[str, Any]:
        self._enter("insert_notification")
        row = {
            "id": self._new_id(),
            "message": message,
            "post_id": post_id,
            "is_read": False,
            "created_at": self._stamp(),
        }
        self.notifications.append(row)
        return dict(row)

    async def mark_notification_read(self, notification_id: int) -> bool:
        self._enter("mark_notification_read")
        for row in self.notifications:
            if row["id"] == notification_id:
                row["is_read"] = True
                return True
        return False

    async def mark_all_notifications_read(self) -> int:
        self._enter("mark_all_notifications_read")
        updated = 0
        for row in self.notifications:
            if not row["is_read"]:
                row["is_read"] = True
                updated += 1
        return updated

    def _stamp(self) -> datetime:
        return BASE_TIME + timedelta(minutes=self._new_id())


class FakeExternalClient:
    """Serves a fixed post list with the external API's own pagination."""

    def __init__(self, posts: list[dict[str, Any]] | None = None) -> None:
        self.posts: list[dict[str, Any]] = [dict(post) for post in posts or []]
        self.failing = False
        self.failing_pages: set[int] = set()
        self.calls: Counter[str] = Counter()
        self.requested_pages: list[tuple[int, int]] = []

    async def list_posts(
        self,
        *,
        page: int = 1,
        limit: int = 6,
        category: str | None = None,
        keyword: str | None = None,
    ) -> dict[str, Any]:
        self.calls["list_posts"] += 1
        self.requested_pages.append((page, limit))
        if self.failing or page in self.failing_pages:
            raise ExternalContentError("external content API request failed with status 503")
        start = (page - 1) * limit
        total = len(self.posts)
        return {
            "posts": [dict(post) for post in self.posts[start : start + limit]],
            "currentPage": page,
            "totalPages": -(-total // limit),
            "totalPosts": total,
        }

    async def get_post(self, post_id: str) -> dict[str, Any] | None:
        self.calls["get_post"] += 1
        if self.failing:
            raise ExternalContentError("external content API unreachable")
        return next((dict(post) for post in self.posts if str(post["id"]) == post_id), None)


def store_row(post_id: int, date: str | None, **overrides: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": post_id,
        "title": f"Store post {post_id}",
        "description": "Written by the admin team",
        "content": "Body text",
        "image": None,
        "category_id": 2,
        "status_id": 1,
        "date": datetime.fromisoformat(date).replace(tzinfo=timezone.utc) if date else None,
        "likes_count": 0,
    }
    row.update(overrides)
    return row


def external_post(post_id: int, date: str | None, **overrides: Any) -> dict[str, Any]:
    post: dict[str, Any] = {
        "id": post_id,
        "title": f"External post {post_id}",
        "description": "From the content API",
        "content": "External body",
        "image": "https://example.com/cover.jpg",
        "category": "Inspiration",
        "author": "Thompson P.",
        "date": f"{date}T00:00:00.000Z" if date else None,
        "likes": 3,
    }
    post.update(overrides)
    return post


def build_service(
    store: FakeStore | None = None,
    external: FakeExternalClient | None = None,
    **settings_overrides: Any,
) -> ContentService:
    settings = Settings(_env_file=None, otel_enabled=False, **settings_overrides)
    return ContentService(
        store=store or FakeStore(),
        external=external or FakeExternalClient(),
        settings=settings,
        categories=CategoryMap.from_json(settings.category_map_json),
    )
