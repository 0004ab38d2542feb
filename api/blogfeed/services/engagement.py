from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Generic, TypeVar
from uuid import uuid4

from opentelemetry import trace

from blogfeed.schemas.engagement import Comment, CommentAuthor
from blogfeed.services.content import (
    EXTERNAL_SOURCE,
    ContentValidationError,
    PostRef,
    parse_post_id,
    store_native_id,
)
from blogfeed.services.store import PostgresStore, StoreError, get_store

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class EngagementResult(Generic[T]):
    """Outcome of a best-effort engagement call.

    ``degraded`` results carry a safe default in ``value`` instead of the store's answer.
    """

    value: T
    ok: bool = True
    degraded: bool = False
    error: str | None = None

    @classmethod
    def success(cls, value: T) -> EngagementResult[T]:
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: Exception | str) -> EngagementResult[T]:
        return cls(value=value, ok=False, degraded=True, error=str(error))


class EngagementService:
    """Likes and comments against the relational store; never raises on store failures."""

    def __init__(self, store: PostgresStore) -> None:
        self.store = store

    async def toggle_like(self, post_id: str, user_id: str) -> EngagementResult[bool]:
        ref = parse_post_id(post_id)
        if ref.source == EXTERNAL_SOURCE:
            return EngagementResult.fallback(True, "likes are not stored for externally sourced posts")

        native_id = store_native_id(ref)
        with tracer.start_as_current_span("engagement.toggle_like"):
            try:
                like_id = await self.store.find_like(native_id, user_id)
                if like_id is not None:
                    await self.store.delete_like(like_id)
                    liked = False
                else:
                    await self.store.insert_like(native_id, user_id)
                    liked = True
            except StoreError as exc:
                logger.warning("like toggle failed for post=%s user=%s: %s", ref.tagged_id, user_id, exc)
                return EngagementResult.fallback(True, exc)

            try:
                await self.store.refresh_like_counter(native_id)
            except StoreError as exc:
                logger.warning("like counter refresh failed for post=%s: %s", ref.tagged_id, exc)

        return EngagementResult.success(liked)

    async def get_like_count(self, post_id: str) -> EngagementResult[int]:
        ref = parse_post_id(post_id)
        if ref.source == EXTERNAL_SOURCE:
            return EngagementResult.success(0)
        try:
            count = await self.store.count_likes(store_native_id(ref))
        except StoreError as exc:
            logger.warning("like count failed for post=%s: %s", ref.tagged_id, exc)
            return EngagementResult.fallback(0, exc)
        return EngagementResult.success(count)

    async def check_user_like(self, post_id: str, user_id: str) -> EngagementResult[bool]:
        ref = parse_post_id(post_id)
        if ref.source == EXTERNAL_SOURCE:
            return EngagementResult.success(False)
        try:
            like_id = await self.store.find_like(store_native_id(ref), user_id)
        except StoreError as exc:
            logger.warning("like lookup failed for post=%s user=%s: %s", ref.tagged_id, user_id, exc)
            return EngagementResult.fallback(False, exc)
        return EngagementResult.success(like_id is not None)

    async def add_comment(
        self,
        post_id: str,
        user_id: str,
        content: str,
        *,
        session_author: CommentAuthor | None = None,
    ) -> EngagementResult[Comment]:
        text = content.strip() if isinstance(content, str) else ""
        if not text:
            raise ContentValidationError("comment content is required")

        ref = parse_post_id(post_id)
        if ref.source == EXTERNAL_SOURCE:
            return EngagementResult.fallback(
                _local_comment(ref, user_id, text, session_author),
                "comments are not stored for externally sourced posts",
            )

        native_id = store_native_id(ref)
        with tracer.start_as_current_span("engagement.add_comment"):
            try:
                row = await self.store.insert_comment(native_id, user_id, text)
            except StoreError as exc:
                logger.warning("comment insert failed for post=%s user=%s: %s", ref.tagged_id, user_id, exc)
                return EngagementResult.fallback(_local_comment(ref, user_id, text, session_author), exc)

            try:
                user = await self.store.fetch_user(user_id)
            except StoreError as exc:
                logger.warning("comment author lookup failed for user=%s: %s", user_id, exc)
                user = None

        author = _author_from_row(user) if user else session_author
        return EngagementResult.success(_comment_from_row(row, author))

    async def get_comments(self, post_id: str) -> EngagementResult[list[Comment]]:
        ref = parse_post_id(post_id)
        if ref.source == EXTERNAL_SOURCE:
            return EngagementResult.success([])

        with tracer.start_as_current_span("engagement.get_comments"):
            try:
                rows = await self.store.fetch_comments(store_native_id(ref))
                user_ids = list(dict.fromkeys(row["user_id"] for row in rows if row.get("user_id")))
                users = await self.store.fetch_users(user_ids) if user_ids else []
            except StoreError as exc:
                logger.warning("comment listing failed for post=%s: %s", ref.tagged_id, exc)
                return EngagementResult.fallback([], exc)

        authors = {user["id"]: _author_from_row(user) for user in users}
        return EngagementResult.success([_comment_from_row(row, authors.get(row.get("user_id"))) for row in rows])


def _author_from_row(row: dict[str, Any]) -> CommentAuthor:
    return CommentAuthor(
        name=row.get("name"),
        username=row.get("username"),
        avatar_url=row.get("avatar_url"),
    )


def _comment_from_row(row: dict[str, Any], author: CommentAuthor | None) -> Comment:
    return Comment(
        id=row["id"],
        post_id=row["post_id"],
        user_id=str(row["user_id"]),
        content=row.get("content") or "",
        created_at=row.get("created_at") or datetime.now(timezone.utc),
        user=author,
    )


def _local_comment(ref: PostRef, user_id: str, text: str, author: CommentAuthor | None) -> Comment:
    return Comment(
        id=f"local-{uuid4()}",
        post_id=ref.native_id,
        user_id=user_id,
        content=text,
        created_at=datetime.now(timezone.utc),
        user=author,
    )


@lru_cache
def get_engagement_service() -> EngagementService:
    return EngagementService(get_store())
