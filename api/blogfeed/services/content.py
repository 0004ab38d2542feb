from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Iterable

from opentelemetry import trace

from blogfeed.core.config import Settings, get_settings
from blogfeed.schemas.posts import Post, PostPage, PostWriteRequest
from blogfeed.services.categories import DEFAULT_CATEGORY_NAMES, CategoryMap
from blogfeed.services.demo_posts import find_demo_post
from blogfeed.services.external import ExternalContentClient, ExternalContentError, get_external_client
from blogfeed.services.store import PostgresStore, StoreConflictError, StoreError, get_store

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

STORE_SOURCE = "supabase"
EXTERNAL_SOURCE = "external"
STATUS_BY_ID = {1: "Published", 2: "Draft"}
STATUS_IDS = {label: status_id for status_id, label in STATUS_BY_ID.items()}
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
CATEGORY_SAMPLE_LIMIT = 30
# Pseudo-category offered first in pickers; selecting it means "all posts".
HIGHLIGHT_CATEGORY = "Highlight"


class ContentError(Exception):
    """Base content aggregation error."""


class ContentUnavailableError(ContentError):
    """Raised when no content source could serve the request."""


class PostNotFoundError(ContentError):
    """Raised when the owning source has no record for the requested id."""


class CrossSourceMutationError(ContentError):
    """Raised when a write targets a post owned by the external content API."""


class CategoryNotFoundError(ContentError):
    """Raised when a category id has no row."""


class ContentValidationError(ContentError):
    """Raised when a payload is rejected before any network call."""


class ContentConflictError(ContentError):
    """Raised when a write collides with existing data."""


@dataclass(frozen=True, slots=True)
class PostRef:
    source: str
    native_id: str

    @property
    def tagged_id(self) -> str:
        return f"{self.source}_{self.native_id}"


def parse_post_id(post_id: str) -> PostRef:
    """Split a tagged id such as ``supabase_42`` into its source and native id.

    Untagged ids are treated as relational store ids.
    """
    raw = post_id.strip() if isinstance(post_id, str) else ""
    if not raw:
        raise ContentValidationError("post id must be a non-empty string")
    prefix, separator, native_id = raw.partition("_")
    if separator and native_id and prefix in {STORE_SOURCE, EXTERNAL_SOURCE}:
        return PostRef(source=prefix, native_id=native_id)
    return PostRef(source=STORE_SOURCE, native_id=raw)


def store_native_id(ref: PostRef) -> int:
    try:
        return int(ref.native_id)
    except ValueError as exc:
        raise PostNotFoundError(f"post not found: {ref.tagged_id}") from exc


def normalize_content(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.replace("\\r\\n", "\n").replace("\\n", "\n")


def filter_posts(posts: Iterable[Post], *, category: str | None = None, keyword: str | None = None) -> list[Post]:
    wanted_category = category.lower() if category and category.strip() else None
    if wanted_category == HIGHLIGHT_CATEGORY.lower():
        wanted_category = None
    needle = keyword.lower() if keyword and keyword.strip() else None

    matched: list[Post] = []
    for post in posts:
        if wanted_category is not None and (post.category or "").lower() != wanted_category:
            continue
        if needle is not None and not any(
            needle in field.lower() for field in (post.title, post.description, post.content)
        ):
            continue
        matched.append(post)
    return matched


def sort_posts(posts: Iterable[Post]) -> list[Post]:
    # sorted() is stable with reverse=True, so equal dates keep concatenation order.
    return sorted(posts, key=lambda post: post.date or EPOCH, reverse=True)


def paginate(posts: list[Post], *, page: int, limit: int) -> PostPage:
    start = (page - 1) * limit
    total = len(posts)
    return PostPage(
        posts=posts[start : start + limit],
        current_page=page,
        total_pages=math.ceil(total / limit),
        total_posts=total,
    )


class ContentService:
    """Merges relational store and external API posts into one paginated feed."""

    def __init__(
        self,
        *,
        store: PostgresStore,
        external: ExternalContentClient,
        settings: Settings,
        categories: CategoryMap,
    ) -> None:
        self.store = store
        self.external = external
        self.settings = settings
        self.categories = categories

    async def refresh_category_map(self) -> CategoryMap:
        try:
            rows = await self.store.fetch_categories()
        except StoreError as exc:
            logger.warning("category table unavailable; keeping configured map: %s", exc)
            return self.categories
        loaded = CategoryMap.from_rows(rows)
        if len(loaded):
            self.categories = loaded
        return self.categories

    async def list_posts(
        self,
        *,
        page: int = 1,
        limit: int | None = None,
        category: str | None = None,
        keyword: str | None = None,
    ) -> PostPage:
        page_size = self.settings.default_page_size if limit is None else limit
        if page < 1:
            raise ContentValidationError("page must be >= 1")
        if page_size < 1:
            raise ContentValidationError("limit must be >= 1")

        with tracer.start_as_current_span("content.list_posts") as span:
            span.set_attribute("content.page", page)
            span.set_attribute("content.limit", page_size)
            store_posts, external_posts = await asyncio.gather(
                self._fetch_store_posts(),
                self._fetch_external_posts(),
            )
            if store_posts is None and external_posts is None:
                raise ContentUnavailableError("all content sources are unavailable")

            merged = _dedupe([*(store_posts or []), *(external_posts or [])])
            filtered = filter_posts(merged, category=category, keyword=keyword)
            span.set_attribute("content.total_filtered", len(filtered))
            return paginate(sort_posts(filtered), page=page, limit=page_size)

    async def search_posts(self, keyword: str, page: int = 1, limit: int | None = None) -> PostPage:
        return await self.list_posts(page=page, limit=limit, keyword=keyword)

    async def list_categories(self) -> list[str]:
        labels = await self._category_labels()
        return [HIGHLIGHT_CATEGORY, *(label for label in labels if label.lower() != HIGHLIGHT_CATEGORY.lower())]

    async def _category_labels(self) -> list[str]:
        try:
            rows = await self.store.fetch_categories()
        except StoreError as exc:
            logger.warning("category table unavailable; deriving categories from posts: %s", exc)
        else:
            loaded = CategoryMap.from_rows(rows)
            if len(loaded):
                self.categories = loaded
                return loaded.names

        try:
            payload = await self.external.list_posts(page=1, limit=CATEGORY_SAMPLE_LIMIT)
        except ExternalContentError as exc:
            logger.warning("external source unavailable; using default categories: %s", exc)
        else:
            derived: list[str] = []
            for post in payload["posts"]:
                label = _as_text(post.get("category"))
                if label and label not in derived:
                    derived.append(label)
            if derived:
                return derived

        return list(DEFAULT_CATEGORY_NAMES)

    async def get_post(self, post_id: str) -> Post:
        ref = parse_post_id(post_id)
        failure: Exception | None = None

        with tracer.start_as_current_span("content.get_post") as span:
            span.set_attribute("content.source", ref.source)
            if ref.source == STORE_SOURCE:
                native_id = store_native_id(ref)
                try:
                    row = await self.store.fetch_post(native_id)
                except StoreError as exc:
                    failure = exc
                    row = None
                if row is not None:
                    return self.normalize_store_post(row)
            else:
                try:
                    payload = await self.external.get_post(ref.native_id)
                except ExternalContentError as exc:
                    failure = exc
                    payload = None
                if payload is not None:
                    return self.normalize_external_post(payload)

                if self.settings.demo_fallback_enabled:
                    demo = find_demo_post(ref.native_id)
                    if demo is not None:
                        logger.warning("serving demo post for %s", ref.tagged_id)
                        return self.normalize_external_post(demo)

        if failure is not None:
            raise ContentUnavailableError(f"{ref.source} source unavailable") from failure
        raise PostNotFoundError(f"post not found: {ref.tagged_id}")

    async def create_post(self, payload: PostWriteRequest) -> Post:
        values = self._validated_values(payload)
        values["date"] = datetime.now(timezone.utc)
        try:
            row = await self.store.insert_post(values)
        except StoreError as exc:
            raise ContentUnavailableError("relational store unavailable") from exc

        post = self.normalize_store_post(row)
        if post.status == "Published":
            await self._record_publication(post)
        return post

    async def update_post(self, post_id: str, payload: PostWriteRequest) -> Post:
        ref = self._writable_ref(post_id)
        values = self._validated_values(payload)
        native_id = store_native_id(ref)
        try:
            row = await self.store.update_post(native_id, values)
        except StoreError as exc:
            raise ContentUnavailableError("relational store unavailable") from exc
        if row is None:
            raise PostNotFoundError(f"post not found: {ref.tagged_id}")
        return self.normalize_store_post(row)

    async def delete_post(self, post_id: str) -> None:
        ref = self._writable_ref(post_id)
        native_id = store_native_id(ref)
        try:
            deleted = await self.store.delete_post(native_id)
        except StoreError as exc:
            raise ContentUnavailableError("relational store unavailable") from exc
        if not deleted:
            raise PostNotFoundError(f"post not found: {ref.tagged_id}")

    async def list_category_rows(self) -> list[dict[str, Any]]:
        try:
            return await self.store.fetch_categories()
        except StoreError as exc:
            raise ContentUnavailableError("relational store unavailable") from exc

    async def create_category(self, name: str) -> dict[str, Any]:
        cleaned = _require_text(name, "category name")
        try:
            row = await self.store.insert_category(cleaned)
        except StoreConflictError as exc:
            raise ContentConflictError(str(exc)) from exc
        except StoreError as exc:
            raise ContentUnavailableError("relational store unavailable") from exc
        await self.refresh_category_map()
        return row

    async def rename_category(self, category_id: int, name: str) -> dict[str, Any]:
        cleaned = _require_text(name, "category name")
        try:
            row = await self.store.update_category(category_id, cleaned)
        except StoreConflictError as exc:
            raise ContentConflictError(str(exc)) from exc
        except StoreError as exc:
            raise ContentUnavailableError("relational store unavailable") from exc
        if row is None:
            raise CategoryNotFoundError(f"category not found: {category_id}")
        await self.refresh_category_map()
        return row

    async def delete_category(self, category_id: int) -> None:
        try:
            deleted = await self.store.delete_category(category_id)
        except StoreConflictError as exc:
            raise ContentConflictError(str(exc)) from exc
        except StoreError as exc:
            raise ContentUnavailableError("relational store unavailable") from exc
        if not deleted:
            raise CategoryNotFoundError(f"category not found: {category_id}")
        await self.refresh_category_map()

    def normalize_store_post(self, row: dict[str, Any]) -> Post:
        native_id = row.get("id")
        status_id = _as_int(row.get("status_id"), default=1)
        return Post(
            id=f"{STORE_SOURCE}_{native_id}",
            original_id=native_id,
            title=_as_text(row.get("title")) or "",
            description=_as_text(row.get("description")) or "",
            content=normalize_content(row.get("content")),
            category=self.categories.name_for(row.get("category_id")),
            image=_as_text(row.get("image")),
            date=_parse_timestamp(row.get("date")),
            likes=_as_int(row.get("likes_count")),
            author=self.settings.canonical_author_name,
            status=STATUS_BY_ID.get(status_id, "Published"),
            source=STORE_SOURCE,
        )

    def normalize_external_post(self, payload: dict[str, Any]) -> Post:
        native_id = payload.get("id")
        author = _as_text(payload.get("author"))
        if author == self.settings.legacy_author_name:
            author = self.settings.canonical_author_name
        return Post(
            id=f"{EXTERNAL_SOURCE}_{native_id}",
            original_id=native_id,
            title=_as_text(payload.get("title")) or "",
            description=_as_text(payload.get("description")) or "",
            content=normalize_content(payload.get("content")),
            category=_as_text(payload.get("category")),
            image=_as_text(payload.get("image")),
            date=_parse_timestamp(payload.get("date")),
            likes=_as_int(payload.get("likes")),
            author=author,
            status=_as_text(payload.get("status")) or "Published",
            source=EXTERNAL_SOURCE,
        )

    async def _fetch_store_posts(self) -> list[Post] | None:
        with tracer.start_as_current_span("content.fetch_store"):
            try:
                rows = await self.store.fetch_posts()
            except StoreError as exc:
                logger.warning("relational store unavailable; serving external posts only: %s", exc)
                return None
        return [self.normalize_store_post(row) for row in rows if row.get("id") is not None]

    async def _fetch_external_posts(self) -> list[Post] | None:
        limit = self.settings.external_fetch_limit
        with tracer.start_as_current_span("content.fetch_external"):
            try:
                first = await self.external.list_posts(page=1, limit=limit)
            except ExternalContentError as exc:
                logger.warning("external content API unavailable; serving store posts only: %s", exc)
                return None

            payloads = list(first["posts"])
            total_pages = _as_int(first.get("totalPages"), default=1)
            last_page = min(total_pages, self.settings.external_max_pages)
            if total_pages > last_page:
                logger.warning(
                    "external source reports %s pages; reading only the first %s",
                    total_pages,
                    last_page,
                )
            if last_page > 1:
                pages = await asyncio.gather(
                    *(self._fetch_external_page(number, limit) for number in range(2, last_page + 1))
                )
                for posts in pages:
                    payloads.extend(posts)

        return [self.normalize_external_post(post) for post in payloads if post.get("id") is not None]

    async def _fetch_external_page(self, page: int, limit: int) -> list[dict[str, Any]]:
        try:
            payload = await self.external.list_posts(page=page, limit=limit)
        except ExternalContentError as exc:
            logger.warning("external page %s unavailable; continuing with partial results: %s", page, exc)
            return []
        return payload["posts"]

    async def _record_publication(self, post: Post) -> None:
        try:
            await self.store.insert_notification(
                f"New article published: {post.title}",
                _as_int(post.original_id) or None,
            )
        except StoreError as exc:
            logger.warning("could not record publication notification for %s: %s", post.id, exc)

    def _writable_ref(self, post_id: str) -> PostRef:
        ref = parse_post_id(post_id)
        if ref.source == EXTERNAL_SOURCE:
            raise CrossSourceMutationError("cannot modify externally sourced content")
        return ref

    def _validated_values(self, payload: PostWriteRequest) -> dict[str, Any]:
        title = _require_text(payload.title, "title")
        content = _require_text(payload.content, "content")
        category = _require_text(payload.category, "category")
        category_id = self.categories.id_for(category)
        if category_id is None:
            raise ContentValidationError("no categories are configured")
        if payload.status not in STATUS_IDS:
            raise ContentValidationError(f"unknown status: {payload.status}")
        return {
            "title": title,
            "description": (payload.description or "").strip(),
            "content": content,
            "image": _as_text(payload.image),
            "category_id": category_id,
            "status_id": STATUS_IDS[payload.status],
        }


def _dedupe(posts: list[Post]) -> list[Post]:
    seen: set[str] = set()
    unique: list[Post] = []
    for post in posts:
        if post.id in seen:
            continue
        seen.add(post.id)
        unique.append(post)
    return unique


def _require_text(value: Any, field: str) -> str:
    text = _as_text(value)
    if text is None:
        raise ContentValidationError(f"{field} is required")
    return text


def _as_text(value: Any) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _as_int(value: Any, *, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@lru_cache
def get_content_service() -> ContentService:
    settings = get_settings()
    return ContentService(
        store=get_store(),
        external=get_external_client(),
        settings=settings,
        categories=CategoryMap.from_json(settings.category_map_json),
    )
