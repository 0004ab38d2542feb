from __future__ import annotations

import asyncio

import pytest

from blogfeed.schemas.engagement import CommentAuthor
from blogfeed.services.content import ContentValidationError
from blogfeed.services.engagement import EngagementService
from fakes import FakeStore, store_row

READER_ID = "33333333-3333-3333-3333-333333333333"
OTHER_ID = "44444444-4444-4444-4444-444444444444"


def _store_with_post() -> FakeStore:
    store = FakeStore([store_row(7, "2024-02-01")])
    store.users = {
        READER_ID: {"id": READER_ID, "name": "Reader One", "username": "reader1", "avatar_url": "https://a/1.png"},
        OTHER_ID: {"id": OTHER_ID, "name": "Reader Two", "username": "reader2", "avatar_url": None},
    }
    return store


def test_toggle_like_twice_restores_state_and_count() -> None:
    store = _store_with_post()
    service = EngagementService(store)

    before = asyncio.run(service.get_like_count("supabase_7")).value
    first = asyncio.run(service.toggle_like("supabase_7", READER_ID))
    during = asyncio.run(service.check_user_like("supabase_7", READER_ID))
    second = asyncio.run(service.toggle_like("supabase_7", READER_ID))
    after = asyncio.run(service.get_like_count("supabase_7")).value

    assert first.ok and first.value is True
    assert during.value is True
    assert second.ok and second.value is False
    assert before == after == 0
    assert asyncio.run(service.check_user_like("supabase_7", READER_ID)).value is False


def test_toggle_like_refreshes_denormalized_counter() -> None:
    store = _store_with_post()
    service = EngagementService(store)

    asyncio.run(service.toggle_like("supabase_7", READER_ID))
    asyncio.run(service.toggle_like("supabase_7", OTHER_ID))

    assert store.posts[0]["likes_count"] == 2
    assert asyncio.run(service.get_like_count("7")).value == 2


def test_toggle_like_degrades_to_optimistic_like_on_store_failure() -> None:
    store = _store_with_post()
    store.failing.add("find_like")
    service = EngagementService(store)

    result = asyncio.run(service.toggle_like("supabase_7", READER_ID))

    assert result.value is True
    assert result.degraded is True
    assert result.ok is False
    assert "find_like failed" in (result.error or "")


def test_counter_refresh_failure_does_not_degrade_toggle() -> None:
    store = _store_with_post()
    store.failing.add("refresh_like_counter")
    service = EngagementService(store)

    result = asyncio.run(service.toggle_like("supabase_7", READER_ID))

    assert result.ok is True
    assert result.value is True


def test_like_count_and_check_degrade_to_safe_defaults() -> None:
    store = _store_with_post()
    store.failing.update({"count_likes", "find_like"})
    service = EngagementService(store)

    count = asyncio.run(service.get_like_count("supabase_7"))
    liked = asyncio.run(service.check_user_like("supabase_7", READER_ID))

    assert (count.value, count.degraded) == (0, True)
    assert (liked.value, liked.degraded) == (False, True)


def test_external_posts_do_not_touch_the_store() -> None:
    store = _store_with_post()
    service = EngagementService(store)

    toggle = asyncio.run(service.toggle_like("external_3", READER_ID))
    comments = asyncio.run(service.get_comments("external_3"))

    assert toggle.degraded is True
    assert comments.value == []
    assert sum(store.calls.values()) == 0


def test_get_comments_resolves_authors_with_one_batched_lookup() -> None:
    store = _store_with_post()
    service = EngagementService(store)
    for text in ("first", "second", "third"):
        asyncio.run(service.add_comment("supabase_7", READER_ID, text))
    asyncio.run(service.add_comment("supabase_7", OTHER_ID, "fourth"))
    store.calls.clear()

    result = asyncio.run(service.get_comments("supabase_7"))

    assert result.ok
    assert [comment.content for comment in result.value] == ["fourth", "third", "second", "first"]
    assert store.calls["fetch_users"] == 1
    assert store.calls["fetch_user"] == 0
    assert result.value[0].user.name == "Reader Two"
    assert result.value[1].user.username == "reader1"


def test_get_comments_returns_empty_list_on_failure() -> None:
    store = _store_with_post()
    store.failing.add("fetch_users")
    service = EngagementService(store)
    asyncio.run(service.add_comment("supabase_7", READER_ID, "hello"))

    result = asyncio.run(service.get_comments("supabase_7"))

    assert result.value == []
    assert result.degraded is True


def test_add_comment_uses_user_table_snapshot() -> None:
    store = _store_with_post()
    service = EngagementService(store)

    result = asyncio.run(service.add_comment("supabase_7", READER_ID, "  Nice read  "))

    assert result.ok
    assert result.value.content == "Nice read"
    assert result.value.user.name == "Reader One"
    assert store.comments[0]["post_id"] == 7


def test_add_comment_falls_back_to_session_identity_when_lookup_fails() -> None:
    store = _store_with_post()
    store.failing.add("fetch_user")
    service = EngagementService(store)
    session_author = CommentAuthor(name="Session Name", username="session", avatar_url=None)

    result = asyncio.run(
        service.add_comment("supabase_7", READER_ID, "Nice read", session_author=session_author)
    )

    assert result.ok
    assert result.value.user == session_author
    assert isinstance(result.value.id, int)


def test_add_comment_synthesizes_local_comment_on_total_failure() -> None:
    store = _store_with_post()
    store.failing.add("insert_comment")
    service = EngagementService(store)

    result = asyncio.run(service.add_comment("supabase_7", READER_ID, "Still shown"))

    assert result.degraded is True
    assert str(result.value.id).startswith("local-")
    assert result.value.content == "Still shown"
    assert result.value.created_at is not None


def test_add_comment_rejects_empty_content_before_any_call() -> None:
    store = _store_with_post()
    service = EngagementService(store)

    with pytest.raises(ContentValidationError):
        asyncio.run(service.add_comment("supabase_7", READER_ID, "   "))

    assert sum(store.calls.values()) == 0
