from fastapi import APIRouter, Depends, status as http_status

from blogfeed.api.errors import http_error
from blogfeed.core.security import get_human_principal, get_optional_principal, require_scope
from blogfeed.schemas.engagement import (
    Comment,
    CommentAuthor,
    CommentCreateRequest,
    LikeStatusOut,
    LikeToggleOut,
)
from blogfeed.services.content import ContentError
from blogfeed.services.engagement import get_engagement_service

router = APIRouter()


@router.get("/{post_id}/likes", response_model=LikeStatusOut)
async def get_likes(
    post_id: str,
    principal=Depends(get_optional_principal),
    service=Depends(get_engagement_service),
) -> LikeStatusOut:
    try:
        count = await service.get_like_count(post_id)
        liked = await service.check_user_like(post_id, principal.subject) if principal else None
    except ContentError as exc:
        raise http_error(exc) from exc
    return LikeStatusOut(count=count.value, liked=liked.value if liked is not None else None)


@router.post("/{post_id}/likes", response_model=LikeToggleOut)
async def toggle_like(
    post_id: str,
    principal=Depends(get_human_principal),
    service=Depends(get_engagement_service),
) -> LikeToggleOut:
    require_scope(principal, "engagement:write")
    try:
        result = await service.toggle_like(post_id, principal.subject)
        count = await service.get_like_count(post_id)
    except ContentError as exc:
        raise http_error(exc) from exc
    return LikeToggleOut(liked=result.value, count=count.value, degraded=result.degraded)


@router.get("/{post_id}/comments", response_model=list[Comment])
async def list_comments(post_id: str, service=Depends(get_engagement_service)) -> list[Comment]:
    try:
        result = await service.get_comments(post_id)
    except ContentError as exc:
        raise http_error(exc) from exc
    return result.value


@router.post("/{post_id}/comments", response_model=Comment, status_code=http_status.HTTP_201_CREATED)
async def add_comment(
    post_id: str,
    payload: CommentCreateRequest,
    principal=Depends(get_human_principal),
    service=Depends(get_engagement_service),
) -> Comment:
    require_scope(principal, "engagement:write")
    session_author = CommentAuthor(
        name=principal.name or principal.email,
        username=principal.username,
        avatar_url=principal.avatar_url,
    )
    try:
        result = await service.add_comment(
            post_id,
            principal.subject,
            payload.content,
            session_author=session_author,
        )
    except ContentError as exc:
        raise http_error(exc) from exc
    return result.value
