from fastapi import APIRouter, Depends, Query, Response, status as http_status

from blogfeed.api.errors import http_error
from blogfeed.core.config import get_settings
from blogfeed.core.security import get_human_principal, require_scope
from blogfeed.schemas.posts import Post, PostPage, PostWriteRequest
from blogfeed.services.content import ContentError, get_content_service

router = APIRouter()
_MAX_LIMIT = get_settings().max_page_size


@router.get("", response_model=PostPage)
async def list_posts(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=_MAX_LIMIT),
    category: str | None = Query(default=None, min_length=1),
    keyword: str | None = Query(default=None, min_length=1),
    service=Depends(get_content_service),
) -> PostPage:
    try:
        return await service.list_posts(page=page, limit=limit, category=category, keyword=keyword)
    except ContentError as exc:
        raise http_error(exc) from exc


@router.get("/search", response_model=PostPage)
async def search_posts(
    keyword: str = Query(min_length=1),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=_MAX_LIMIT),
    service=Depends(get_content_service),
) -> PostPage:
    try:
        return await service.search_posts(keyword, page=page, limit=limit)
    except ContentError as exc:
        raise http_error(exc) from exc


@router.get("/{post_id}", response_model=Post)
async def get_post(post_id: str, service=Depends(get_content_service)) -> Post:
    try:
        return await service.get_post(post_id)
    except ContentError as exc:
        raise http_error(exc) from exc


@router.post("", response_model=Post, status_code=http_status.HTTP_201_CREATED)
async def create_post(
    payload: PostWriteRequest,
    principal=Depends(get_human_principal),
    service=Depends(get_content_service),
) -> Post:
    require_scope(principal, "posts:write")
    try:
        return await service.create_post(payload)
    except ContentError as exc:
        raise http_error(exc) from exc


@router.put("/{post_id}", response_model=Post)
async def update_post(
    post_id: str,
    payload: PostWriteRequest,
    principal=Depends(get_human_principal),
    service=Depends(get_content_service),
) -> Post:
    require_scope(principal, "posts:write")
    try:
        return await service.update_post(post_id, payload)
    except ContentError as exc:
        raise http_error(exc) from exc


@router.delete("/{post_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    principal=Depends(get_human_principal),
    service=Depends(get_content_service),
) -> Response:
    require_scope(principal, "posts:write")
    try:
        await service.delete_post(post_id)
    except ContentError as exc:
        raise http_error(exc) from exc
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)
