from fastapi import APIRouter, Depends, Response, status as http_status

from blogfeed.api.errors import http_error
from blogfeed.core.security import get_human_principal, require_scope
from blogfeed.schemas.categories import CategoryOut, CategoryWriteRequest
from blogfeed.services.content import ContentError, get_content_service

router = APIRouter()


@router.get("", response_model=list[str])
async def list_categories(service=Depends(get_content_service)) -> list[str]:
    return await service.list_categories()


@router.get("/admin", response_model=list[CategoryOut])
async def list_category_rows(
    principal=Depends(get_human_principal),
    service=Depends(get_content_service),
) -> list[CategoryOut]:
    require_scope(principal, "categories:write")
    try:
        rows = await service.list_category_rows()
    except ContentError as exc:
        raise http_error(exc) from exc
    return [CategoryOut(**row) for row in rows]


@router.post("", response_model=CategoryOut, status_code=http_status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryWriteRequest,
    principal=Depends(get_human_principal),
    service=Depends(get_content_service),
) -> CategoryOut:
    require_scope(principal, "categories:write")
    try:
        row = await service.create_category(payload.name)
    except ContentError as exc:
        raise http_error(exc) from exc
    return CategoryOut(**row)


@router.patch("/{category_id}", response_model=CategoryOut)
async def rename_category(
    category_id: int,
    payload: CategoryWriteRequest,
    principal=Depends(get_human_principal),
    service=Depends(get_content_service),
) -> CategoryOut:
    require_scope(principal, "categories:write")
    try:
        row = await service.rename_category(category_id, payload.name)
    except ContentError as exc:
        raise http_error(exc) from exc
    return CategoryOut(**row)


@router.delete("/{category_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: int,
    principal=Depends(get_human_principal),
    service=Depends(get_content_service),
) -> Response:
    require_scope(principal, "categories:write")
    try:
        await service.delete_category(category_id)
    except ContentError as exc:
        raise http_error(exc) from exc
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)
