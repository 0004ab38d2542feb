from fastapi import APIRouter, Depends, Query, Response, status as http_status

from blogfeed.api.errors import http_error
from blogfeed.core.security import get_human_principal, require_scope
from blogfeed.schemas.notifications import ActivityItem, MarkAllReadOut, Notification
from blogfeed.services.content import ContentError
from blogfeed.services.notifications import get_notification_service

router = APIRouter()


@router.get("", response_model=list[Notification])
async def list_notifications(
    limit: int = Query(default=20, ge=1, le=100),
    principal=Depends(get_human_principal),
    service=Depends(get_notification_service),
) -> list[Notification]:
    require_scope(principal, "notifications:read")
    try:
        return await service.list_notifications(limit)
    except ContentError as exc:
        raise http_error(exc) from exc


@router.get("/activity", response_model=list[ActivityItem])
async def activity_feed(
    limit: int = Query(default=20, ge=1, le=100),
    principal=Depends(get_human_principal),
    service=Depends(get_notification_service),
) -> list[ActivityItem]:
    require_scope(principal, "notifications:read")
    try:
        return await service.activity_feed(limit)
    except ContentError as exc:
        raise http_error(exc) from exc


@router.patch("/{notification_id}/read", status_code=http_status.HTTP_204_NO_CONTENT)
async def mark_notification_read(
    notification_id: int,
    principal=Depends(get_human_principal),
    service=Depends(get_notification_service),
) -> Response:
    require_scope(principal, "notifications:read")
    try:
        await service.mark_read(notification_id)
    except ContentError as exc:
        raise http_error(exc) from exc
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)


@router.post("/read-all", response_model=MarkAllReadOut)
async def mark_all_notifications_read(
    principal=Depends(get_human_principal),
    service=Depends(get_notification_service),
) -> MarkAllReadOut:
    require_scope(principal, "notifications:read")
    try:
        updated = await service.mark_all_read()
    except ContentError as exc:
        raise http_error(exc) from exc
    return MarkAllReadOut(updated=updated)
