from datetime import datetime
from typing import Literal

from blogfeed.schemas.posts import CamelModel

ActivityType = Literal["system", "comment", "like"]


class Notification(CamelModel):
    id: int
    message: str
    post_id: int | None = None
    is_read: bool = False
    created_at: datetime


class ActivityItem(CamelModel):
    id: str
    type: ActivityType
    name: str
    avatar_url: str | None = None
    text: str
    detail: str = ""
    href: str
    created_at: datetime
    is_read: bool = True


class MarkAllReadOut(CamelModel):
    updated: int
