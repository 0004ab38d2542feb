from datetime import datetime

from pydantic import BaseModel, Field

from blogfeed.schemas.posts import CamelModel


class CommentAuthor(CamelModel):
    name: str | None = None
    username: str | None = None
    avatar_url: str | None = None


class Comment(CamelModel):
    id: int | str
    post_id: int | str
    user_id: str
    content: str
    created_at: datetime
    user: CommentAuthor | None = None


class CommentCreateRequest(BaseModel):
    content: str = Field(min_length=1, max_length=5000)


class LikeStatusOut(CamelModel):
    count: int
    liked: bool | None = None


class LikeToggleOut(CamelModel):
    liked: bool
    count: int
    degraded: bool = False
