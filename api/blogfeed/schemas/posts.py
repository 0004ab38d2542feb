from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PostSource = Literal["supabase", "external"]
PostStatus = Literal["Published", "Draft"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Post(CamelModel):
    id: str
    original_id: int | str
    title: str
    description: str = ""
    content: str = ""
    category: str | None = None
    image: str | None = None
    date: datetime | None = None
    likes: int = 0
    author: str | None = None
    status: str = "Published"
    source: PostSource


class PostPage(CamelModel):
    posts: list[Post] = Field(default_factory=list)
    current_page: int
    total_pages: int
    total_posts: int


class PostWriteRequest(CamelModel):
    title: str
    description: str = ""
    content: str
    category: str
    image: str | None = None
    status: PostStatus = "Published"
