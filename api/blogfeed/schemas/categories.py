from pydantic import BaseModel, Field


class CategoryOut(BaseModel):
    id: int
    name: str


class CategoryWriteRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
