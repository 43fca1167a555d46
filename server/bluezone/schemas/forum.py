from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DiscussionCreate(BaseModel):

    title: str = Field(min_length=5, max_length=200)
    content: str = Field(min_length=10, max_length=10000)
    category: str = Field(min_length=2)
    tags: List[str] = Field(default_factory=list)


class ReplyCreate(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(min_length=2)
    parent_id: Optional[str] = Field(default=None, alias="parentId")


class DiscussionUpdate(BaseModel):

    title: Optional[str] = Field(default=None, min_length=5, max_length=200)
    content: Optional[str] = Field(default=None, min_length=10, max_length=10000)
    category: Optional[str] = Field(default=None, min_length=2)


class ReplyUpdate(BaseModel):

    content: str = Field(min_length=2)
