from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field, model_validator


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class ThreadCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    content: str = Field(..., min_length=1)
    category_id: Optional[int] = None
    category: Optional[Union[int, str]] = None
    tags: List[str] = []

    @model_validator(mode='after')
    def category_given(self):
        if self.category_id is None and self.category in (None, ''):
            raise ValueError('category_id or category is required')
        return self


class ThreadUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    tags: Optional[List[str]] = None


class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
    parent_reply_id: Optional[int] = None


class ReplyUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class VoteRequest(BaseModel):
    vote_type: Literal['like', 'dislike']
