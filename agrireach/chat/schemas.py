from typing import Literal
from pydantic import BaseModel, Field


class MessageCreate(BaseModel):
    recipient_id: int
    content: str = Field(..., min_length=1, max_length=5000)
    message_type: Literal['text', 'image', 'file'] = 'text'
