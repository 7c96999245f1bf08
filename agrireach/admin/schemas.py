from typing import Literal, Optional
from pydantic import BaseModel, Field

from agrireach.admin.models import REPORT_TARGETS


class UserStatusUpdate(BaseModel):
    status: Literal['active', 'suspended', 'banned']
    reason: Optional[str] = Field(None, max_length=500)


class ReportCreate(BaseModel):
    target_type: Literal[REPORT_TARGETS]
    target_id: int
    reason: str = Field(..., min_length=3, max_length=2000)


class ReportUpdate(BaseModel):
    status: Literal['open', 'resolved', 'dismissed']
    note: Optional[str] = Field(None, max_length=2000)
