from datetime import date
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field

from agrireach.opportunities.models import PAY_TYPES, URGENCY_LEVELS, EXPERIENCE_LEVELS, APPLICATION_STATUSES

PayType = Literal[PAY_TYPES]
Urgency = Literal[URGENCY_LEVELS]
ExperienceLevel = Literal[EXPERIENCE_LEVELS]


class SkillRequirement(BaseModel):
    name: str = Field(..., min_length=1)
    min_level: Optional[int] = Field(None, ge=1, le=4)
    required: bool = False


class OpportunityCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    pay_rate: float = Field(..., gt=0)
    pay_rate_max: Optional[float] = Field(None, gt=0)
    pay_type: PayType = 'daily'
    duration: Optional[str] = None
    urgency: Urgency = 'medium'
    required_skills: List[Union[SkillRequirement, str]] = []
    experience_level: Optional[ExperienceLevel] = None
    start_date: Optional[date] = None
    company_name: Optional[str] = None
    contact_email: Optional[str] = None
    requirements: List[str] = []
    benefits: List[str] = []
    work_schedule: Optional[str] = None


class OpportunityUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    location: Optional[str] = None
    pay_rate: Optional[float] = Field(None, gt=0)
    pay_rate_max: Optional[float] = Field(None, gt=0)
    pay_type: Optional[PayType] = None
    duration: Optional[str] = None
    urgency: Optional[Urgency] = None
    required_skills: Optional[List[Union[SkillRequirement, str]]] = None
    experience_level: Optional[ExperienceLevel] = None
    start_date: Optional[date] = None
    company_name: Optional[str] = None
    contact_email: Optional[str] = None
    requirements: Optional[List[str]] = None
    benefits: Optional[List[str]] = None
    work_schedule: Optional[str] = None
    status: Optional[Literal['active', 'closed']] = None


class ApplicationCreate(BaseModel):
    cover_letter: Optional[str] = None
    resume_url: Optional[str] = None
    highlighted_skills: List[str] = []


class ApplicationStatusUpdate(BaseModel):
    status: Literal[APPLICATION_STATUSES]
