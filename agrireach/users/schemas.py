from typing import List, Optional, Union
from pydantic import BaseModel, Field, field_validator

from agrireach.authentication.schemas import check_password_policy, SelfServiceRole


class Skill(BaseModel):
    name: str = Field(..., min_length=1)
    level: int = Field(2, ge=1, le=4)
    category: Optional[str] = None


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=120)
    phone: Optional[str] = Field(None, max_length=30)
    location: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = Field(None, max_length=2000)
    avatar_url: Optional[str] = Field(None, max_length=500)
    skills: Optional[List[Union[Skill, str]]] = None


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str

    @field_validator('new_password')
    @classmethod
    def password_policy(cls, value):
        return check_password_policy(value)


class RolesUpdate(BaseModel):
    roles: List[SelfServiceRole] = Field(..., min_length=1)

    @field_validator('roles')
    @classmethod
    def unique_roles(cls, value):
        return list(dict.fromkeys(value))
