from typing import List, Optional
from pydantic import BaseModel, Field


class FarmerProfile(BaseModel):
    specialty: List[str] = []
    experience_years: int = Field(0, ge=0, le=100)
    farm_size: Optional[str] = None
    certifications: List[str] = []
    response_time: Optional[str] = None


class FarmerProfileUpdate(BaseModel):
    specialty: Optional[List[str]] = None
    experience_years: Optional[int] = Field(None, ge=0, le=100)
    farm_size: Optional[str] = None
    certifications: Optional[List[str]] = None
    response_time: Optional[str] = None
    completion_rate: Optional[float] = Field(None, ge=0, le=100)


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)
