from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from agrireach.authentication.schemas import Email, OtpToken


class ProductCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., gt=0)
    unit: str = Field('kg', min_length=1, max_length=30)
    quantity_available: int = Field(..., ge=0)
    location: Optional[str] = None
    images: List[str] = []
    organic: bool = False


class ProductUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[float] = Field(None, gt=0)
    unit: Optional[str] = Field(None, min_length=1, max_length=30)
    quantity_available: Optional[int] = Field(None, ge=0)
    location: Optional[str] = None
    images: Optional[List[str]] = None
    organic: Optional[bool] = None
    status: Optional[Literal['active', 'sold']] = None


class CartAdd(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)


class CartUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class CheckoutOtpRequest(BaseModel):
    amount: float = Field(..., gt=0)
    email: Optional[Email] = None


class CheckoutOtpVerify(BaseModel):
    code: OtpToken
    email: Optional[Email] = None


class CheckoutRequest(BaseModel):
    checkout_token: str = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1, max_length=500)


class OrderStatusUpdate(BaseModel):
    status: Literal['confirmed', 'shipped', 'delivered', 'cancelled']
