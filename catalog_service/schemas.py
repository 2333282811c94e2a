from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, StrictInt

# Domain constraints are checked by catalog_service.validation, so request
# schemas only describe shape and leave every field optional.

class ProductCreate(BaseModel):
    """Schema for creating or replacing a product.
    """
    name: Optional[str] = None
    description: Optional[str] = ""
    price: Optional[Decimal] = None


class ReviewCreate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    review_text: Optional[str] = ""
    rating: Optional[StrictInt] = None
    product_id: Optional[int] = None


class ReviewUpdate(BaseModel):
    """Mutable review fields; product_id cannot change after creation.
    """
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    review_text: Optional[str] = ""
    rating: Optional[StrictInt] = None


class ReviewOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    review_text: str
    rating: int
    product_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductOut(BaseModel):
    """Schema for returning product details, reviews included.
    """
    id: int
    name: str
    description: str
    price: Decimal
    average_rating: float
    created_at: datetime
    updated_at: datetime
    reviews: List[ReviewOut] = []

    class Config:
        from_attributes = True


class ProductRatingOut(BaseModel):
    product_id: int
    average_rating: float


class ErrorResponse(BaseModel):
    message: str
    details: Optional[str] = None
