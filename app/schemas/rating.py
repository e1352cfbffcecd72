"""
Rating Schemas - Pydantic models for rating request/response validation
"""

from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Dict, Optional


class RatingCreate(BaseModel):
    """Schema for creating a rating"""
    store_id: int = Field(..., description="Store ID to rate", gt=0)
    rating: int = Field(..., description="Rating value (1-5)", ge=1, le=5)


class RatingUpdate(BaseModel):
    """Schema for updating an existing rating"""
    rating: int = Field(..., description="New rating value (1-5)", ge=1, le=5)


class UserBrief(BaseModel):
    id: int
    name: str
    email: str
    model_config = ConfigDict(from_attributes=True)


class StoreBrief(BaseModel):
    id: int
    name: str
    email: str
    model_config = ConfigDict(from_attributes=True)


class RatingResponse(BaseModel):
    """Schema for rating response, with minimal user/store projections"""
    id: int
    rating: int
    user_id: int
    store_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserBrief] = None
    store: Optional[StoreBrief] = None
    model_config = ConfigDict(from_attributes=True)


class StoreRatingStats(BaseModel):
    """Schema for store-specific rating statistics"""
    store_id: int
    store_name: str
    average_rating: float = Field(..., description="Average rating, one decimal place")
    total_ratings: int
    rating_breakdown: Dict[int, int] = Field(..., description="Number of ratings per star (1-5)")
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "store_id": 1,
                "store_name": "Pizza Palace",
                "average_rating": 4.3,
                "total_ratings": 3,
                "rating_breakdown": {"1": 0, "2": 0, "3": 0, "4": 2, "5": 1}
            }
        }
    )


class RatingStatistics(BaseModel):
    """Schema for global rating statistics"""
    total_ratings: int
    average_rating: float
    distribution: Dict[int, int]
