"""
Store Schemas - request DTOs, listing query and the two listing shapes
"""

from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from datetime import datetime
from typing import List, Optional

from app.models.user import Role
from app.schemas.rating import UserBrief
from app.schemas.validation import SafeStringMixin, validate_sort_field, validate_sort_order

SORTABLE_FIELDS = ["name", "email", "address", "created_at"]


class StoreCreate(BaseModel, SafeStringMixin):
    """Schema for creating a store (admin only)"""
    name: str = Field(..., min_length=1, max_length=60)
    email: EmailStr
    address: Optional[str] = Field(None, max_length=400)
    owner_id: int = Field(..., gt=0, description="ID of the user who will own the store")

    @field_validator('name', 'address')
    @classmethod
    def clean_text_fields(cls, v):
        return cls.clean_text(v)


class StoreUpdate(BaseModel, SafeStringMixin):
    """Schema for updating a store, every field optional"""
    name: Optional[str] = Field(None, min_length=1, max_length=60)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=400)

    @field_validator('name', 'address')
    @classmethod
    def clean_text_fields(cls, v):
        return cls.clean_text(v)


class StoreQuery(BaseModel, SafeStringMixin):
    """
    Listing parameters.
    `search` matches name OR address; when given, the discrete filters are ignored.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=60)
    email: Optional[str] = None
    address: Optional[str] = Field(None, min_length=1, max_length=400)
    search: Optional[str] = Field(None, min_length=1, max_length=100)
    owner_id: Optional[int] = Field(None, ge=1)
    sort_by: str = "name"
    sort_order: str = "asc"
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)

    @field_validator('search', 'name', 'address')
    @classmethod
    def clean_query(cls, v):
        return cls.validate_no_script(v)

    @field_validator('sort_by')
    @classmethod
    def check_sort_by(cls, v):
        return validate_sort_field(v, SORTABLE_FIELDS)

    @field_validator('sort_order')
    @classmethod
    def check_sort_order(cls, v):
        return validate_sort_order(v)


class OwnerBrief(BaseModel):
    id: int
    name: str
    email: str
    address: Optional[str] = None
    role: Role
    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class StoreAdminItem(BaseModel):
    """Full store view for admins"""
    id: int
    name: str
    email: str
    address: Optional[str] = None
    owner_id: int
    owner: Optional[OwnerBrief] = None
    average_rating: float
    total_ratings: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StorePublicItem(BaseModel):
    """Reduced store view; user_rating is the viewer's own rating, if any"""
    id: int
    name: str
    address: Optional[str] = None
    average_rating: float
    total_ratings: int
    user_rating: Optional[int] = None


class StoreListResponse(BaseModel):
    items: List[StoreAdminItem]
    pagination: Pagination


class PublicStoreListResponse(BaseModel):
    items: List[StorePublicItem]
    pagination: Pagination


class StoreRatingEntry(BaseModel):
    id: int
    rating: int
    created_at: Optional[datetime] = None
    user: UserBrief
    model_config = ConfigDict(from_attributes=True)


class StoreDetailResponse(StoreAdminItem):
    ratings: List[StoreRatingEntry] = []


class DashboardStoreSummary(BaseModel):
    id: int
    name: str
    email: str
    address: Optional[str] = None
    average_rating: float
    total_ratings: int


class StoreDashboardResponse(BaseModel):
    store: DashboardStoreSummary
    ratings: List[StoreRatingEntry]


class StoreOverview(BaseModel):
    total_stores: int
    total_ratings: int
