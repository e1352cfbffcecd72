"""
User Schemas - user management, profile changes and dashboard statistics
"""

from pydantic import Field, BaseModel, field_validator
from typing import Dict, Optional

from app.models.user import Role
from app.schemas.auth import UserRegister, UserResponse, ensure_password_strength
from app.schemas.validation import SafeStringMixin


class UserCreate(UserRegister):
    """Schema for admin-created users; any role may be assigned"""
    role: Role = Role.NORMAL_USER


class UserUpdate(BaseModel, SafeStringMixin):
    """Profile changes; email and role are not editable here"""
    name: Optional[str] = Field(None, min_length=2, max_length=60)
    address: Optional[str] = Field(None, max_length=400)

    @field_validator('name', 'address')
    @classmethod
    def clean_text_fields(cls, v):
        return cls.clean_text(v)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v):
        return ensure_password_strength(v)


class OwnedStoreSummary(BaseModel):
    id: int
    name: str
    average_rating: float
    total_ratings: int


class UserDetailResponse(UserResponse):
    owned_store: Optional[OwnedStoreSummary] = None


class DashboardStats(BaseModel):
    """Schema for the admin dashboard"""
    total_users: int
    total_stores: int
    total_ratings: int
    average_rating: float = Field(..., description="Average over every rating, 0 when none exist")
    rating_distribution: Dict[int, int]
    users_by_role: Dict[str, int]
