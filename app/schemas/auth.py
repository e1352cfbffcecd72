from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from datetime import datetime
from typing import Optional
import re

from app.models.user import Role
from app.schemas.validation import SafeStringMixin


def ensure_password_strength(password: str) -> str:
    """Validate password complexity requirements."""
    if len(password) > 72:
        raise ValueError('Password cannot be longer than 72 characters')
    if not re.search(r'[A-Z]', password):
        raise ValueError('Password must contain uppercase letter')
    if not re.search(r'[a-z]', password):
        raise ValueError('Password must contain lowercase letter')
    if not re.search(r'[0-9]', password):
        raise ValueError('Password must contain digit')
    return password


# Schema for user registration
class UserRegister(BaseModel, SafeStringMixin):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2, max_length=60)
    address: Optional[str] = Field(None, max_length=400)

    # Password validation
    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return ensure_password_strength(v)

    @field_validator('name', 'address')
    @classmethod
    def clean_text_fields(cls, v):
        return cls.clean_text(v)

# Schema for user login
class UserLogin(BaseModel):
    email: EmailStr
    password: str

# Schema for user response
class UserResponse(BaseModel):  
    id: int
    email: str
    name: str
    address: Optional[str] = None
    role: Role
    is_active: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str
    expires_in: int
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
