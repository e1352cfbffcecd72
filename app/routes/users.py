"""
User Routes - user management and dashboard statistics
Everything except the own-profile endpoints requires the ADMIN role.
"""

from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.database import get_db
from app.utils.dependencies import get_current_user, require_roles
from app.models.user import User, Role
from app.schemas.auth import UserResponse, MessageResponse
from app.schemas.user import UserCreate, UserUpdate, PasswordChange, UserDetailResponse, DashboardStats
from app.services.user_service import UserService
from app.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api/users", tags=["Users"])

admin_only = require_roles(Role.ADMIN)


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Create a user with any role (e.g. a STORE_OWNER before creating their store)"""
    return UserService.create_user(db, user_data)


@router.get("/", response_model=List[UserResponse])
def list_users(
    name: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    address: Optional[str] = Query(None),
    role: Optional[Role] = Query(None),
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    return UserService.list_users(db, name=name, email=email, address=address, role=role)


@router.get("/stats", response_model=DashboardStats)
def get_dashboard_stats(
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """
    Admin dashboard numbers

    Returns:
    - Total users, stores and ratings
    - Global average rating (0 when there are no ratings)
    - Distribution of ratings (how many 1s ... 5s)
    - Number of users per role
    """
    return DashboardService.get_admin_stats(db)


@router.patch("/profile", response_model=UserResponse)
def update_profile(
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update your own name and address"""
    return UserService.update_user(db, current_user.id, user_data)


@router.patch("/change-password", response_model=MessageResponse)
def change_password(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService.change_password(db, current_user.id, password_data)


@router.get("/{user_id}", response_model=UserDetailResponse)
def get_user(
    user_id: int = Path(..., gt=0),
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """User details, with the owned store's average rating for store owners"""
    return UserService.get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_data: UserUpdate,
    user_id: int = Path(..., gt=0),
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    return UserService.update_user(db, user_id, user_data)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int = Path(..., gt=0),
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Delete a user together with their ratings and, for store owners, their store"""
    return UserService.delete_user(db, user_id)
