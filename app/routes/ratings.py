"""
Rating Routes - API endpoints for the store rating system
"""

from fastapi import APIRouter, Depends, status, Path
from sqlalchemy.orm import Session
from typing import List, Optional

from app.database import get_db
from app.utils.dependencies import get_current_user, require_roles
from app.models.user import User, Role
from app.schemas.rating import (
    RatingCreate,
    RatingUpdate,
    RatingResponse,
    RatingStatistics,
    StoreRatingStats,
)
from app.services.rating_service import RatingService
from app.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api/ratings", tags=["Ratings"])

normal_user = require_roles(Role.NORMAL_USER)
admin_only = require_roles(Role.ADMIN)
admin_or_owner = require_roles(Role.ADMIN, Role.STORE_OWNER)


# ==================== RATING CRUD ENDPOINTS ====================

@router.post("/", response_model=RatingResponse, status_code=status.HTTP_201_CREATED)
def create_rating(
    rating_data: RatingCreate,
    current_user: User = Depends(normal_user),
    db: Session = Depends(get_db)
):
    """
    Rate a store

    - **store_id**: Store to rate (required)
    - **rating**: 1 to 5 (required)

    Returns 409 if you already rated this store; use PATCH to change it.
    """
    return RatingService.create_rating(db, current_user.id, rating_data)


@router.patch("/{rating_id}", response_model=RatingResponse)
def update_rating(
    rating_data: RatingUpdate,
    rating_id: int = Path(..., description="Rating ID to update", gt=0),
    current_user: User = Depends(normal_user),
    db: Session = Depends(get_db)
):
    """Change the value of one of your ratings"""
    return RatingService.update_rating(db, current_user.id, rating_id, rating_data)


@router.delete("/{rating_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rating(
    rating_id: int = Path(..., description="Rating ID to delete", gt=0),
    current_user: User = Depends(normal_user),
    db: Session = Depends(get_db)
):
    """
    Delete a rating by ID

    Only the user who created the rating can delete it.
    """
    RatingService.delete_rating(db, current_user.id, rating_id)
    return None


# ==================== ADMIN ENDPOINTS ====================

@router.get("/", response_model=List[RatingResponse])
def get_all_ratings(
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Every rating, newest first (admin only)"""
    return RatingService.get_all_ratings(db)


@router.get("/stats", response_model=RatingStatistics)
def get_rating_statistics(
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Global total, average and 1-5 distribution (admin only)"""
    return DashboardService.get_rating_statistics(db)


# ==================== STORE-SCOPED ENDPOINTS ====================

@router.get("/store/{store_id}", response_model=List[RatingResponse])
def get_store_ratings(
    store_id: int = Path(..., gt=0),
    current_user: User = Depends(admin_or_owner),
    db: Session = Depends(get_db)
):
    """Ratings of a store (admin, or the owner of that store)"""
    return RatingService.get_store_ratings(db, store_id, current_user.id, current_user.role)


@router.get("/store/{store_id}/stats", response_model=StoreRatingStats)
def get_store_rating_stats(
    store_id: int = Path(..., gt=0),
    current_user: User = Depends(admin_or_owner),
    db: Session = Depends(get_db)
):
    """
    Rating statistics for a store

    Returns average (one decimal), total and the number of ratings per star.
    """
    return RatingService.get_store_rating_stats(db, store_id, current_user.id, current_user.role)


@router.get("/store/{store_id}/me", response_model=Optional[RatingResponse])
def get_my_rating_for_store(
    store_id: int = Path(..., gt=0),
    current_user: User = Depends(normal_user),
    db: Session = Depends(get_db)
):
    """Your rating for a store, or null if you have not rated it"""
    return RatingService.get_user_rating_for_store(db, current_user.id, store_id)


# ==================== USER-SCOPED ENDPOINTS ====================

@router.get("/user/me", response_model=List[RatingResponse])
def get_my_ratings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """All ratings by the current user, newest first"""
    return RatingService.get_user_ratings(db, current_user.id, current_user.id, current_user.role)


@router.get("/user/{user_id}", response_model=List[RatingResponse])
def get_user_ratings(
    user_id: int = Path(..., gt=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Ratings written by a user (admin, or that user)"""
    return RatingService.get_user_ratings(db, user_id, current_user.id, current_user.role)


@router.get("/user/{user_id}/store/{store_id}", response_model=Optional[RatingResponse])
def get_user_rating_for_store(
    user_id: int = Path(..., gt=0),
    store_id: int = Path(..., gt=0),
    db: Session = Depends(get_db)
):
    """
    A user's rating for a store, or null

    Public read: no authentication required.
    """
    return RatingService.get_user_rating_for_store(db, user_id, store_id)
