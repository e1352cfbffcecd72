"""
Store Routes - admin store management, public listing and owner dashboard
"""

from fastapi import APIRouter, Depends, Query, Path, status
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import Optional

from app.database import get_db
from app.utils.dependencies import get_optional_user, require_roles
from app.utils.exceptions import InvalidArgumentError
from app.models.user import User, Role
from app.schemas.auth import MessageResponse
from app.schemas.store import (
    StoreCreate,
    StoreUpdate,
    StoreQuery,
    StoreAdminItem,
    StoreDetailResponse,
    StoreListResponse,
    PublicStoreListResponse,
    StoreDashboardResponse,
    StoreOverview,
)
from app.services.store_service import StoreService
from app.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api/stores", tags=["Stores"])

admin_only = require_roles(Role.ADMIN)
store_owner = require_roles(Role.STORE_OWNER)


def store_query_params(
    name: Optional[str] = Query(None, description="Filter by store name"),
    email: Optional[str] = Query(None, description="Filter by store email (admin listing only)"),
    address: Optional[str] = Query(None, description="Filter by store address"),
    search: Optional[str] = Query(None, description="Match name or address; overrides the other filters"),
    owner_id: Optional[int] = Query(None, description="Filter by owner ID (admin listing only)"),
    sort_by: str = Query("name", description="name, email, address or created_at"),
    sort_order: str = Query("asc", description="asc or desc"),
    page: int = Query(1, description="Page number, from 1"),
    limit: int = Query(10, description="Items per page, 1-100"),
) -> StoreQuery:
    """Collect listing parameters; malformed values are rejected with 400"""
    try:
        return StoreQuery(
            name=name,
            email=email,
            address=address,
            search=search,
            owner_id=owner_id,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
    except ValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidArgumentError(f"Invalid listing parameters: {messages}", entity="store")


# ==================== PUBLIC ====================

@router.get("/public", response_model=PublicStoreListResponse)
def get_public_stores(
    query: StoreQuery = Depends(store_query_params),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """
    Store listing for normal users

    No email or owner details. When called with a valid token, each store
    carries `user_rating`: the caller's own rating, or null.
    """
    return StoreService.list_public_stores(db, query, viewer.id if viewer else None)


# ==================== STORE OWNER ====================

@router.get("/dashboard/my-store", response_model=StoreDashboardResponse)
def get_store_dashboard(
    current_user: User = Depends(store_owner),
    db: Session = Depends(get_db)
):
    """Your store's average rating plus every rating received, newest first"""
    return StoreService.get_store_dashboard(db, current_user.id)


# ==================== ADMIN ====================

@router.post("/", response_model=StoreAdminItem, status_code=status.HTTP_201_CREATED)
def create_store(
    store_data: StoreCreate,
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """
    Create a store for an existing user

    - 409 if the store email is already registered, or the owner already has a store
    - 404 if the owner does not exist
    """
    return StoreService.create_store(db, store_data)


@router.get("/", response_model=StoreListResponse)
def get_all_stores(
    query: StoreQuery = Depends(store_query_params),
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Full store listing with owners (admin only)"""
    return StoreService.list_stores(db, query)


@router.get("/stats/overview", response_model=StoreOverview)
def get_store_overview(
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    return DashboardService.get_store_overview(db)


@router.get("/{store_id}", response_model=StoreDetailResponse)
def get_store(
    store_id: int = Path(..., gt=0),
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    return StoreService.get_store_by_id(db, store_id)


@router.patch("/{store_id}", response_model=StoreAdminItem)
def update_store(
    store_data: StoreUpdate,
    store_id: int = Path(..., gt=0),
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Update name, email or address; 409 if the email belongs to another store"""
    return StoreService.update_store(db, store_id, store_data)


@router.delete("/{store_id}", response_model=MessageResponse)
def delete_store(
    store_id: int = Path(..., gt=0),
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """
    Delete a store together with its ratings and its owner account

    ⚠️ WARNING: This action cannot be undone!
    """
    return StoreService.delete_store(db, store_id)
