"""
Store Service - store management, filtered/sorted/paginated listings and the
owner dashboard.

Listings come in two shapes selected once by the caller: AdminProjection
(full row with owner) and PublicProjection (reduced row with the viewer's own
rating). Aggregates are attached from RatingService for the current page only.
"""

from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from typing import Dict, List, Optional
import logging
import math

from app.models.rating import Rating
from app.models.store import Store
from app.models.user import User, Role
from app.schemas.store import StoreCreate, StoreQuery, StoreUpdate
from app.services.rating_service import RatingService
from app.utils.exceptions import ConflictError, InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "name": Store.name,
    "email": Store.email,
    "address": Store.address,
    "created_at": Store.created_at,
}


def _contains(column, value: str):
    # autoescape keeps % and _ in user input literal
    return column.icontains(value, autoescape=True)


def _rating_entry(rating: Rating) -> Dict:
    return {
        "id": rating.id,
        "rating": rating.rating,
        "created_at": rating.created_at,
        "user": {
            "id": rating.user.id,
            "name": rating.user.name,
            "email": rating.user.email,
        },
    }


class AdminProjection:
    """Full store view: owner details, no viewer-specific fields"""

    def __init__(self, db: Session):
        self.db = db

    def load_options(self):
        return [joinedload(Store.owner)]

    def shape(self, stores: List[Store]) -> List[Dict]:
        stats = RatingService.get_stats_by_store(self.db, [s.id for s in stores])
        return [self.shape_one(store, stats[store.id]) for store in stores]

    @staticmethod
    def shape_one(store: Store, stats: Dict) -> Dict:
        owner = store.owner
        return {
            "id": store.id,
            "name": store.name,
            "email": store.email,
            "address": store.address,
            "owner_id": store.owner_id,
            "owner": {
                "id": owner.id,
                "name": owner.name,
                "email": owner.email,
                "address": owner.address,
                "role": owner.role,
            } if owner else None,
            "average_rating": stats["average"],
            "total_ratings": stats["total"],
            "created_at": store.created_at,
            "updated_at": store.updated_at,
        }


class PublicProjection:
    """Reduced store view: no email or owner, plus the viewer's own rating"""

    def __init__(self, db: Session, viewer_id: Optional[int] = None):
        self.db = db
        self.viewer_id = viewer_id

    def load_options(self):
        return []

    def shape(self, stores: List[Store]) -> List[Dict]:
        store_ids = [s.id for s in stores]
        stats = RatingService.get_stats_by_store(self.db, store_ids)
        own = RatingService.get_viewer_ratings(self.db, self.viewer_id, store_ids) if self.viewer_id else {}

        return [
            {
                "id": store.id,
                "name": store.name,
                "address": store.address,
                "average_rating": stats[store.id]["average"],
                "total_ratings": stats[store.id]["total"],
                "user_rating": own.get(store.id),
            }
            for store in stores
        ]


class StoreService:
    """Service for store operations"""

    @staticmethod
    def _build_filters(query: StoreQuery, admin_filters: bool = True) -> list:
        """
        Build the WHERE predicate list.
        A search term is OR-matched on name and address and replaces the
        discrete filters.
        """
        if query.search:
            return [or_(_contains(Store.name, query.search), _contains(Store.address, query.search))]

        filters = []
        if query.name:
            filters.append(_contains(Store.name, query.name))
        if query.email and admin_filters:
            filters.append(_contains(Store.email, query.email))
        if query.address:
            filters.append(_contains(Store.address, query.address))
        if query.owner_id and admin_filters:
            filters.append(Store.owner_id == query.owner_id)
        return filters

    @staticmethod
    def _order_by(query: StoreQuery) -> list:
        column = SORT_COLUMNS.get(query.sort_by)
        if column is None:
            raise InvalidArgumentError(f"Cannot sort stores by '{query.sort_by}'", entity="store")
        primary = column.desc() if query.sort_order == "desc" else column.asc()
        tie_breaker = Store.id.desc() if query.sort_order == "desc" else Store.id.asc()
        return [primary, tie_breaker]

    @staticmethod
    def _page(db: Session, query: StoreQuery, projection, admin_filters: bool = True) -> Dict:
        """Run the filtered, ordered, windowed query and shape it with `projection`"""
        if query.page < 1 or not 1 <= query.limit <= 100:
            raise InvalidArgumentError("page must be >= 1 and limit between 1 and 100", entity="store")

        filters = StoreService._build_filters(query, admin_filters)
        skip = (query.page - 1) * query.limit

        stores = db.query(Store).options(*projection.load_options()).filter(
            *filters
        ).order_by(
            *StoreService._order_by(query)
        ).offset(skip).limit(query.limit).all()

        total = db.query(Store).filter(*filters).count()

        return {
            "items": projection.shape(stores),
            "pagination": {
                "page": query.page,
                "limit": query.limit,
                "total": total,
                "pages": math.ceil(total / query.limit),
            },
        }

    @staticmethod
    def list_stores(db: Session, query: StoreQuery) -> Dict:
        """Admin listing with owner details"""
        return StoreService._page(db, query, AdminProjection(db))

    @staticmethod
    def list_public_stores(db: Session, query: StoreQuery, viewer_id: Optional[int] = None) -> Dict:
        """
        Public listing for normal users.
        Store email is not exposed, so it is not filterable either.
        """
        return StoreService._page(db, query, PublicProjection(db, viewer_id), admin_filters=False)

    @staticmethod
    def _get_store_or_404(db: Session, store_id: int) -> Store:
        store = db.query(Store).options(joinedload(Store.owner)).filter(Store.id == store_id).first()
        if not store:
            raise NotFoundError("Store not found", entity="store", entity_id=store_id)
        return store

    @staticmethod
    def create_store(db: Session, store_data: StoreCreate) -> Dict:
        """
        Create a store for an existing user

        Raises:
            ConflictError: If the store email is taken or the owner already has a store
            NotFoundError: If the owner does not exist
            InvalidArgumentError: If the owner is an admin
        """
        if db.query(Store).filter(Store.email == store_data.email).first():
            raise ConflictError("Store with this email already exists", entity="store", entity_id=store_data.email)

        owner = db.query(User).filter(User.id == store_data.owner_id).first()
        if not owner:
            raise NotFoundError(
                f"Owner with ID {store_data.owner_id} not found",
                entity="user",
                entity_id=store_data.owner_id
            )

        if owner.owned_store is not None:
            raise ConflictError("This user already owns a store", entity="user", entity_id=owner.id)

        if owner.role == Role.ADMIN:
            raise InvalidArgumentError("An admin cannot own a store", entity="user", entity_id=owner.id)
        if owner.role == Role.NORMAL_USER:
            # promoted in the same commit as the store insert
            owner.role = Role.STORE_OWNER

        store = Store(
            name=store_data.name,
            email=store_data.email,
            address=store_data.address,
            owner_id=owner.id
        )
        db.add(store)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race against another create with the same email or owner
            db.rollback()
            raise ConflictError("Store email or owner already registered", entity="store", entity_id=store_data.email)
        db.refresh(store)

        logger.info(f"Store {store.id} '{store.name}' created for owner {owner.id}")
        return AdminProjection.shape_one(StoreService._get_store_or_404(db, store.id), RatingService.compute_stats([]))

    @staticmethod
    def get_store_by_id(db: Session, store_id: int) -> Dict:
        """Admin view of one store, including every rating with its rater"""
        store = StoreService._get_store_or_404(db, store_id)

        ratings = db.query(Rating).options(joinedload(Rating.user)).filter(
            Rating.store_id == store_id
        ).order_by(Rating.created_at.desc(), Rating.id.desc()).all()

        result = AdminProjection.shape_one(store, RatingService.compute_stats(ratings))
        result["ratings"] = [_rating_entry(r) for r in ratings]
        return result

    @staticmethod
    def update_store(db: Session, store_id: int, store_data: StoreUpdate) -> Dict:
        """
        Partially update a store

        Raises:
            NotFoundError: If the store does not exist
            ConflictError: If the new email belongs to another store
        """
        store = StoreService._get_store_or_404(db, store_id)
        changes = store_data.model_dump(exclude_unset=True)

        new_email = changes.get("email")
        if new_email and new_email != store.email:
            taken = db.query(Store).filter(Store.email == new_email, Store.id != store_id).first()
            if taken:
                raise ConflictError("Email already taken by another store", entity="store", entity_id=new_email)

        for field in ("name", "email"):
            if changes.get(field):
                setattr(store, field, changes[field])
        if "address" in changes:
            store.address = changes["address"]

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Email already taken by another store", entity="store", entity_id=new_email)

        logger.info(f"Store {store_id} updated: {', '.join(changes) or 'no changes'}")
        return StoreService.get_store_summary(db, store_id)

    @staticmethod
    def get_store_summary(db: Session, store_id: int) -> Dict:
        store = StoreService._get_store_or_404(db, store_id)
        return AdminProjection(db).shape([store])[0]

    @staticmethod
    def _delete_owner(db: Session, owner_id: int) -> None:
        owner = db.query(User).filter(User.id == owner_id).first()
        if owner is not None:
            db.delete(owner)
            db.flush()

    @staticmethod
    def delete_store(db: Session, store_id: int) -> Dict:
        """
        Delete a store, its ratings and its owner as one unit of work.
        Nothing is committed unless every step succeeds.

        Raises:
            NotFoundError: If the store does not exist
        """
        store = db.query(Store).filter(Store.id == store_id).first()
        if not store:
            raise NotFoundError("Store not found", entity="store", entity_id=store_id)
        owner_id = store.owner_id

        try:
            db.delete(store)  # ratings go with it
            db.flush()
            StoreService._delete_owner(db, owner_id)
            db.commit()
        except Exception:
            db.rollback()
            logger.error(f"Deleting store {store_id} failed, transaction rolled back")
            raise

        logger.info(f"Store {store_id} and owner {owner_id} deleted")
        return {"message": "Store and owner deleted successfully"}

    @staticmethod
    def get_store_dashboard(db: Session, owner_id: int) -> Dict:
        """
        Dashboard for a store owner: store summary plus every rating, newest first

        Raises:
            NotFoundError: If the user owns no store
        """
        store = db.query(Store).filter(Store.owner_id == owner_id).first()
        if not store:
            raise NotFoundError("Store not found", entity="store", entity_id=f"owner:{owner_id}")

        ratings = db.query(Rating).options(joinedload(Rating.user)).filter(
            Rating.store_id == store.id
        ).order_by(Rating.created_at.desc(), Rating.id.desc()).all()
        stats = RatingService.compute_stats(ratings)

        return {
            "store": {
                "id": store.id,
                "name": store.name,
                "email": store.email,
                "address": store.address,
                "average_rating": stats["average"],
                "total_ratings": stats["total"],
            },
            "ratings": [_rating_entry(r) for r in ratings],
        }
