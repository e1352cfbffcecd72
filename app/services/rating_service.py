"""
Rating Service - Handle all rating-related business logic

One rating per (user, store) pair is guaranteed by the unique constraint on
the ratings table; create_rating maps its violation to ConflictError instead
of checking first and inserting second.
Aggregates are always recomputed from the current rating rows.
"""

from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Union
from datetime import datetime
import logging

from app.models.rating import Rating
from app.models.store import Store
from app.models.user import User, Role
from app.schemas.rating import RatingCreate, RatingUpdate
from app.services.access_policy import Action, enforce
from app.utils.exceptions import ConflictError, InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)

STAR_VALUES = (1, 2, 3, 4, 5)


def empty_breakdown() -> Dict[int, int]:
    return {star: 0 for star in STAR_VALUES}


def round_average(total: Union[int, float], count: int) -> float:
    """Mean rounded half-up to one decimal place, 0 when count is 0"""
    if not count:
        return 0
    mean = Decimal(str(total)) / Decimal(count)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class RatingService:
    """Service for store rating operations"""

    @staticmethod
    def compute_stats(ratings: Iterable) -> Dict:
        """
        Compute average, count and per-star breakdown for a set of ratings.

        Args:
            ratings: Rating rows (anything with a `rating` attribute) or plain ints

        Returns:
            {"average": float, "total": int, "breakdown": {1..5: count}}
        """
        values = [r if isinstance(r, int) else r.rating for r in ratings]

        breakdown = empty_breakdown()
        if not values:
            return {"average": 0, "total": 0, "breakdown": breakdown}

        for value in values:
            if value in breakdown:
                breakdown[value] += 1

        return {
            "average": round_average(sum(values), len(values)),
            "total": len(values),
            "breakdown": breakdown,
        }

    @staticmethod
    def validate_rating_value(value) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value not in STAR_VALUES:
            raise InvalidArgumentError("Rating must be an integer between 1 and 5", entity="rating")
        return value

    @staticmethod
    def _joined_query(db: Session):
        return db.query(Rating).options(
            joinedload(Rating.user),
            joinedload(Rating.store)
        )

    @staticmethod
    def _get_joined(db: Session, rating_id: int) -> Optional[Rating]:
        return RatingService._joined_query(db).filter(Rating.id == rating_id).first()

    @staticmethod
    def _get_owned_rating(db: Session, user_id: int, rating_id: int) -> Rating:
        """Load a rating and check it belongs to user_id (existence first, then ownership)"""
        rating = db.query(Rating).filter(Rating.id == rating_id).first()

        if not rating:
            raise NotFoundError(f"Rating with ID {rating_id} not found", entity="rating", entity_id=rating_id)

        enforce(
            user_id, None, Action.RATING_MUTATE,
            resource_owner_id=rating.user_id,
            entity="rating", entity_id=rating_id
        )
        return rating

    @staticmethod
    def _get_store_or_404(db: Session, store_id: int) -> Store:
        store = db.query(Store).filter(Store.id == store_id).first()
        if not store:
            raise NotFoundError(f"Store with ID {store_id} not found", entity="store", entity_id=store_id)
        return store

    @staticmethod
    def create_rating(db: Session, user_id: int, rating_data: RatingCreate) -> Rating:
        """
        Create a rating for a store

        Args:
            db: Database session
            user_id: ID of the rating user
            rating_data: RatingCreate schema with store_id and rating value

        Returns:
            Rating with user and store loaded

        Raises:
            NotFoundError: If the store does not exist
            ConflictError: If the user already rated this store
        """
        value = RatingService.validate_rating_value(rating_data.rating)
        store_id = rating_data.store_id
        RatingService._get_store_or_404(db, store_id)

        new_rating = Rating(user_id=user_id, store_id=store_id, rating=value)
        db.add(new_rating)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            # The store may have been deleted since the check above
            if db.query(Store.id).filter(Store.id == store_id).first() is None:
                raise NotFoundError(f"Store with ID {store_id} not found", entity="store", entity_id=store_id)
            logger.warning(f"Duplicate rating rejected: user {user_id} already rated store {store_id}")
            raise ConflictError(
                "You have already rated this store. Use update rating instead.",
                entity="rating",
                entity_id=f"{user_id}:{store_id}"
            )
        db.refresh(new_rating)

        logger.info(f"User {user_id} rated store {store_id} with {value}")
        return RatingService._get_joined(db, new_rating.id)

    @staticmethod
    def update_rating(db: Session, user_id: int, rating_id: int, rating_data: RatingUpdate) -> Rating:
        """
        Update an existing rating owned by user_id

        Raises:
            NotFoundError: If the rating does not exist
            ForbiddenError: If the rating belongs to another user
        """
        value = RatingService.validate_rating_value(rating_data.rating)
        rating = RatingService._get_owned_rating(db, user_id, rating_id)

        rating.rating = value
        rating.updated_at = datetime.utcnow()
        db.commit()

        logger.info(f"User {user_id} updated rating {rating_id} to {value}")
        return RatingService._get_joined(db, rating_id)

    @staticmethod
    def delete_rating(db: Session, user_id: int, rating_id: int) -> None:
        """
        Delete a rating owned by user_id

        Raises:
            NotFoundError: If the rating does not exist
            ForbiddenError: If the rating belongs to another user
        """
        rating = RatingService._get_owned_rating(db, user_id, rating_id)

        db.delete(rating)
        db.commit()
        logger.info(f"User {user_id} deleted rating {rating_id}")

    @staticmethod
    def get_store_ratings(
        db: Session,
        store_id: int,
        requester_id: int,
        requester_role: Role
    ) -> List[Rating]:
        """All ratings of a store, newest first (admin or the store's owner)"""
        store = RatingService._get_store_or_404(db, store_id)
        enforce(
            requester_id, requester_role, Action.STORE_RATINGS_READ,
            store_owner_id=store.owner_id,
            entity="store", entity_id=store_id
        )

        return RatingService._joined_query(db).filter(
            Rating.store_id == store_id
        ).order_by(
            Rating.created_at.desc(), Rating.id.desc()
        ).all()

    @staticmethod
    def get_user_ratings(
        db: Session,
        target_user_id: int,
        requester_id: int,
        requester_role: Role
    ) -> List[Rating]:
        """All ratings written by a user, newest first (admin or the user)"""
        user = db.query(User).filter(User.id == target_user_id).first()
        if not user:
            raise NotFoundError(f"User with ID {target_user_id} not found", entity="user", entity_id=target_user_id)

        enforce(
            requester_id, requester_role, Action.USER_RATINGS_READ,
            resource_owner_id=target_user_id,
            entity="user", entity_id=target_user_id
        )

        return RatingService._joined_query(db).filter(
            Rating.user_id == target_user_id
        ).order_by(
            Rating.created_at.desc(), Rating.id.desc()
        ).all()

    @staticmethod
    def get_store_rating_stats(
        db: Session,
        store_id: int,
        requester_id: int,
        requester_role: Role
    ) -> Dict:
        """
        Rating statistics for a store (admin or the store's owner)

        Returns:
            Dictionary with store_id, store_name, average_rating,
            total_ratings and rating_breakdown
        """
        store = RatingService._get_store_or_404(db, store_id)
        enforce(
            requester_id, requester_role, Action.STORE_RATINGS_READ,
            store_owner_id=store.owner_id,
            entity="store", entity_id=store_id
        )

        values = [value for (value,) in db.query(Rating.rating).filter(Rating.store_id == store_id).all()]
        stats = RatingService.compute_stats(values)

        return {
            "store_id": store.id,
            "store_name": store.name,
            "average_rating": stats["average"],
            "total_ratings": stats["total"],
            "rating_breakdown": stats["breakdown"],
        }

    @staticmethod
    def get_user_rating_for_store(db: Session, user_id: int, store_id: int) -> Optional[Rating]:
        """
        Get a user's rating for a store, or None if they have not rated it.
        Read-only lookup, no authorization required.
        """
        return RatingService._joined_query(db).filter(
            Rating.user_id == user_id,
            Rating.store_id == store_id
        ).first()

    @staticmethod
    def get_all_ratings(db: Session) -> List[Rating]:
        """Every rating in the system, newest first (admin)"""
        return RatingService._joined_query(db).order_by(
            Rating.created_at.desc(), Rating.id.desc()
        ).all()

    @staticmethod
    def get_stats_by_store(db: Session, store_ids: List[int]) -> Dict[int, Dict]:
        """
        Aggregates for many stores from a single query.
        Stores without ratings get zero-valued stats.
        """
        grouped: Dict[int, List[int]] = {store_id: [] for store_id in store_ids}
        if store_ids:
            rows = db.query(Rating.store_id, Rating.rating).filter(Rating.store_id.in_(store_ids)).all()
            for store_id, value in rows:
                grouped[store_id].append(value)

        return {store_id: RatingService.compute_stats(values) for store_id, values in grouped.items()}

    @staticmethod
    def get_viewer_ratings(db: Session, viewer_id: int, store_ids: List[int]) -> Dict[int, int]:
        """Map store_id -> the viewer's own rating value for the given stores"""
        if not store_ids:
            return {}
        rows = db.query(Rating.store_id, Rating.rating).filter(
            Rating.user_id == viewer_id,
            Rating.store_id.in_(store_ids)
        ).all()
        return {store_id: value for store_id, value in rows}
