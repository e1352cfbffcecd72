"""
User Service - admin user management and self-service profile changes
"""

from sqlalchemy.orm import Session, joinedload
from typing import Dict, List, Optional
import logging

from app.models.user import User, Role
from app.schemas.user import UserCreate, UserUpdate, PasswordChange
from app.services.auth_service import AuthService
from app.services.rating_service import RatingService
from app.utils.exceptions import InvalidArgumentError, NotFoundError
from app.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)


class UserService:
    """Service for user management operations"""

    @staticmethod
    def create_user(db: Session, user_data: UserCreate) -> User:
        """Create a user with any role; raises ConflictError on duplicate email"""
        return AuthService.register_user(db, user_data, role=user_data.role)

    @staticmethod
    def list_users(
        db: Session,
        name: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
        role: Optional[Role] = None
    ) -> List[User]:
        """Users matching case-insensitive substring filters, newest first"""
        query = db.query(User)

        if name:
            query = query.filter(User.name.icontains(name, autoescape=True))
        if email:
            query = query.filter(User.email.icontains(email, autoescape=True))
        if address:
            query = query.filter(User.address.icontains(address, autoescape=True))
        if role:
            query = query.filter(User.role == role)

        return query.order_by(User.created_at.desc(), User.id.desc()).all()

    @staticmethod
    def get_user(db: Session, user_id: int) -> Dict:
        """
        Get a user with a summary of the store they own, if any

        Raises:
            NotFoundError: If the user does not exist
        """
        user = db.query(User).options(joinedload(User.owned_store)).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found", entity="user", entity_id=user_id)

        owned_store = None
        if user.owned_store is not None:
            stats = RatingService.get_stats_by_store(db, [user.owned_store.id])[user.owned_store.id]
            owned_store = {
                "id": user.owned_store.id,
                "name": user.owned_store.name,
                "average_rating": stats["average"],
                "total_ratings": stats["total"],
            }

        return {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "address": user.address,
            "role": user.role,
            "is_active": user.is_active,
            "created_at": user.created_at,
            "owned_store": owned_store,
        }

    @staticmethod
    def _get_user_or_404(db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found", entity="user", entity_id=user_id)
        return user

    @staticmethod
    def update_user(db: Session, user_id: int, user_data: UserUpdate) -> User:
        """
        Change a user's name and/or address (own profile, or any user for admins)

        Raises:
            NotFoundError: If the user does not exist
        """
        user = UserService._get_user_or_404(db, user_id)
        changes = user_data.model_dump(exclude_unset=True)

        if changes.get("name"):
            user.name = changes["name"]
        if "address" in changes:
            user.address = changes["address"]

        db.commit()
        db.refresh(user)
        logger.info(f"User {user_id} updated: {', '.join(changes) or 'no changes'}")
        return user

    @staticmethod
    def change_password(db: Session, user_id: int, password_data: PasswordChange) -> Dict:
        """
        Replace the password after checking the current one

        Raises:
            NotFoundError: If the user does not exist
            InvalidArgumentError: If the current password is wrong
        """
        user = UserService._get_user_or_404(db, user_id)

        if not verify_password(password_data.current_password, user.password_hash):
            logger.warning(f"Password change for user {user_id} rejected: wrong current password")
            raise InvalidArgumentError("Current password is incorrect", entity="user", entity_id=user_id)

        user.password_hash = hash_password(password_data.new_password)
        db.commit()
        logger.info(f"User {user_id} changed their password")
        return {"message": "Password changed successfully"}

    @staticmethod
    def delete_user(db: Session, user_id: int) -> Dict:
        """
        Delete a user; their ratings and owned store (with its ratings) go too

        Raises:
            NotFoundError: If the user does not exist
        """
        user = UserService._get_user_or_404(db, user_id)

        try:
            db.delete(user)
            db.commit()
        except Exception:
            db.rollback()
            logger.error(f"Deleting user {user_id} failed, transaction rolled back")
            raise

        logger.info(f"User {user_id} deleted")
        return {"message": "User deleted successfully"}
