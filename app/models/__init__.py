"""
Import all models to ensure they are registered with SQLAlchemy
"""
from app.models.user import User, Role
from app.models.store import Store
from app.models.rating import Rating

__all__ = [
    "User",
    "Role",
    "Store",
    "Rating"
]
