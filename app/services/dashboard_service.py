"""
Dashboard Service - global counts and rating distribution for the admin
dashboard and the store overview. Read-only; callers enforce access.
"""

from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Dict

from app.models.rating import Rating
from app.models.store import Store
from app.models.user import User, Role
from app.services.rating_service import empty_breakdown, round_average


class DashboardService:

    @staticmethod
    def get_rating_statistics(db: Session) -> Dict:
        """Total, average and 1-5 distribution over every rating"""
        total, rating_sum = db.query(func.count(Rating.id), func.sum(Rating.rating)).one()
        total = total or 0

        distribution = empty_breakdown()
        for value, count in db.query(Rating.rating, func.count(Rating.id)).group_by(Rating.rating).all():
            if value in distribution:
                distribution[value] = count

        return {
            "total_ratings": total,
            "average_rating": round_average(rating_sum or 0, total),
            "distribution": distribution,
        }

    @staticmethod
    def get_users_by_role(db: Session) -> Dict[str, int]:
        counts = {role.value: 0 for role in Role}
        for role, count in db.query(User.role, func.count(User.id)).group_by(User.role).all():
            counts[Role(role).value] = count
        return counts

    @staticmethod
    def get_store_overview(db: Session) -> Dict:
        return {
            "total_stores": db.query(func.count(Store.id)).scalar() or 0,
            "total_ratings": db.query(func.count(Rating.id)).scalar() or 0,
        }

    @staticmethod
    def get_admin_stats(db: Session) -> Dict:
        rating_stats = DashboardService.get_rating_statistics(db)
        users_by_role = DashboardService.get_users_by_role(db)

        return {
            "total_users": sum(users_by_role.values()),
            "total_stores": db.query(func.count(Store.id)).scalar() or 0,
            "total_ratings": rating_stats["total_ratings"],
            "average_rating": rating_stats["average_rating"],
            "rating_distribution": rating_stats["distribution"],
            "users_by_role": users_by_role,
        }
