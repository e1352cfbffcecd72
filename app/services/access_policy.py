"""
Access policy for rating and store operations.

authorize() is a pure decision function: it never touches the database.
Callers look the resource up first (raising NotFoundError when it is
missing) and only then ask for a decision, so a missing resource is never
reported as forbidden.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from app.models.user import Role
from app.utils.exceptions import ForbiddenError

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    ADMIN_READ = "admin_read"  # global listings and stats
    ADMIN_MANAGE = "admin_manage"  # store/user create, update, delete
    RATING_MUTATE = "rating_mutate"  # update/delete a rating
    STORE_RATINGS_READ = "store_ratings_read"  # ratings/stats of one store
    USER_RATINGS_READ = "user_ratings_read"  # ratings written by one user


# Actions an admin is always allowed to perform
ADMIN_ACTIONS = frozenset({
    Action.ADMIN_READ,
    Action.ADMIN_MANAGE,
    Action.STORE_RATINGS_READ,
    Action.USER_RATINGS_READ,
})


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason)


def authorize(
    requester_id: Optional[int],
    requester_role: Optional[Role],
    action: Action,
    resource_owner_id: Optional[int] = None,
    store_owner_id: Optional[int] = None,
) -> Decision:
    """
    Decide whether a requester may perform an action.

    Args:
        requester_id: ID of the authenticated user (None for anonymous)
        requester_role: Role of the authenticated user
        action: What is being attempted
        resource_owner_id: User who owns the rating, or the target user for
            USER_RATINGS_READ
        store_owner_id: Owner of the store for STORE_RATINGS_READ

    Returns:
        Decision with a reason when denied
    """
    if requester_role == Role.ADMIN and action in ADMIN_ACTIONS:
        return Decision.allow()

    if action == Action.RATING_MUTATE:
        if requester_id is not None and requester_id == resource_owner_id:
            return Decision.allow()
        return Decision.deny("You can only modify your own ratings")

    if action == Action.STORE_RATINGS_READ:
        if requester_role == Role.STORE_OWNER and requester_id is not None and requester_id == store_owner_id:
            return Decision.allow()
        return Decision.deny("You can only view ratings for your own store")

    if action == Action.USER_RATINGS_READ:
        if requester_id is not None and requester_id == resource_owner_id:
            return Decision.allow()
        return Decision.deny("You can only view your own ratings")

    return Decision.deny("Admin access required")


def enforce(
    requester_id: Optional[int],
    requester_role: Optional[Role],
    action: Action,
    resource_owner_id: Optional[int] = None,
    store_owner_id: Optional[int] = None,
    entity: Optional[str] = None,
    entity_id=None,
) -> None:
    """Raise ForbiddenError when authorize() denies the action"""
    decision = authorize(requester_id, requester_role, action, resource_owner_id, store_owner_id)
    if not decision.allowed:
        logger.warning(
            f"Denied {action.value} for user {requester_id} on {entity or 'resource'} {entity_id}: {decision.reason}"
        )
        raise ForbiddenError(decision.reason, entity=entity, entity_id=entity_id)
