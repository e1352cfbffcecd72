"""
Domain errors raised by the service layer.

They subclass HTTPException so the handler registered in app.main renders
them directly; each one also keeps the entity kind and id it refers to.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class ServiceError(HTTPException):
    """Base class for errors raised by the service layer"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, entity: Optional[str] = None, entity_id: Any = None):
        super().__init__(status_code=self.status_code, detail=detail)
        self.entity = entity
        self.entity_id = entity_id


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class InvalidArgumentError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
