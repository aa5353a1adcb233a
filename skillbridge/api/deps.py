# skillbridge/api/deps.py
"""Shared FastAPI dependencies and the domain error handler."""

import logging

from fastapi import Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from skillbridge.database import get_db
from skillbridge.errors import (
    AlreadyConnected,
    Forbidden,
    InvalidRating,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    SkillBridgeError,
    StorageFailure,
)
from skillbridge.repository import Repository, SqlRepository
from skillbridge.utils.security import get_current_user_id

logger = logging.getLogger(__name__)

__all__ = ["get_repository", "get_current_user_id", "skillbridge_error_handler"]

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    Forbidden: status.HTTP_403_FORBIDDEN,
    InvalidTransition: status.HTTP_409_CONFLICT,
    InvalidRequest: status.HTTP_400_BAD_REQUEST,
    AlreadyConnected: status.HTTP_409_CONFLICT,
    InvalidRating: status.HTTP_422_UNPROCESSABLE_ENTITY,
    StorageFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_repository(db: Session = Depends(get_db)) -> Repository:
    return SqlRepository(db)


def status_for(exc: SkillBridgeError) -> int:
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def skillbridge_error_handler(request: Request, exc: SkillBridgeError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=code, content=exc.to_dict())
