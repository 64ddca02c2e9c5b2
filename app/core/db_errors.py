"""
Translate database failures into HTTP errors.

Unique / foreign-key violations become 409 so the caller can tell a
conflict apart from a validation error; everything else is a 500 with
the details kept in the server log.
"""

import logging
from typing import NoReturn

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger("db")


def raise_for_db_error(exc: Exception, context: str) -> NoReturn:
    logger.error("[%s] %s", context, exc)

    if isinstance(exc, HTTPException):
        raise exc

    if isinstance(exc, IntegrityError):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Duplicate entry or related records conflict",
        ) from exc

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Unexpected error, check server log",
    ) from exc
