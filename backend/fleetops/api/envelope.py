from __future__ import annotations

import logging
from typing import Callable

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from fleetops.core.errors import ErrorCode, ErrorDetail, ServiceError


logger = logging.getLogger(__name__)


def run_service(db: Session, key: str, out: type[BaseModel] | None, call: Callable, *args, **kwargs) -> dict:
    """Run a write operation and wrap the result as ``{key: entity, errors: []}``.

    Business failures come back as ``{key: None, errors: [...]}`` with the
    transaction rolled back; anything else propagates.
    """
    try:
        result = call(*args, **kwargs)
    except ServiceError as exc:
        errors = exc.errors
    except (IntegrityError, StaleDataError) as exc:
        logger.warning("%s write conflicted: %s", key, exc.__class__.__name__)
        errors = [ErrorDetail(message="The record was changed by another request, try again", code=ErrorCode.CONFLICT)]
    else:
        if out is None:
            entity = result
        elif isinstance(result, list):
            entity = [out.model_validate(item) for item in result]
        else:
            entity = out.model_validate(result)
        return {key: entity, "errors": []}

    db.rollback()
    logger.warning("%s rejected: %s", key, [e.code for e in errors])
    return {key: None, "errors": [e.as_dict() for e in errors]}
