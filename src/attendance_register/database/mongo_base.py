from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from ..core.exceptions import StoreError, StoreTimeout, ValidationError

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate pymongo failures into the domain's store errors."""
    try:
        yield
    except PyMongoError as e:
        if getattr(e, "timeout", False):
            logger.error(f"[STORE] {operation} timed out: {e}")
            raise StoreTimeout(f"{operation} timed out") from e
        logger.error(f"[STORE] {operation} failed: {e}", exc_info=True)
        raise StoreError(f"{operation} failed") from e


def to_object_id(value: str) -> ObjectId:
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid id {value!r}")


def ci_exact(value: str) -> Dict[str, Any]:
    """Case-insensitive whole-value match (the input is escaped, not a pattern)."""
    return {"$regex": f"^{re.escape(str(value).strip())}$", "$options": "i"}


def without_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in doc.items() if k != "_id"}
