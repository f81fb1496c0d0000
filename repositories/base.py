"""
Base repository class for MongoDB access.

Repositories own one collection each and translate driver failures into
UnavailableError so no PyMongo internals leak past the data layer.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from pydantic import BaseModel
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError, PyMongoError

from errors import UnavailableError
from shared.logging import get_logger

log = get_logger(__name__)


class StaleWriteError(Exception):
    """A compare-and-set update lost to a concurrent writer.

    Internal signal for the service layer to re-read and retry; never
    surfaced to callers.
    """


def to_bson(value: Any) -> Any:
    """Dump pydantic models (and lists of them) into plain BSON-ready values."""
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, list):
        return [to_bson(v) for v in value]
    return value


class BaseRepository:
    """
    Base class for all repositories.

    Subclasses implement domain-specific data access and map raw documents
    to pydantic models internally.
    """

    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    @asynccontextmanager
    async def _store_errors(self, operation: str) -> AsyncIterator[None]:
        """Convert driver errors into UnavailableError, logging the context.

        DuplicateKeyError passes through untouched so callers can map it to
        a conflict.
        """
        try:
            yield
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            log.error(
                "store_operation_failed",
                collection=self._col.name,
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UnavailableError() from e
