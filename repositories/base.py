"""Shared plumbing for the MongoDB repositories."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

from repositories.errors import StoreError, StoreErrorKind


@asynccontextmanager
async def translate_errors(operation: str) -> AsyncIterator[None]:
    """Re-raise pymongo failures inside the block as :class:`StoreError`.

    ``ConnectionFailure`` covers ``AutoReconnect`` and
    ``ServerSelectionTimeoutError`` as well.
    """
    try:
        yield
    except DuplicateKeyError as exc:
        raise StoreError(
            StoreErrorKind.UNIQUE_VIOLATION, str(exc), operation=operation
        ) from exc
    except ConnectionFailure as exc:
        raise StoreError(StoreErrorKind.CONNECTION, str(exc), operation=operation) from exc
    except PyMongoError as exc:
        raise StoreError(StoreErrorKind.UNKNOWN, str(exc), operation=operation) from exc
