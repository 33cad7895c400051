"""
Boundary between the services and the storage layer.

Every outbound storage call goes through `guarded()`, which bounds it with a
timeout and turns storage failures into `CatalogError`s:

- `CatalogError` passes through untouched
- `aiosqlite.IntegrityError` -> CONFLICT
- timeouts and any other storage error -> INTERNAL (logged with traceback)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

import aiosqlite

from songcatalog.errors import CatalogError, ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def guarded(call: Awaitable[T], *, timeout: float, failure: str) -> T:
    """
    Await a storage call with a timeout and uniform error mapping.

    Args:
        call: The coroutine to await.
        timeout: Seconds before the call is abandoned.
        failure: Message used for the INTERNAL error raised on failure.
    """
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except CatalogError:
        raise
    except asyncio.TimeoutError as e:
        logger.error("%s: storage call timed out after %.1fs", failure, timeout)
        raise CatalogError(ErrorKind.INTERNAL, failure) from e
    except aiosqlite.IntegrityError as e:
        logger.warning("%s: integrity error: %s", failure, e)
        raise CatalogError(ErrorKind.CONFLICT, "Resource conflict") from e
    except (aiosqlite.Error, RuntimeError, ValueError) as e:
        logger.exception("%s: %s", failure, e)
        raise CatalogError(ErrorKind.INTERNAL, failure) from e
