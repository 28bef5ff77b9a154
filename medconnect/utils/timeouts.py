"""
Opt-in wall-clock bounds for individual backend calls
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from medconnect.utils.error_handler import BackendError

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], seconds: Optional[float], operation: str) -> T:
    """Await with a timeout; None or 0 means no bound. Expiry raises BackendError."""
    if not seconds:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as e:
        raise BackendError(f"{operation} timed out after {seconds}s", e)
