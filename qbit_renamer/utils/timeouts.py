"""
Caller-level time bounds for whole operations.
"""

import asyncio
from typing import Awaitable, TypeVar

from qbit_renamer.exceptions import OperationTimeoutError

T = TypeVar("T")


async def run_with_timeout(
    awaitable: Awaitable[T], timeout: float, operation: str
) -> T:
    """
    Awaits an operation, cancelling it once `timeout` seconds have passed.

    Raises:
        OperationTimeoutError: If the bound is exceeded.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise OperationTimeoutError(
            f"{operation} timed out after {timeout:g}s"
        ) from e
