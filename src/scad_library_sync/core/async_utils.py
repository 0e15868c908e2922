"""Async utilities for running blocking HTTP and disk calls off the event loop."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Every remote list/fetch and every filesystem write in the sync engine
    goes through here, which makes each of them a suspension point.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        content = await run_sync(client.fetch_content, profile, path)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
