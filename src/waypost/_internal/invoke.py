"""Invoke helpers — call sync or async handlers uniformly.

Handlers can be ``def`` or ``async def``. Any code that calls a
user-provided handler must handle both cases. This module provides a
single helper so the sync/async check lives in exactly one place.

Sync handlers are blocking by contract (they talk to databases and
services directly), so by default they run in a worker thread and the
event loop stays free for other requests.

Usage::

    from waypost._internal.invoke import invoke

    result = await invoke(handler, kwargs)
"""

import functools
import inspect
from typing import Any

import anyio.to_thread


def is_async_handler(handler: Any) -> bool:
    """True if calling *handler* returns an awaitable we should await on the loop."""
    target = handler
    while isinstance(target, functools.partial):
        target = target.func
    if inspect.iscoroutinefunction(target):
        return True
    call = getattr(target, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


async def invoke(handler: Any, kwargs: dict[str, Any], *, offload: bool = True) -> Any:
    """Call a handler with keyword arguments and await the result if needed.

    Works with both sync and async callables::

        # sync: runs in a worker thread when offload is on
        def get_user(user_id: int):
            return repo.load(user_id)

        # async: awaited on the event loop
        async def get_user(user_id: int):
            return await repo.load(user_id)
    """
    if offload and not is_async_handler(handler):
        result = await anyio.to_thread.run_sync(functools.partial(handler, **kwargs))
    else:
        result = handler(**kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
