import asyncio
from typing import Awaitable, Callable, Iterable, List, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def fan_out(func: Callable[[T], Awaitable[R]], items: Iterable[T]) -> List[R]:
    """Run ``func`` on every item concurrently; results follow input order.

    If any call fails, the remaining calls are cancelled and awaited before
    the first failure is re-raised, so nothing outlives the caller's scope.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(func(item)) for item in items]
    except BaseExceptionGroup as errors:
        raise errors.exceptions[0]
    return [task.result() for task in tasks]
