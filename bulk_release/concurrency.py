"""Asyncio building blocks for the release scheduler.

- traverse_queue: run one task per graph node, each starting only after the
  tasks of its predecessors finished; fail fast on the first error.
- memoize_by: share a single in-flight task between concurrent callers that
  ask for the same key.
- queuefy: cap how many calls of a coroutine function run at once.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

T = TypeVar("T")


async def traverse_queue(
    queue: Sequence[str],
    prev: Mapping[str, Sequence[str]],
    cb: Callable[[str], Awaitable[Any]],
) -> None:
    """Run cb(name) for every node, respecting dependency order.

    Siblings without an ordering constraint run concurrently. A node's task
    starts only once the tasks of all its predecessors (prev[name]) have
    finished. Predecessors that are not part of the queue are ignored.

    On the first failure every outstanding task is cancelled and the
    original exception is re-raised.

    Args:
        queue: Node names in topological order.
        prev: Map of node name → names of the nodes it depends on.
        cb: Coroutine function run once per node.
    """
    tasks: dict[str, asyncio.Task[Any]] = {}

    async def visit(name: str, deps: list[asyncio.Task[Any]]) -> None:
        if deps:
            await asyncio.gather(*deps)
        await cb(name)

    for name in queue:
        deps = [tasks[p] for p in prev.get(name, ()) if p in tasks]
        tasks[name] = asyncio.ensure_future(visit(name, deps))

    if not tasks:
        return

    _, pending = await asyncio.wait(tasks.values(), return_when=asyncio.FIRST_EXCEPTION)
    failed = [task for task in tasks.values() if task.done() and not task.cancelled() and task.exception()]
    if not failed:
        return

    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)

    # A failed predecessor also fails its dependents; report the earliest one
    raise failed[0].exception()  # type: ignore[misc]


def memoize_by(
    fn: Callable[..., Awaitable[T]],
    key: Callable[..., Any] = lambda *args, **kwargs: args[0],
) -> Callable[..., Awaitable[T]]:
    """Deduplicate calls of a coroutine function by key.

    The first call for a key starts fn as a task; every later call with the
    same key (including concurrent ones) awaits that same task, so fn runs
    at most once per key. Failures are shared too.
    """
    cache: dict[Any, asyncio.Task[T]] = {}

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        k = key(*args, **kwargs)
        if k not in cache:
            cache[k] = asyncio.ensure_future(fn(*args, **kwargs))
        return await cache[k]

    return wrapper


def queuefy(fn: Callable[..., Awaitable[T]], concurrency: int = 1) -> Callable[..., Awaitable[T]]:
    """Limit how many calls of a coroutine function run at the same time.

    Extra calls wait their turn in FIFO order.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    semaphore = asyncio.Semaphore(concurrency)

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        async with semaphore:
            return await fn(*args, **kwargs)

    return wrapper
