"""Timeout-bounded invocation and one-shot error channels.

Caveat: a call that loses the timeout race is *not* cancelled. The breaker
stops waiting for it, keeps a reference until it finishes and then discards
its outcome. Protected functions holding resources that must be released
promptly (for example network connections) need their own cancellation.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

from failfast.circuit_breaker.exceptions import InvocationTimeoutError

T = TypeVar("T")
P = ParamSpec("P")

_detached_tasks: set[asyncio.Task[Any]] = set()


def _forget_detached(task: asyncio.Task[Any]) -> None:
    _detached_tasks.discard(task)
    if not task.cancelled():
        # Marks a late exception as retrieved.
        task.exception()


def _detach(task: asyncio.Task[Any]) -> None:
    _detached_tasks.add(task)
    task.add_done_callback(_forget_detached)


_channel_tasks: set[asyncio.Task[Any]] = set()


def _forget_channel_task(task: asyncio.Task[Any]) -> None:
    _channel_tasks.discard(task)
    if not task.cancelled():
        task.exception()


def detached_task_count() -> int:
    """Return how many timed-out calls are still running in the background."""
    return len(_detached_tasks)


async def call_with_timeout(
    func: Callable[P, Awaitable[T]],
    timeout: float,
    *args: P.args,
    **kwargs: P.kwargs,
) -> T:
    """Await ``func`` but give up after ``timeout`` seconds.

    Args:
        func: Async callable to invoke.
        timeout: Bound in seconds. ``0`` awaits ``func`` inline with no bound.
        *args: Positional arguments forwarded to ``func``.
        **kwargs: Keyword arguments forwarded to ``func``.

    Returns:
        The result of ``func`` when it finishes within the bound.

    Raises:
        InvocationTimeoutError: When the bound elapses first.
        Exception: Whatever ``func`` raised, unchanged.
    """
    if timeout == 0:
        return await func(*args, **kwargs)

    async def _invoke() -> T:
        return await func(*args, **kwargs)

    task: asyncio.Task[T] = asyncio.create_task(_invoke())
    try:
        done, _pending = await asyncio.wait({task}, timeout=timeout)
    except asyncio.CancelledError:
        _detach(task)
        raise

    if task in done:
        return task.result()

    _detach(task)
    raise InvocationTimeoutError(timeout)


class ErrorChannel:
    """One-shot channel over a background breaker call.

    Iterating yields the call's exception once and then stops. A successful
    call yields nothing. Waiting on the channel never cancels the call, and
    dropping the channel unread neither loses the call nor logs its error.
    """

    def __init__(self, task: asyncio.Task[Any]) -> None:
        self._task = task
        self._drained = False
        _channel_tasks.add(task)
        task.add_done_callback(_forget_channel_task)

    @property
    def task(self) -> asyncio.Task[Any]:
        return self._task

    def done(self) -> bool:
        return self._task.done()

    async def receive(self) -> Exception | None:
        """Wait for the call and return its exception, or ``None``.

        Only the first receive delivers the exception; later ones return
        ``None`` like a read from a closed channel.
        """
        try:
            await asyncio.shield(self._task)
        except Exception as exc:
            if self._drained:
                return None
            self._drained = True
            return exc
        self._drained = True
        return None

    def __aiter__(self) -> AsyncIterator[Exception]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Exception]:
        error = await self.receive()
        if error is not None:
            yield error
