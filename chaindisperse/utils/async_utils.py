import asyncio
from typing import Awaitable, Optional, TypeVar

from chaindisperse.exceptions import NetworkFailure

T = TypeVar('T')


class RequestFence:
    """
    Monotonic request fencing for asynchronous results.

    Every request takes a token from ``issue``; a result may only be applied
    if its token is still the latest one issued. In-flight calls are not
    cancelled, their results are discarded on arrival.
    """
    def __init__(self):
        self._sequence = 0

    def issue(self) -> int:
        self._sequence += 1
        return self._sequence

    def invalidate(self) -> None:
        """Discard every request issued so far."""
        self._sequence += 1

    def is_current(self, token: int) -> bool:
        return token == self._sequence

    @property
    def latest(self) -> int:
        return self._sequence


async def with_timeout(awaitable: Awaitable[T], timeout: Optional[float], action: str) -> T:
    """Await with an optional timeout, raising NetworkFailure on expiry."""
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise NetworkFailure(f'{action} timed out after {timeout} seconds.') from e
