"""Delivery strategies for broadcast sources.

A delivery strategy decides *when* a listener callback runs relative to the
call that produced the item:

- SynchronousDelivery: Listeners run inline, inside ``add()``
- AsynchronousDelivery: Listeners run on a later turn of the event loop
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any


class Delivery(ABC):
    """Abstract strategy for invoking listener callbacks.

    Implementations must invoke callbacks in the order they were dispatched,
    which is what keeps every listener's view of a stream in publish order.
    """

    @abstractmethod
    def dispatch(self, callback: Callable[..., Any], *args: Any) -> None:
        """Invoke ``callback(*args)`` according to the strategy.

        Args:
            callback: Listener callback to invoke
            *args: Arguments passed to the callback
        """
        ...


class SynchronousDelivery(Delivery):
    """Invoke listeners immediately, within the publishing call.

    Characteristics:
    - Listeners observe an item before ``add()`` returns
    - Listener failures propagate to the publisher
    - Works without a running event loop

    Example:
        >>> source = BroadcastSource(SynchronousDelivery())
        >>> source.stream.listen(print)
        >>> source.add("hello")  # printed before add() returns
        hello
    """

    def dispatch(self, callback: Callable[..., Any], *args: Any) -> None:
        """Invoke the callback right away.

        Raises:
            Any exception raised by the callback propagates to the caller
        """
        callback(*args)


class AsynchronousDelivery(Delivery):
    """Invoke listeners on a later turn of the running event loop.

    Callbacks are scheduled with ``loop.call_soon``, which runs them in FIFO
    order, so listeners still observe items in publish order.

    Characteristics:
    - Publishing never runs listener code
    - Listener failures are reported to the loop's exception handler
    - Requires a running event loop at dispatch time
    """

    def dispatch(self, callback: Callable[..., Any], *args: Any) -> None:
        """Schedule the callback on the running loop.

        Raises:
            RuntimeError: If there is no running event loop
        """
        asyncio.get_running_loop().call_soon(callback, *args)
