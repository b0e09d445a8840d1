"""EventSubscription: Reconnecting stream of decoded ledger events.

State machine::

    DISCONNECTED -> CONNECTING -> ACTIVE
         ^                          |
         +---- reconnect_delay -----+   (on LedgerConnectionError)

Retries use a fixed delay and are unbounded unless ``max_reconnects`` is
set. Events are not persisted, so nothing seen before a disconnect is
replayed by the subscription itself.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import TYPE_CHECKING

from .EventDecoder import LedgerEvent, decode_batch
from .LedgerClient import LedgerConnectionError

if TYPE_CHECKING:
    from .LedgerClient import LedgerClient

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 1.0


class SubscriptionState(Enum):
    """Lifecycle state of the subscription."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    ACTIVE = "active"


class SubscriptionExhaustedError(LedgerConnectionError):
    """Raised when max_reconnects consecutive reconnects have failed."""

    pass


class EventSubscription:
    """Live subscription to ledger events.

    .. code-block:: python

        subscription = EventSubscription(ledger)
        async for events in subscription:
            ...

    :ivar ledger: Ledger client providing the raw event stream.
    :ivar reconnect_delay: Seconds to wait before reconnecting.
    :ivar max_reconnects: Consecutive failed reconnects tolerated, None for unbounded.
    :ivar reconnects: Total number of reconnects so far.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        max_reconnects: int | None = None,
    ) -> None:
        self.ledger = ledger
        self.reconnect_delay = reconnect_delay
        self.max_reconnects = max_reconnects
        self.reconnects = 0
        self._state = SubscriptionState.DISCONNECTED
        self._consecutive_failures = 0

    @property
    def state(self) -> SubscriptionState:
        """Current lifecycle state."""
        return self._state

    def _set_state(self, state: SubscriptionState) -> None:
        if state != self._state:
            logger.debug(f"Subscription {self._state.value} -> {state.value}")
            self._state = state

    async def _disconnected(self, error: LedgerConnectionError) -> None:
        """Record a failure and wait before the next attempt.

        :raises SubscriptionExhaustedError: If the retry budget is spent.
        """
        self._set_state(SubscriptionState.DISCONNECTED)
        self._consecutive_failures += 1
        if (
            self.max_reconnects is not None
            and self._consecutive_failures > self.max_reconnects
        ):
            raise SubscriptionExhaustedError(
                f"Giving up after {self.max_reconnects} reconnects: {error}"
            ) from error

        logger.warning(
            f"Event subscription lost ({error}), reconnecting in "
            f"{self.reconnect_delay:.1f}s"
        )
        await asyncio.sleep(self.reconnect_delay)
        self.reconnects += 1

    async def __aiter__(self) -> AsyncIterator[list[LedgerEvent]]:
        """Yield decoded events, one list per raw batch, forever."""
        while True:
            self._set_state(SubscriptionState.CONNECTING)
            stream = self.ledger.subscribe_events()
            try:
                async for raw_batch in stream:
                    if self._state != SubscriptionState.ACTIVE:
                        self._set_state(SubscriptionState.ACTIVE)
                        self._consecutive_failures = 0
                        logger.info("Event subscription active")
                    yield decode_batch(raw_batch)
                # A stream that ends without error counts as a disconnect.
                error = LedgerConnectionError("Event stream closed")
            except LedgerConnectionError as e:
                error = e
            finally:
                await stream.aclose()

            await self._disconnected(error)
