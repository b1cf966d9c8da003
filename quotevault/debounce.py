"""Quiet-window debouncing for suggestion fetches."""
import asyncio
import logging
from typing import Optional, Set

from quotevault.suggestions import SuggestionAggregator

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.3


class DebounceScheduler:
    """
    Collapse bursts of query changes into one suggestion fetch.

    Each ``schedule`` call takes a new request token from the aggregator,
    so a fetch already in flight for an older query is ignored when it
    returns. The network call itself is never cancelled.
    """

    def __init__(self, aggregator: SuggestionAggregator, delay: float = DEFAULT_DELAY):
        self.aggregator = aggregator
        self.delay = delay
        self._timer: Optional[asyncio.TimerHandle] = None
        self._latest_token = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self, query: str):
        """Restart the quiet window for ``query``. Must run inside the event loop."""
        self._cancel_timer()
        self._latest_token = self.aggregator.next_token()

        if not query or not query.strip():
            self.aggregator.reset()
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire, query, self._latest_token)

    def _fire(self, query: str, token: int):
        self._timer = None
        logger.debug(f"Quiet window elapsed, fetching suggestions for {query!r}")
        task = asyncio.ensure_future(self.aggregator.fetch_suggestions(query, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def cancel(self):
        """Teardown: stop the pending timer and ignore in-flight results."""
        self._cancel_timer()
        self._latest_token = self.aggregator.next_token()
        self.aggregator.loading = False

    async def wait(self):
        """Wait for the quiet window and any fetches it started."""
        while self._timer is not None or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(self.delay / 10 or 0.001)
