import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from skysearch.schemas.flight_schemas import Airport

logger = logging.getLogger(__name__)

MIN_KEYWORD_LENGTH = 2
DEBOUNCE_SECONDS = 0.3


class AirportLookup:
    """
    Type-ahead airport search.

    Keystrokes are debounced, and only the most recently issued request may
    update ``results``/``error``: every call takes a new sequence number and a
    response whose number is no longer current is dropped. A newer call also
    cancels the previous pending task.
    """

    def __init__(self,
                 fetch: Callable[[str], Awaitable[List[Airport]]],
                 delay: float = DEBOUNCE_SECONDS,
                 min_length: int = MIN_KEYWORD_LENGTH):
        self._fetch = fetch
        self.delay = delay
        self.min_length = min_length

        self.results: List[Airport] = []
        self.error: Optional[str] = None
        self.is_loading = False

        self._seq = 0
        self._task: Optional[asyncio.Task] = None

    def submit(self, keyword: str) -> Optional[asyncio.Task]:
        """Schedule a lookup for the latest keystroke; must run inside an event loop."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.ensure_future(self.search(keyword))
        return self._task

    async def search(self, keyword: str) -> None:
        self._seq += 1
        seq = self._seq

        if len(keyword.strip()) < self.min_length:
            self.results = []
            self.error = None
            self.is_loading = False
            return

        self.is_loading = True
        await asyncio.sleep(self.delay)
        if seq != self._seq:
            return

        try:
            airports = await self._fetch(keyword.strip())
        except Exception as e:
            if seq != self._seq:
                return
            self.error = str(e) or "An error occurred"
            self.results = []
            self.is_loading = False
            return

        if seq != self._seq:
            logger.debug(f"Dropping stale airport results for '{keyword}'")
            return

        self.results = airports
        self.error = None
        self.is_loading = False

    def clear(self) -> None:
        self._seq += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.results = []
        self.error = None
        self.is_loading = False
