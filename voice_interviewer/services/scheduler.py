"""Named single-shot timers bound to the asyncio event loop."""

import asyncio
from typing import Callable, Dict, List, Optional

from ..utils.logging import get_logger


class TimerRegistry:
    """Owns every timer of one session.

    Each name maps to at most one pending ``TimerHandle``. Arming a name
    always cancels whatever was pending under it, and a timer removes
    itself from the registry right before its callback runs.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: Dict[str, asyncio.TimerHandle] = {}
        self.logger = get_logger("scheduler")

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def arm(self, name: str, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        """Schedule ``callback`` after ``delay`` seconds under ``name``.

        Args:
            name: Timer name, unique within the registry
            delay: Delay in seconds, negative values fire on the next iteration
            callback: Zero-argument callable run on the event loop

        Returns:
            The underlying timer handle
        """
        self.clear(name)

        def _fire() -> None:
            if self._handles.get(name) is handle:
                del self._handles[name]
            callback()

        handle = self.loop.call_later(max(delay, 0.0), _fire)
        self._handles[name] = handle
        self.logger.debug(f"Armed timer '{name}' for {delay:.2f}s")
        return handle

    def clear(self, name: str) -> bool:
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        self.logger.debug(f"Cleared timer '{name}'")
        return True

    def clear_all(self) -> int:
        """Cancel every pending timer and return how many were pending."""
        count = len(self._handles)
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        if count:
            self.logger.debug(f"Cleared {count} pending timers")
        return count

    def is_armed(self, name: str) -> bool:
        return name in self._handles

    @property
    def armed(self) -> List[str]:
        return sorted(self._handles)

    def __len__(self) -> int:
        return len(self._handles)
