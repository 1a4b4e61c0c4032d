"""
Cancellable settle-delay timer for cooperative (asyncio) recomputation.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Union

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[None, Awaitable[None]]]


class Debouncer:
    """
    Runs *callback* once, ``delay_seconds`` after the most recent :meth:`trigger`.

    Every trigger cancels the pending run, so rapid successive mutations
    collapse into a single recomputation and two runs for the same
    debouncer never overlap.
    """

    def __init__(self, *, name: str, delay_seconds: float, callback: Callback) -> None:
        self.name = name
        self._delay_seconds = max(0.0, delay_seconds)
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self) -> None:
        """
        (Re)start the delay.  Must be called from inside a running event loop.
        """

        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"debounce:{self.name}")

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """
        Wait for the pending run, if any, to finish.
        """

        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _run(self) -> None:
        await asyncio.sleep(self._delay_seconds)
        logger.debug("Debounce fired name=%s", self.name)
        result = self._callback()
        if inspect.isawaitable(result):
            await result
