import asyncio
import threading
from typing import Optional

from fastapi import Request

from core.errors import CanceledError

DISCONNECT_POLL_INTERVAL = 0.1


class CancelToken:
    """Cooperative cancellation flag passed down through every operation."""

    def __init__(self):
        self._event = threading.Event()
        self.reason = ""

    def cancel(self, reason: str = "canceled"):
        self.reason = reason
        self._event.set()

    @property
    def canceled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        return self._event.wait(timeout)

    def raise_if_canceled(self):
        if self._event.is_set():
            raise CanceledError(self.reason or "canceled")


def check(cancel: Optional[CancelToken]):
    if cancel is not None:
        cancel.raise_if_canceled()


async def request_cancel_token(request: Request):
    """FastAPI dependency: a token that fires when the client goes away.

    Sync handlers run in the threadpool, so the watcher keeps polling the
    connection on the event loop while the handler blocks.
    """
    token = CancelToken()

    async def watch():
        while not token.canceled:
            if await request.is_disconnected():
                token.cancel("client disconnected")
                return
            await asyncio.sleep(DISCONNECT_POLL_INTERVAL)

    watcher = asyncio.create_task(watch())
    try:
        yield token
    finally:
        watcher.cancel()
