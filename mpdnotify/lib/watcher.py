# mpdnotify
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Watcher — MPD change notifications on a dedicated idle connection.

MPD's ``idle`` blocks the connection it runs on, so the watcher keeps its own
client next to the request/response Session.  Changed subsystems come out of
next_event() one name at a time; errors go to a separate queue that a
background drain task empties for the whole life of the watcher.

The drain task is the only task a watcher owns.  close() cancels it and
waits for it, so a closed watcher never leaves anything running.  A watcher
cannot be reopened; open a new one.

    async with await Watcher.open("localhost", 6600) as watcher:
        while (subsystem := await watcher.next_event()) is not None:
            ...
"""

import asyncio
import logging
from collections import deque

import mpd
from mpd.asyncio import MPDClient

from .errors import AuthenticationError, WatcherError

logger = logging.getLogger(__name__)

DEFAULT_SUBSYSTEMS = ("player", "mixer")

_TRANSPORT_ERRORS = (OSError, EOFError, asyncio.TimeoutError, mpd.ConnectionError)


class Watcher:

    def __init__(self, client: MPDClient, address: str, subsystems=DEFAULT_SUBSYSTEMS):
        self._client = client
        self.address = address
        self.subsystems = tuple(subsystems)
        self._idle = client.idle(self.subsystems)
        self._pending: deque[str] = deque()
        self._errors: asyncio.Queue = asyncio.Queue()
        self._channel_closed = False
        self.closed = False
        self.errors_seen = 0
        self._drain_task = asyncio.create_task(
            self._drain(), name=f"watcher-drain-{address}")

    @classmethod
    async def open(cls, host: str, port: int, subsystems=DEFAULT_SUBSYSTEMS,
                   timeout: float = 10, password: str = "") -> "Watcher":
        address = f"{host}:{port}"
        client = MPDClient()
        try:
            await asyncio.wait_for(client.connect(host, port), timeout)
            if password:
                await asyncio.wait_for(client.password(password), timeout)
        except mpd.CommandError as e:
            client.disconnect()
            raise AuthenticationError(f"MPD at {address} rejected the password: {e}") from e
        except _TRANSPORT_ERRORS as e:
            client.disconnect()
            raise WatcherError(f"failed to create watcher for {address}: {e}") from e
        except BaseException:
            client.disconnect()
            raise
        logger.debug("Watcher connected to %s (subsystems: %s)",
                     address, ", ".join(subsystems))
        return cls(client, address, subsystems)

    @property
    def drain_running(self) -> bool:
        return not self._drain_task.done()

    def _report(self, error: Exception):
        self._errors.put_nowait(error)

    async def next_event(self) -> str | None:
        """Next changed subsystem, or None once the event channel is closed."""
        while not self._pending:
            if self.closed or self._channel_closed:
                return None
            try:
                changes = await self._idle.__anext__()
            except StopAsyncIteration:
                self._channel_closed = True
                self._report(WatcherError("watcher event channel closed"))
                return None
            except _TRANSPORT_ERRORS as e:
                self._channel_closed = True
                self._report(WatcherError(f"watcher connection lost: {e}"))
                return None
            self._pending.extend(changes)
        return self._pending.popleft()

    async def _drain(self):
        while True:
            error = await self._errors.get()
            self.errors_seen += 1
            logger.debug("⚠️  Watcher error: %s", error)

    async def close(self):
        if self.closed:
            return
        self.closed = True

        self._drain_task.cancel()
        try:
            await self._drain_task
        except asyncio.CancelledError:
            pass
        # Whatever the drain did not get to before cancellation
        while not self._errors.empty():
            self.errors_seen += 1
            logger.debug("⚠️  Watcher error: %s", self._errors.get_nowait())

        try:
            await self._idle.aclose()
        except (RuntimeError, mpd.MPDError, OSError) as e:
            logger.debug("Error closing idle stream on %s: %s", self.address, e)
        try:
            self._client.disconnect()
        except Exception as e:
            logger.debug("Error closing watcher connection %s: %s", self.address, e)
        logger.debug("Watcher on %s closed", self.address)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
