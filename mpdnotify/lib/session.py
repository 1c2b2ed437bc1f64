# mpdnotify
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Session — the request/response connection to MPD.

Owns exactly one python-mpd2 asyncio client.  Every call waits for MPD's
answer (bounded by the configured timeout) and never retries; reconnect
policy belongs to the supervisor.  Transport failures surface as
SessionError so the supervisor can classify them as transient.
"""

import asyncio
import logging

import mpd
from mpd.asyncio import MPDClient

from .artwork import sniff_content_type
from .errors import AuthenticationError, SessionError
from .models import Artwork, PlaybackStatus, TrackInfo

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (OSError, EOFError, asyncio.TimeoutError, mpd.ConnectionError)


class Session:
    """One live MPD connection.  Create with ``await Session.connect(...)``."""

    def __init__(self, client: MPDClient, address: str, timeout: float):
        self._client = client
        self.address = address
        self.timeout = timeout
        self.closed = False

    @classmethod
    async def connect(cls, host: str, port: int, timeout: float = 10,
                      password: str = "") -> "Session":
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
            raise SessionError(f"failed to connect to MPD at {address}: connection error: {e}") from e
        except BaseException:
            client.disconnect()
            raise
        logger.debug("Connected to MPD %s (protocol %s)", address, client.mpd_version)
        return cls(client, address, timeout)

    async def _call(self, command: str, *args):
        if self.closed:
            raise SessionError(f"connection closed, cannot send {command}")
        try:
            return await asyncio.wait_for(getattr(self._client, command)(*args), self.timeout)
        except _TRANSPORT_ERRORS as e:
            raise SessionError(f"connection lost during {command}: {str(e) or type(e).__name__}") from e

    async def ping(self):
        await self._call("ping")

    async def status(self) -> PlaybackStatus:
        return PlaybackStatus.from_mpd(await self._call("status"))

    async def current_track(self) -> TrackInfo:
        return TrackInfo.from_mpd(await self._call("currentsong"))

    async def _binary(self, command: str, uri: str) -> bytes:
        try:
            result = await self._call(command, uri)
        except mpd.CommandError as e:
            # ACK [50@0] {albumart} No file exists
            logger.debug("%s %s: %s", command, uri, e)
            return b""
        if not result:
            return b""
        return result.get("binary", b"")

    async def fetch_artwork(self, uri: str) -> Artwork | None:
        """Embedded picture first, then cover.{jpg,png} next to the file.

        Best effort: anything short of a picture returns None.
        """
        if not uri:
            return None
        for command in ("readpicture", "albumart"):
            try:
                data = await self._binary(command, uri)
            except (SessionError, mpd.MPDError) as e:
                logger.debug("Artwork lookup (%s) failed for %s: %s", command, uri, e)
                return None
            if data:
                return Artwork(data, sniff_content_type(data))
        return None

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            self._client.disconnect()
        except Exception as e:
            logger.debug("Error closing MPD connection %s: %s", self.address, e)
