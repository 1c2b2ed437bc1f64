# mpdnotify
# SPDX-License-Identifier: GPL-3.0-or-later

"""
GNTP notification sink.

Registers two notification types with a Growl-compatible receiver and sends
song/state notifications with optional cover art.  Nothing in here is ever
fatal: if registration fails the sink disables itself and the monitor keeps
running console-only; send failures are logged at DEBUG and dropped.

The gntp library talks blocking sockets, so every call runs in a small
thread pool and is awaited.  The supervisor still sees one notification at
a time, in order.

Icon delivery modes (GNTPConfig.icon_mode):
    binary   — raw image bytes as a GNTP resource (default)
    dataurl  — data:<mime>;base64,... in the icon header
    fileurl  — cover written to the cache dir, file:// URL
    httpurl  — cover published by ArtworkServer, http:// URL
"""

import asyncio
import base64
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import gntp.errors
import gntp.notifier

from .artwork import ArtworkServer, artwork_digest, shrink_artwork
from .config import GNTPConfig
from .errors import NotificationError
from .formatter import Notification
from .models import Artwork

logger = logging.getLogger(__name__)

APPLICATION_NAME = "MPD Monitor"
NOTIFICATION_TYPES = {
    "song_change": "Song Changed",
    "player_state": "Player State",
}
SOCKET_TIMEOUT = 10
URL_SCHEMES = ("http", "https", "file", "data")

_gntp_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gntp")


def _cache_dir() -> Path:
    xdg = os.environ.get("XDG_CACHE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".cache"
    return base / "mpdnotify" / "artwork"


class MPDGrowlNotifier(gntp.notifier.GrowlNotifier):
    """GrowlNotifier that knows display names and data: URLs."""

    def _checkIcon(self, data):
        # True → send as URL header, False → attach as binary resource
        if isinstance(data, bytes):
            return False
        return data.split(":", 1)[0].lower() in URL_SCHEMES

    def register_hook(self, packet):
        for notice in packet.notifications:
            name = notice.get("Notification-Name")
            if name in NOTIFICATION_TYPES:
                notice["Notification-Display-Name"] = NOTIFICATION_TYPES[name]


def data_url(artwork: Artwork) -> str:
    encoded = base64.b64encode(artwork.data).decode("ascii")
    return f"data:{artwork.content_type};base64,{encoded}"


def write_file_url(artwork: Artwork, directory: Path | None = None) -> str:
    directory = directory or _cache_dir()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{artwork_digest(artwork)}.{artwork.extension}"
    if not path.exists():
        path.write_bytes(artwork.data)
    return path.resolve().as_uri()


class GNTPSink:
    """The notification sink handed to the supervisor."""

    def __init__(self, config: GNTPConfig, artwork_host: str = "localhost",
                 growl: gntp.notifier.GrowlNotifier | None = None,
                 cache_dir: Path | None = None):
        self.config = config
        self.icon_mode = config.icon_mode
        self.enabled = False
        self._cache_dir = cache_dir
        self._growl = growl or MPDGrowlNotifier(
            applicationName=APPLICATION_NAME,
            notifications=list(NOTIFICATION_TYPES),
            defaultNotifications=list(NOTIFICATION_TYPES),
            hostname=config.host,
            port=config.port,
            password=config.password or None,
        )
        self._growl.socketTimeout = SOCKET_TIMEOUT
        self._artwork_server: ArtworkServer | None = None
        if self.icon_mode == "httpurl":
            self._artwork_server = ArtworkServer(artwork_host, config.artwork_port)

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_gntp_executor, lambda: func(*args, **kwargs))

    async def start(self) -> bool:
        """Register with the receiver.  Returns whether notifications are on."""
        try:
            result = await self._run(self._growl.register)
            if result is not True:
                raise NotificationError(f"registration refused: {result}")
        except (gntp.errors.BaseError, NotificationError, OSError) as e:
            logger.debug("⚠️  Failed to register with GNTP: %s", e)
            logger.warning("⚠️  GNTP/Growl not available - notifications disabled")
            self.enabled = False
            return False

        if self._artwork_server:
            try:
                await self._artwork_server.start()
            except OSError as e:
                logger.warning("⚠️  Artwork server failed (%s), sending icons inline", e)
                self._artwork_server = None
                self.icon_mode = "binary"

        self.enabled = True
        return True

    async def stop(self):
        if self._artwork_server:
            await self._artwork_server.stop()
            self._artwork_server = None
        self.enabled = False

    def _encode_icon(self, artwork: Artwork):
        if self.icon_mode == "dataurl":
            return data_url(artwork)
        if self.icon_mode == "fileurl":
            return write_file_url(artwork, self._cache_dir)
        if self.icon_mode == "httpurl" and self._artwork_server:
            return self._artwork_server.publish(artwork)
        return artwork.data

    async def notify(self, notification: Notification, artwork: Artwork | None = None) -> bool:
        """Send one notification.  Returns True if the receiver accepted it."""
        if not self.enabled:
            return False
        try:
            icon = None
            if artwork is not None:
                icon = self._encode_icon(await shrink_artwork(artwork))
            result = await self._run(
                self._growl.notify,
                noteType=notification.event,
                title=notification.title,
                description=notification.body,
                icon=icon,
            )
            if result is not True:
                raise NotificationError(f"receiver answered {result}")
        except Exception as e:
            logger.debug("⚠️  Failed to send notification: %s", e)
            return False
        return True
