# mpdnotify
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Cover art plumbing shared by the session client and the GNTP sink.

  sniff_content_type()  — MPD never reports a MIME type, so look at the bytes
  shrink_artwork()      — re-encode oversized covers as JPEG (Pillow)
  ArtworkCache          — LRU of recently published covers
  ArtworkServer         — tiny aiohttp server for icon_mode = "httpurl"
"""

import asyncio
import hashlib
import logging
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO

from aiohttp import web
from PIL import Image

from .models import Artwork

log = logging.getLogger(__name__)

PNG_MAGIC = b"\x89PNG"
MAX_ARTWORK_SIZE = 500 * 1024  # Growl chokes on multi-megabyte resources
MAX_ARTWORK_DIMENSION = 512
ARTWORK_CACHE_SIZE = 32

# Shared thread pool for CPU-bound image processing
_artwork_executor = ThreadPoolExecutor(max_workers=1)


def sniff_content_type(data: bytes) -> str:
    """PNG if the PNG magic is present, otherwise assume JPEG."""
    if len(data) > 8 and data[:4] == PNG_MAGIC:
        return "image/png"
    return "image/jpeg"


def artwork_digest(artwork: Artwork) -> str:
    return hashlib.sha1(artwork.data).hexdigest()


def _process_image(artwork: Artwork) -> Artwork:
    """Downscale and re-encode as JPEG.  Runs in a thread pool (CPU-bound)."""
    try:
        image = Image.open(BytesIO(artwork.data))
        if image.mode in ("RGBA", "LA", "P"):
            image = image.convert("RGB")
        image.thumbnail((MAX_ARTWORK_DIMENSION, MAX_ARTWORK_DIMENSION))

        buf = BytesIO()
        image.save(buf, "JPEG", quality=85)
        if buf.tell() > MAX_ARTWORK_SIZE:
            buf = BytesIO()
            image.save(buf, "JPEG", quality=60)
        return Artwork(buf.getvalue(), "image/jpeg")
    except Exception as e:
        log.warning("Error processing artwork, sending original: %s", e)
        return artwork


async def shrink_artwork(artwork: Artwork) -> Artwork:
    """Return *artwork* unchanged if small enough, else a re-encoded JPEG."""
    if len(artwork.data) <= MAX_ARTWORK_SIZE:
        return artwork
    log.debug("Artwork is %d bytes, re-encoding", len(artwork.data))
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_artwork_executor, _process_image, artwork)


class ArtworkCache:
    """Simple LRU cache for artwork (digest -> Artwork)."""

    def __init__(self, max_size=ARTWORK_CACHE_SIZE):
        self.max_size = max_size
        self._cache: OrderedDict[str, Artwork] = OrderedDict()

    def get(self, key: str) -> Artwork | None:
        if key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]
        return None

    def put(self, key: str, artwork: Artwork):
        if key in self._cache:
            self._cache.move_to_end(key)
        else:
            if len(self._cache) >= self.max_size:
                self._cache.popitem(last=False)
            self._cache[key] = artwork

    def __contains__(self, key: str):
        return key in self._cache

    def __len__(self):
        return len(self._cache)


class ArtworkServer:
    """Serves published covers at http://<host>:<port>/artwork/<sha1>.<ext>.

    The GNTP receiver fetches the icon itself, so the URL has to be reachable
    from the receiver's machine; advertise a routable host name.
    """

    def __init__(self, advertise_host: str, port: int, bind_host: str = "0.0.0.0"):
        self.advertise_host = advertise_host
        self.port = port
        self.bind_host = bind_host
        self.cache = ArtworkCache()
        self._runner: web.AppRunner | None = None

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/artwork/{name}", self._handle_artwork)
        return app

    async def start(self):
        self._runner = web.AppRunner(self.make_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.bind_host, self.port)
        await site.start()
        log.info("Artwork server on port %d (advertised as %s)",
                 self.port, self.advertise_host)

    async def stop(self):
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    def publish(self, artwork: Artwork) -> str:
        """Cache *artwork* and return the URL the receiver should fetch."""
        digest = artwork_digest(artwork)
        self.cache.put(digest, artwork)
        return f"http://{self.advertise_host}:{self.port}/artwork/{digest}.{artwork.extension}"

    async def _handle_artwork(self, request: web.Request) -> web.Response:
        digest = request.match_info["name"].split(".", 1)[0]
        artwork = self.cache.get(digest)
        if artwork is None:
            raise web.HTTPNotFound()
        return web.Response(body=artwork.data, content_type=artwork.content_type)
