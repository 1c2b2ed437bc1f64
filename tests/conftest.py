import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio

sys.path.insert(0, str(Path(__file__).parent.parent))

from mpdnotify.lib.config import Config, GNTPConfig, MPDConfig
from mpdnotify.lib.models import PlaybackStatus, TrackInfo

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32


def make_status(state="play", **kwargs) -> PlaybackStatus:
    values = dict(song="2", playlistlength="12", elapsed="62.5",
                  audio="44100:16:2", bitrate="320")
    values.update(kwargs)
    return PlaybackStatus(state=state, **values)


def make_track(file="Radiohead/OK Computer/02 Paranoid Android.flac", **kwargs) -> TrackInfo:
    values = dict(title="Paranoid Android", artist="Radiohead",
                  album="OK Computer", track="2", duration="383.0")
    values.update(kwargs)
    return TrackInfo(file=file, **values)


async def wait_until(predicate, timeout=2.0):
    """Poll *predicate* until it is true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not reached in time")
        await asyncio.sleep(0.005)


class FakeSession:
    """Stands in for lib.session.Session."""

    def __init__(self, status=None, track=None, artwork=None):
        self.status_value = status or make_status()
        self.track_value = track or make_track()
        self.artwork = artwork
        self.ping_error = None
        self.status_error = None
        self.pings = 0
        self.status_calls = 0
        self.artwork_requests = []
        self.closed = False

    async def ping(self):
        self.pings += 1
        if self.ping_error:
            raise self.ping_error

    async def status(self):
        self.status_calls += 1
        if self.status_error:
            raise self.status_error
        return self.status_value

    async def current_track(self):
        return self.track_value

    async def fetch_artwork(self, uri):
        self.artwork_requests.append(uri)
        return self.artwork

    def close(self):
        self.closed = True


class FakeWatcher:
    """Stands in for lib.watcher.Watcher.  Push events with emit()/end()."""

    CLOSED = object()

    def __init__(self, events=()):
        self._queue: asyncio.Queue = asyncio.Queue()
        self.delivered = []
        self.closed = False
        for event in events:
            self.emit(event)

    def emit(self, subsystem):
        self._queue.put_nowait(subsystem)

    def end(self):
        self._queue.put_nowait(self.CLOSED)

    async def next_event(self):
        if self.closed:
            return None
        item = await self._queue.get()
        if item is self.CLOSED:
            return None
        self.delivered.append(item)
        return item

    async def close(self):
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()


class FakeSink:
    def __init__(self, registers=True, fail_notify=False):
        self.registers = registers
        self.fail_notify = fail_notify
        self.enabled = False
        self.icon_mode = "binary"
        self.sent = []
        self.notify_calls = 0
        self.stopped = False

    async def start(self):
        self.enabled = self.registers
        return self.enabled

    async def stop(self):
        self.stopped = True

    async def notify(self, notification, artwork=None):
        self.notify_calls += 1
        if self.fail_notify:
            raise RuntimeError("receiver went away")
        self.sent.append((notification, artwork))
        return True


class FakeConsole:
    def __init__(self):
        self.playing = []
        self.states = []
        self.banners = 0

    def banner(self):
        self.banners += 1

    def now_playing(self, track, status):
        self.playing.append((track, status))

    def state(self, state):
        self.states.append(state)


@pytest.fixture
def config():
    return Config(mpd=MPDConfig(host="mpd.test", port=6600, timeout=1),
                  gntp=GNTPConfig(host="growl.test"))


@pytest.fixture
def console():
    return FakeConsole()


class SilentMPD:
    """A TCP server that greets like MPD (optionally) and never answers."""

    def __init__(self, greet=True):
        self.greet = greet
        self.open_connections = 0
        self.accepted = 0
        self.server = None
        self._writers = []

    async def _handle(self, reader, writer):
        self.accepted += 1
        self._writers.append(writer)
        self.open_connections += 1
        try:
            if self.greet:
                writer.write(b"OK MPD 0.23.5\n")
                await writer.drain()
            while await reader.read(1024):
                pass
        except ConnectionError:
            pass
        finally:
            self.open_connections -= 1
            writer.close()

    async def start(self):
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        return self.server.sockets[0].getsockname()[1]

    async def stop(self):
        for writer in self._writers:
            writer.close()
        self.server.close()
        await self.server.wait_closed()


@pytest_asyncio.fixture
async def silent_mpd():
    server = SilentMPD()
    port = await server.start()
    yield server, port
    await server.stop()


@pytest_asyncio.fixture
async def mute_mpd():
    server = SilentMPD(greet=False)
    port = await server.start()
    yield server, port
    await server.stop()
