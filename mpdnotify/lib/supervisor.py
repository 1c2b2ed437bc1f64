# mpdnotify
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Supervisor — the monitor's control loop.

    CONNECTING ──▶ WATCHING ──▶ TRANSIENT_FAILURE ──▶ CONNECTING ...
         │                              │
         └──────────▶ FATAL_EXIT ◀──────┘       (SHUTDOWN on SIGINT/SIGTERM)

A connect attempt = open the request Session, ping it, then open the
Watcher on its own connection.  Both connections come up together or the
attempt fails as a whole, so a refused idle connection uses up attempts
like any other connect failure.  The startup attempt is made once; later
reconnects get up to MAX_CONNECT_ATTEMPTS attempts (linear backoff) and
running out of attempts is fatal.

One watch cycle = resync with one status check on the fresh connections,
then race the next subsystem event against a 30 s idle timer (→ ping) and
the shutdown signal.  Any transport failure ends the cycle; the watcher and
its drain task are closed before anything else happens, then after a fixed
2 s pause the supervisor reconnects.

Everything runs on one task.  Status checks are strictly sequential, so
notifications go out in event order.  The StateTracker belongs to the
supervisor and survives reconnects.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass

from . import watchdog
from .config import Config
from .console import Console
from .errors import SessionError, WatcherError, is_transient
from .formatter import Notification, song_notification, state_notification
from .models import PLAY, Artwork
from .session import Session
from .tracker import StateTracker, Transition
from .watcher import Watcher

logger = logging.getLogger(__name__)

WATCH_SUBSYSTEMS = ("player", "mixer")
# Library rescans fire these constantly and MPD's state is inconsistent
# while they run; never check status on them.
IGNORED_SUBSYSTEMS = frozenset({"database", "update"})

IDLE_PING_INTERVAL = 30     # seconds without events before a liveness ping
RECONNECT_DELAY = 2         # seconds after a watch cycle ends abnormally
MAX_CONNECT_ATTEMPTS = 5

EXIT_OK = 0
EXIT_FATAL = 1


class State(enum.Enum):
    CONNECTING = "connecting"
    WATCHING = "watching"
    TRANSIENT_FAILURE = "transient_failure"
    FATAL_EXIT = "fatal_exit"
    SHUTDOWN = "shutdown"


def reconnect_backoff(attempt: int) -> float:
    """Delay after failed connect attempt *attempt* (1-based): 1 s, 2 s, 3 s..."""
    return float(max(attempt, 0))


@dataclass
class Connected:
    session: Session
    watcher: Watcher
    attempts: int


@dataclass
class ExhaustedRetries:
    attempts: int
    error: Exception | None


class Supervisor:

    def __init__(self, config: Config, sink=None, console: Console | None = None, *,
                 connect=Session.connect, open_watcher=Watcher.open,
                 backoff=reconnect_backoff,
                 idle_interval: float = IDLE_PING_INTERVAL,
                 reconnect_delay: float = RECONNECT_DELAY,
                 max_attempts: int = MAX_CONNECT_ATTEMPTS):
        self.config = config
        self.sink = sink
        self.console = console or Console()
        self.tracker = StateTracker()
        self.session: Session | None = None
        self._watcher: Watcher | None = None   # opened, not yet handed to watch_once()
        self.state = State.CONNECTING
        self.idle_interval = idle_interval
        self.reconnect_delay = reconnect_delay
        self.max_attempts = max_attempts
        self.reconnects = 0
        self._connect = connect
        self._open_watcher = open_watcher
        self._backoff = backoff
        self._shutdown = asyncio.Event()
        self._running = False

    # ── State bookkeeping ──

    def _set_state(self, state: State):
        if state is not self.state:
            logger.debug("State %s → %s", self.state.value, state.value)
        self.state = state
        watchdog.status(f"{state.value} {self.config.mpd_address}")

    def request_shutdown(self):
        self._shutdown.set()

    @property
    def notifications_enabled(self) -> bool:
        return self.sink is not None and self.sink.enabled

    async def _pause(self, delay: float) -> bool:
        """Sleep *delay* seconds.  Returns True if shutdown was requested."""
        if delay <= 0:
            await asyncio.sleep(0)
            return self._shutdown.is_set()
        try:
            await asyncio.wait_for(self._shutdown.wait(), delay)
        except asyncio.TimeoutError:
            pass
        return self._shutdown.is_set()

    async def _close_connections(self):
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            await watcher.close()
        if self.session is not None:
            self.session.close()
            self.session = None

    # ── CONNECTING ──

    async def _connect_once(self) -> tuple[Session, Watcher]:
        """One attempt: session, ping, watcher.  Nothing stays open on failure."""
        mpd = self.config.mpd
        session = await self._connect(mpd.host, mpd.port, mpd.timeout, mpd.password)
        try:
            await session.ping()
            watcher = await self._open_watcher(
                mpd.host, mpd.port, WATCH_SUBSYSTEMS, mpd.timeout, mpd.password)
        except BaseException:
            session.close()
            raise
        return session, watcher

    async def connect_with_retry(self) -> Connected | ExhaustedRetries:
        """Replace both connections.  Non-transient failures propagate."""
        await self._close_connections()
        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            watchdog.heartbeat()
            try:
                session, watcher = await self._connect_once()
            except Exception as e:
                if not is_transient(e):
                    raise
                last_error = e
                logger.debug("🔄 Reconnect attempt %d/%d failed: %s",
                             attempt, self.max_attempts, e)
                if attempt < self.max_attempts:
                    if await self._pause(self._backoff(attempt)):
                        break
                continue
            logger.debug("✅ Successfully reconnected on attempt %d", attempt)
            return Connected(session, watcher, attempt)
        return ExhaustedRetries(self.max_attempts, last_error)

    # ── WATCHING ──

    async def watch_once(self, watcher: Watcher) -> State:
        """One watch cycle on *watcher*, which is closed on the way out.

        Returns SHUTDOWN, raises on anything else.
        """
        async with watcher:
            self._set_state(State.WATCHING)
            await self._checked_status()
            return await self._watch_events(watcher)

    async def _watch_events(self, watcher) -> State:
        stop = asyncio.create_task(self._shutdown.wait())
        event = None
        try:
            while True:
                if event is None:
                    event = asyncio.create_task(watcher.next_event())
                done, _ = await asyncio.wait(
                    {event, stop}, timeout=self.idle_interval,
                    return_when=asyncio.FIRST_COMPLETED)

                if stop in done:
                    return State.SHUTDOWN

                if not done:
                    # Quiet for a while; make sure MPD is still there
                    try:
                        await self.session.ping()
                    except Exception as e:
                        logger.debug("⚠️  Ping failed: %s", e)
                        raise SessionError(f"ping failed: {e}") from e
                    watchdog.heartbeat()
                    continue

                subsystem = event.result()
                event = None
                if subsystem is None:
                    raise WatcherError("watcher event channel closed")
                watchdog.heartbeat()

                if subsystem in IGNORED_SUBSYSTEMS:
                    logger.debug("Ignoring %s event", subsystem)
                    continue
                logger.debug("Event: %s", subsystem)
                await self._checked_status()
        finally:
            pending = [t for t in (event, stop) if t is not None]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    # ── Status check ──

    async def _checked_status(self):
        try:
            await self.check_status()
        except Exception as e:
            logger.debug("⚠️  Status check failed: %s", e)
            if is_transient(e):
                raise

    async def check_status(self) -> Transition:
        """Fetch, compare, display, notify.  Raises SessionError on transport loss."""
        session = self.session
        if session is None:
            raise SessionError("connection lost: no session")
        await session.ping()
        status = await session.status()
        track = await session.current_track()

        transition = self.tracker.evaluate(status, track)

        if status.state == PLAY and track.present:
            self.console.now_playing(track, status)
        elif transition.state_changed:
            self.console.state(status.state)

        if transition.song_changed and status.state == PLAY:
            await self._send(song_notification(track, status), track.file)

        if transition.state_changed:
            await self._send(state_notification(track, status), track.file)

        return transition

    async def _send(self, notification: Notification, file: str):
        if not self.notifications_enabled:
            return
        artwork: Artwork | None = None
        if file:
            artwork = await self.session.fetch_artwork(file)
        try:
            await self.sink.notify(notification, artwork)
        except Exception as e:
            logger.debug("⚠️  Failed to send notification: %s", e)

    # ── Top level ──

    def _log_startup(self):
        logger.info("🎵 MPD Monitor started")
        logger.info("📡 Monitoring: %s", self.config.mpd_address)
        if self.notifications_enabled:
            logger.info("📢 GNTP Server: %s", self.config.gntp_address)
            logger.info("✅ GNTP registered (icon mode: %s)", self.sink.icon_mode)
        else:
            logger.info("📢 GNTP/Growl notifications: disabled")
        if self.config.debug:
            logger.info("🐛 Debug mode: enabled")

    async def run(self) -> int:
        """Run until shutdown (EXIT_OK) or a fatal error (EXIT_FATAL)."""
        if self._running:
            raise RuntimeError("supervisor is already running")
        self._running = True
        try:
            self._set_state(State.CONNECTING)
            try:
                self.session, self._watcher = await self._connect_once()
            except Exception as e:
                logger.error("❌ %s", e)
                self._set_state(State.FATAL_EXIT)
                return EXIT_FATAL

            if self.sink is not None:
                await self.sink.start()
            self._log_startup()
            watchdog.ready(f"Watching {self.config.mpd_address}")
            self.console.banner()

            return await self._loop()
        finally:
            await self._close_connections()
            if self.sink is not None:
                await self.sink.stop()
            watchdog.stopping()
            self._running = False

    async def _loop(self) -> int:
        while not self._shutdown.is_set():
            watcher, self._watcher = self._watcher, None
            try:
                if await self.watch_once(watcher) is State.SHUTDOWN:
                    break
            except Exception as e:
                if not is_transient(e):
                    logger.error("❌ Monitor error: %s", e)
                    self._set_state(State.FATAL_EXIT)
                    return EXIT_FATAL
                logger.debug("❌ Monitor error: %s", e)

            self._set_state(State.TRANSIENT_FAILURE)
            logger.debug("🔄 Attempting to reconnect to MPD...")
            if await self._pause(self.reconnect_delay):
                break

            self._set_state(State.CONNECTING)
            try:
                outcome = await self.connect_with_retry()
            except Exception as e:
                logger.error("❌ Reconnect failed: %s", e)
                self._set_state(State.FATAL_EXIT)
                return EXIT_FATAL
            if isinstance(outcome, ExhaustedRetries):
                if self._shutdown.is_set():
                    break
                logger.error("❌ Failed to reconnect after %d attempts: %s",
                             outcome.attempts, outcome.error)
                self._set_state(State.FATAL_EXIT)
                return EXIT_FATAL
            self.session, self._watcher = outcome.session, outcome.watcher
            self.reconnects += 1
            logger.debug("✅ Reconnected to MPD")

        self._set_state(State.SHUTDOWN)
        return EXIT_OK
