"""
Exception taxonomy for mpdnotify.

Only transport and startup failures cross component boundaries.  Everything
else (missing artwork, empty tags, sink hiccups) is absorbed where it happens.

    TransientError      — transport went away; tear down and reconnect
      SessionError      — request/response connection failed
      WatcherError      — idle subscription failed or closed
    AuthenticationError — MPD rejected the password (fatal)
    ConfigurationError  — unreadable config file (fatal)
    NotificationError   — GNTP registration/send failed (never fatal)
"""

import asyncio

import mpd

# Substrings that mark an error message as transport related.  MPD and the
# socket layer are not consistent about exception types, so the message is
# the fallback signal.
TRANSIENT_MARKERS = ("eof", "connection", "broken pipe", "watcher")


class MPDNotifyError(Exception):
    """Base exception for mpdnotify."""


class ConfigurationError(MPDNotifyError):
    """Configuration related errors."""


class TransientError(MPDNotifyError):
    """Recoverable transport failure."""


class SessionError(TransientError):
    """The request/response connection to MPD failed."""


class WatcherError(TransientError):
    """The idle subscription failed or its event channel closed."""


class AuthenticationError(MPDNotifyError):
    """MPD refused the configured password."""


class NotificationError(MPDNotifyError):
    """GNTP registration or delivery failed."""


def is_transient(exc: BaseException) -> bool:
    """Return True if *exc* should trigger a reconnect instead of an exit."""
    if isinstance(exc, TransientError):
        return True
    if isinstance(exc, (AuthenticationError, ConfigurationError)):
        return False
    if isinstance(exc, (OSError, EOFError, asyncio.TimeoutError, mpd.ConnectionError)):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)
