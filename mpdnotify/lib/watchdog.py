"""systemd notify protocol for the monitor service.

Sends READY/STATUS/WATCHDOG/STOPPING datagrams to $NOTIFY_SOCKET.
Silently no-ops when NOTIFY_SOCKET is unset (running from a terminal).

The monitor has no spare task for a heartbeat loop, so the supervisor calls
heartbeat() itself from points it passes regularly: every connect attempt,
every event and every idle ping.  Keep WatchdogSec= above the 30 s idle
ping interval.

Usage:
    from mpdnotify.lib import watchdog
    watchdog.ready("Watching localhost:6600")
    watchdog.heartbeat()
"""

import logging
import os
import socket

logger = logging.getLogger(__name__)


def _socket_address() -> str | None:
    addr = os.environ.get("NOTIFY_SOCKET")
    if not addr:
        return None
    if addr[0] == "@":
        addr = "\0" + addr[1:]
    return addr


def sd_notify(msg: str) -> bool:
    """Send *msg* to the systemd notify socket.  Returns True if sent."""
    addr = _socket_address()
    if not addr:
        return False
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
    try:
        sock.sendto(msg.encode(), addr)
        return True
    except OSError as e:
        logger.debug("sd_notify(%s) failed: %s", msg.split("\n")[0], e)
        return False
    finally:
        sock.close()


def ready(status: str = ""):
    msg = "READY=1"
    if status:
        msg += f"\nSTATUS={status}"
    sd_notify(msg)


def status(text: str):
    sd_notify(f"STATUS={text}")


def heartbeat():
    sd_notify("WATCHDOG=1")


def stopping(status: str = ""):
    msg = "STOPPING=1"
    if status:
        msg += f"\nSTATUS={status}"
    sd_notify(msg)
