#!/usr/bin/env python3
# mpdnotify
# SPDX-License-Identifier: GPL-3.0-or-later

"""
MPD Monitor (mpdnotify)

Watches an MPD server for song and playback-state changes, prints a "now
playing" display and sends Growl (GNTP) notifications with cover art.

Configuration precedence: defaults < TOML file < environment < flags.
  Environment: MPD_HOST, MPD_PORT, MPD_TIMEOUT, MPD_PASSWORD, DEBUG=1

Exit status: 0 on SIGINT/SIGTERM, 1 on a fatal startup or reconnect error.
"""

import argparse
import asyncio
import logging
import signal
import sys

from . import __version__
from .lib.config import ICON_MODES, resolve_config
from .lib.errors import ConfigurationError
from .lib.notifier import GNTPSink
from .lib.supervisor import EXIT_FATAL, Supervisor

logger = logging.getLogger("mpdnotify")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mpdnotify",
        description="Send Growl/GNTP notifications for MPD song and state changes.")
    parser.add_argument("--config", default="", help="Path to TOML config file")
    parser.add_argument("--mpd-host", default="",
                        help="MPD host (default: localhost or MPD_HOST env)")
    parser.add_argument("--mpd-port", type=int, default=0,
                        help="MPD port (default: 6600 or MPD_PORT env)")
    parser.add_argument("--mpd-timeout", type=int, default=0,
                        help="MPD timeout in seconds (default: 10 or MPD_TIMEOUT env)")
    parser.add_argument("--mpd-password", default="",
                        help="MPD password (default: none or MPD_PASSWORD env)")
    parser.add_argument("--gntp-host", default="", help="GNTP/Growl host (default: localhost)")
    parser.add_argument("--gntp-port", type=int, default=0, help="GNTP/Growl port (default: 23053)")
    parser.add_argument("--gntp-password", default="", help="GNTP/Growl password")
    parser.add_argument("--icon-mode", default="",
                        help=f"Icon mode: {', '.join(ICON_MODES)} (default: binary)")
    parser.add_argument("--artwork-host", default="",
                        help="Host name advertised for httpurl icons (default: hostname)")
    parser.add_argument("--artwork-port", type=int, default=0,
                        help="Port of the artwork HTTP server for httpurl icons (default: 23054)")
    parser.add_argument("--debug", action="store_true",
                        help="Verbose diagnostics (same as DEBUG=1)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


async def run(config) -> int:
    sink = GNTPSink(config.gntp, artwork_host=config.artwork_host)
    supervisor = Supervisor(config, sink=sink)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, supervisor.request_shutdown)
        except NotImplementedError:
            pass  # Windows: Ctrl+C still raises KeyboardInterrupt

    return await supervisor.run()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        logger.error("❌ Failed to load config: %s", e)
        return EXIT_FATAL

    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format=LOG_FORMAT,
    )
    if not config.debug:
        # gntp logs every packet at INFO
        logging.getLogger("gntp").setLevel(logging.WARNING)

    try:
        return asyncio.run(run(config))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
