"""
mpdnotify — Growl/GNTP notifications for MPD.

Watches an MPD server over its idle protocol and reports what changed (the
new song with cover art, or the new playback state) to a GNTP receiver,
reconnecting on its own when MPD goes away.

Layout:
  monitor.py           — command line entry point
  lib/supervisor.py    — reconnect state machine and status checks
  lib/session.py       — request/response MPD connection
  lib/watcher.py       — idle subscription + error drain task
  lib/tracker.py       — last seen song/state
  lib/formatter.py     — notification text
  lib/notifier.py      — GNTP sink and icon delivery modes
"""

__version__ = "1.0.0"
