"""
StateTracker — remembers what MPD was doing at the previous check.

Lives for the whole process.  Reconnects do not touch it; only a restart
starts it empty again, which is also why the first check never reports a
state change: there is nothing to compare against yet.
"""

from dataclasses import dataclass

from .models import PlaybackStatus, TrackInfo


@dataclass(frozen=True)
class Transition:
    song_changed: bool = False
    state_changed: bool = False

    def __bool__(self):
        return self.song_changed or self.state_changed


class StateTracker:

    def __init__(self):
        self.last_file: str = ""
        self.last_state: str | None = None   # None = unknown

    def evaluate(self, status: PlaybackStatus, track: TrackInfo) -> Transition:
        """Compare against the previous check, then remember this one."""
        song_changed = track.file != "" and track.file != self.last_file
        state_changed = self.last_state is not None and status.state != self.last_state

        self.last_file = track.file
        self.last_state = status.state or None
        return Transition(song_changed=song_changed, state_changed=state_changed)

    def __repr__(self):
        return f"StateTracker(last_file={self.last_file!r}, last_state={self.last_state!r})"
