"""
Notification text.  Pure functions, no I/O.

A "now playing" body looks like:

    3/12/4. Paranoid Android
    1:02 / 6:23
    🎤 Radiohead
    💿 OK Computer
    🎵 44 kHz
    📁 Radiohead/OK Computer/02 Paranoid Android.flac
"""

from dataclasses import dataclass

from .models import PAUSE, PLAY, STOP, PlaybackStatus, TrackInfo

STATE_LABELS = {
    PLAY: "▶ Playing",
    PAUSE: "⏸ Paused",
    STOP: "⏹ Stopped",
}


@dataclass(frozen=True)
class Notification:
    event: str
    title: str
    body: str


def format_duration(seconds: str) -> str:
    """"135" → "2:15".  Empty or unparsable input → "0:00"."""
    if not seconds:
        return "0:00"
    try:
        total = int(float(seconds))
    except (TypeError, ValueError, OverflowError):
        return "0:00"
    return f"{total // 60}:{total % 60:02d}"


def format_bitrate(status: PlaybackStatus) -> str:
    """Sample rate from ``audio`` ("44100:16:2" → "44 kHz"), else ``bitrate``."""
    if status.audio:
        sample_rate = status.audio.split(":")[0]
        try:
            return f"{int(sample_rate) // 1000} kHz"
        except ValueError:
            pass  # e.g. "dsd64:2"
    if status.bitrate:
        return f"{status.bitrate} kbps"
    return "N/A"


def display_title(track: TrackInfo) -> str:
    return track.title or track.file


def track_number(track: TrackInfo) -> str:
    return track.track or "?"


def state_label(state: str) -> str:
    return STATE_LABELS.get(state, f"State: {state}")


def format_body(track: TrackInfo, status: PlaybackStatus) -> str:
    lines = [
        f"{status.song}/{status.playlistlength}/{track_number(track)}. {display_title(track)}",
        f"{format_duration(status.elapsed)} / {format_duration(track.duration)}",
    ]
    if track.artist:
        lines.append(f"🎤 {track.artist}")
    if track.album:
        lines.append(f"💿 {track.album}")
    lines.append(f"🎵 {format_bitrate(status)}")
    lines.append(f"📁 {track.file}")
    return "\n".join(lines)


def song_notification(track: TrackInfo, status: PlaybackStatus) -> Notification:
    return Notification("song_change", display_title(track), format_body(track, status))


def state_notification(track: TrackInfo, status: PlaybackStatus) -> Notification:
    label = state_label(status.state)
    if status.state == PLAY and track.present:
        body = format_body(track, status)
    else:
        body = label
    return Notification("player_state", label, body)
