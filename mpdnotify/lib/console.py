"""Terminal output: the colored "now playing" block and separators."""

import shutil
import sys

from .formatter import display_title, format_bitrate, format_duration, track_number
from .models import PlaybackStatus, TrackInfo

RESET = "\033[0m"
CYAN = "\033[96m"            # track / title
YELLOW = "\033[93m"          # artist
ORANGE = "\033[38;5;216m"    # album
BLUE = "\033[94m"            # bitrate
GREEN = "\033[92m"           # file path


def terminal_width(default: int = 80) -> int:
    width = shutil.get_terminal_size((default, 24)).columns
    return width if width > 0 else default


def separator(char: str = "─") -> str:
    return char * terminal_width()


def format_playing(track: TrackInfo, status: PlaybackStatus) -> str:
    lines = [
        f"{CYAN}▶ {status.song}/{status.playlistlength}/{track_number(track)}. {display_title(track)}{RESET}",
        f"{CYAN}  🕓 {format_duration(status.elapsed)} / {format_duration(track.duration)}{RESET}",
    ]
    if track.artist:
        lines.append(f"{YELLOW}  🎤 {track.artist}{RESET}")
    if track.album:
        lines.append(f"{ORANGE}  💿 {track.album}{RESET}")
    lines.append(f"{BLUE}  🎵 {format_bitrate(status)}{RESET}")
    lines.append(f"{GREEN}  📁 {track.file}{RESET}")
    return "\n".join(lines)


class Console:
    """Writes the human-facing display.  Diagnostics go through logging."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    def _print(self, text: str = ""):
        print(text, file=self.stream, flush=True)

    def banner(self):
        self._print(separator("="))

    def now_playing(self, track: TrackInfo, status: PlaybackStatus):
        self._print()
        self._print(format_playing(track, status))
        self._print(separator())

    def state(self, state: str):
        self._print(f"⏸  State: {state}")
        self._print(separator())
