"""Snapshots of MPD state, built from the raw attribute dicts MPD returns.

MPD reports every value as a string and omits keys it has nothing for, so
both snapshots keep strings and default to "".  Parsing happens at display
time in formatter.py.
"""

from dataclasses import dataclass

PLAY = "play"
PAUSE = "pause"
STOP = "stop"


@dataclass(frozen=True)
class PlaybackStatus:
    state: str = ""             # play | pause | stop, "" when unknown
    song: str = ""              # position in the queue
    playlistlength: str = ""
    elapsed: str = ""
    audio: str = ""             # "samplerate:bits:channels"
    bitrate: str = ""

    @classmethod
    def from_mpd(cls, attrs: dict) -> "PlaybackStatus":
        return cls(
            state=attrs.get("state", ""),
            song=attrs.get("song", ""),
            playlistlength=attrs.get("playlistlength", ""),
            elapsed=attrs.get("elapsed", ""),
            audio=attrs.get("audio", ""),
            bitrate=attrs.get("bitrate", ""),
        )


@dataclass(frozen=True)
class TrackInfo:
    file: str = ""              # identity key; "" means nothing is current
    title: str = ""
    artist: str = ""
    album: str = ""
    track: str = ""
    duration: str = ""

    @classmethod
    def from_mpd(cls, attrs: dict) -> "TrackInfo":
        def tag(name):
            # Multi-valued tags come back as lists
            value = attrs.get(name, "")
            if isinstance(value, list):
                return value[0] if value else ""
            return value

        return cls(
            file=tag("file"),
            title=tag("title"),
            artist=tag("artist"),
            album=tag("album"),
            track=tag("track"),
            duration=tag("duration") or tag("time"),
        )

    @property
    def present(self) -> bool:
        return self.file != ""


@dataclass(frozen=True)
class Artwork:
    data: bytes
    content_type: str

    @property
    def extension(self) -> str:
        return "png" if self.content_type == "image/png" else "jpg"
