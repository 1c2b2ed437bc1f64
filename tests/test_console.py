import io
import socket

import pytest

from mpdnotify.lib import watchdog
from mpdnotify.lib.console import CYAN, RESET, Console, format_playing

from conftest import make_status, make_track


def test_playing_block():
    text = format_playing(make_track(), make_status())
    lines = text.split("\n")
    assert lines[0] == f"{CYAN}▶ 2/12/2. Paranoid Android{RESET}"
    assert "1:02 / 6:23" in lines[1]
    assert any("🎤 Radiohead" in line for line in lines)
    assert any("🎵 44 kHz" in line for line in lines)
    assert lines[-1].endswith(f"📁 Radiohead/OK Computer/02 Paranoid Android.flac{RESET}")


def test_missing_tags_are_left_out():
    text = format_playing(make_track(artist="", album="", title="", track=""), make_status())
    assert "🎤" not in text
    assert "💿" not in text
    assert "?. Radiohead/OK Computer/02 Paranoid Android.flac" in text


def test_console_writes_to_stream(monkeypatch):
    monkeypatch.setenv("COLUMNS", "20")
    out = io.StringIO()
    console = Console(out)
    console.banner()
    console.state("pause")
    assert out.getvalue() == "=" * 20 + "\n⏸  State: pause\n" + "─" * 20 + "\n"


# ── systemd notify ──

@pytest.fixture
def notify_socket(tmp_path, monkeypatch):
    path = tmp_path / "notify.sock"
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
    sock.bind(str(path))
    sock.settimeout(1)
    monkeypatch.setenv("NOTIFY_SOCKET", str(path))
    yield sock
    sock.close()


def test_notify_messages(notify_socket):
    watchdog.ready("Watching mpd.test:6600")
    assert notify_socket.recv(256) == b"READY=1\nSTATUS=Watching mpd.test:6600"
    watchdog.heartbeat()
    assert notify_socket.recv(256) == b"WATCHDOG=1"
    watchdog.stopping()
    assert notify_socket.recv(256) == b"STOPPING=1"


def test_notify_without_socket(monkeypatch):
    monkeypatch.delenv("NOTIFY_SOCKET", raising=False)
    assert not watchdog.sd_notify("WATCHDOG=1")


def test_notify_to_missing_socket(tmp_path, monkeypatch):
    monkeypatch.setenv("NOTIFY_SOCKET", str(tmp_path / "gone.sock"))
    assert not watchdog.sd_notify("WATCHDOG=1")
