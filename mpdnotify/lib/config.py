"""
Layered configuration for mpdnotify.

Resolution order, lowest to highest precedence:
  1. built-in defaults              (the dataclass field defaults below)
  2. TOML config file               (--config, else the first of _SEARCH_PATHS)
  3. environment variables          (MPD_HOST, MPD_PORT, MPD_TIMEOUT, MPD_PASSWORD)
  4. command-line flags             (only flags the user actually passed)

The result is frozen and handed to every component read-only.

Example config.toml:

    [mpd]
    host = "music.local"
    port = 6600
    timeout = 10

    [gntp]
    host = "192.168.0.20"
    port = 23053
    password = "secret"
    icon_mode = "dataurl"     # binary | dataurl | fileurl | httpurl
"""

import dataclasses
import logging
import os
import socket
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ICON_MODES = ("binary", "dataurl", "fileurl", "httpurl")


def _xdg_config_path() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "mpdnotify" / "config.toml"


_SEARCH_PATHS = [
    Path("/etc/mpdnotify/config.toml"),
    _xdg_config_path(),
]


@dataclass(frozen=True)
class MPDConfig:
    host: str = "localhost"
    port: int = 6600
    timeout: int = 10
    password: str = ""


@dataclass(frozen=True)
class GNTPConfig:
    host: str = "localhost"
    port: int = 23053
    password: str = ""
    icon_mode: str = "binary"   # binary is what Growl for Windows handles best
    artwork_host: str = ""      # advertised host for httpurl mode; "" = hostname
    artwork_port: int = 23054


@dataclass(frozen=True)
class Config:
    mpd: MPDConfig = field(default_factory=MPDConfig)
    gntp: GNTPConfig = field(default_factory=GNTPConfig)
    debug: bool = False

    @property
    def mpd_address(self) -> str:
        return f"{self.mpd.host}:{self.mpd.port}"

    @property
    def gntp_address(self) -> str:
        return f"{self.gntp.host}:{self.gntp.port}"

    @property
    def artwork_host(self) -> str:
        return self.gntp.artwork_host or socket.gethostname()


def parse_icon_mode(value: str | None) -> str:
    """Normalise an icon mode string.  Unknown values fall back to binary.

    parse_icon_mode("Data-URL")  → "dataurl"
    parse_icon_mode("file_url")  → "fileurl"
    parse_icon_mode("bogus")     → "binary"
    """
    if not value:
        return "binary"
    mode = value.strip().lower().replace("-", "").replace("_", "")
    if mode not in ICON_MODES:
        logger.warning("Unknown icon mode '%s', using binary", value)
        return "binary"
    return mode


def _find_config_file(path: str | os.PathLike | None, search_paths) -> Path | None:
    if path:
        p = Path(path).expanduser()
        if p.is_file():
            return p
        logger.warning("Config file %s not found, using defaults", p)
        return None
    for candidate in search_paths:
        if candidate.is_file():
            return candidate
    return None


def load_file(path: str | os.PathLike | None = None, search_paths=None) -> dict:
    """Read the TOML layer.  Missing file → {}, invalid TOML → ConfigurationError."""
    found = _find_config_file(path, _SEARCH_PATHS if search_paths is None else search_paths)
    if found is None:
        return {}
    try:
        with open(found, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"failed to parse config {found}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"failed to read config {found}: {e}") from e
    logger.info("Config loaded from %s", found)
    return data


def _coerce(section: str, key: str, value, expected: type):
    if expected is int and not isinstance(value, bool):
        try:
            return int(value)
        except (TypeError, ValueError):
            pass
    elif expected is str and isinstance(value, (str, int)):
        return str(value)
    elif isinstance(value, expected):
        return value
    raise ConfigurationError(f"invalid value for {section}.{key}: {value!r}")


def _apply_section(current, section: str, data) -> object:
    if data is None:
        return current
    if not isinstance(data, dict):
        raise ConfigurationError(f"[{section}] must be a table")
    types = {f.name: type(getattr(current, f.name)) for f in dataclasses.fields(current)}
    changes = {}
    for key, value in data.items():
        if key not in types:
            logger.warning("Config: unknown key %s.%s ignored", section, key)
            continue
        changes[key] = _coerce(section, key, value, types[key])
    return dataclasses.replace(current, **changes)


def _env_int(env, name: str) -> int | None:
    raw = env.get(name, "")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not an integer)", name, raw)
        return None


def resolve_config(args=None, env=None, search_paths=None) -> Config:
    """Build the final Config from all layers.

    *args* is an argparse.Namespace (or anything with the same attributes);
    *env* defaults to os.environ.
    """
    env = os.environ if env is None else env
    config = Config()

    # 2. TOML file
    data = load_file(getattr(args, "config", None), search_paths)
    mpd_cfg = _apply_section(config.mpd, "mpd", data.get("mpd"))
    gntp_cfg = _apply_section(config.gntp, "gntp", data.get("gntp"))

    # 3. Environment
    mpd_changes = {}
    if env.get("MPD_HOST"):
        mpd_changes["host"] = env["MPD_HOST"]
    port = _env_int(env, "MPD_PORT")
    if port is not None:
        mpd_changes["port"] = port
    timeout = _env_int(env, "MPD_TIMEOUT")
    if timeout is not None:
        mpd_changes["timeout"] = timeout
    if env.get("MPD_PASSWORD"):
        mpd_changes["password"] = env["MPD_PASSWORD"]
    mpd_cfg = dataclasses.replace(mpd_cfg, **mpd_changes)
    debug = env.get("DEBUG") == "1"

    # 4. Command line: empty strings and non-positive numbers mean "not given"
    if args is not None:
        mpd_changes = {}
        if getattr(args, "mpd_host", None):
            mpd_changes["host"] = args.mpd_host
        if (getattr(args, "mpd_port", None) or 0) > 0:
            mpd_changes["port"] = args.mpd_port
        if (getattr(args, "mpd_timeout", None) or 0) > 0:
            mpd_changes["timeout"] = args.mpd_timeout
        if getattr(args, "mpd_password", None):
            mpd_changes["password"] = args.mpd_password
        mpd_cfg = dataclasses.replace(mpd_cfg, **mpd_changes)

        gntp_changes = {}
        if getattr(args, "gntp_host", None):
            gntp_changes["host"] = args.gntp_host
        if (getattr(args, "gntp_port", None) or 0) > 0:
            gntp_changes["port"] = args.gntp_port
        if getattr(args, "gntp_password", None):
            gntp_changes["password"] = args.gntp_password
        if getattr(args, "icon_mode", None):
            gntp_changes["icon_mode"] = args.icon_mode
        if getattr(args, "artwork_host", None):
            gntp_changes["artwork_host"] = args.artwork_host
        if (getattr(args, "artwork_port", None) or 0) > 0:
            gntp_changes["artwork_port"] = args.artwork_port
        gntp_cfg = dataclasses.replace(gntp_cfg, **gntp_changes)

        debug = debug or bool(getattr(args, "debug", False))

    gntp_cfg = dataclasses.replace(gntp_cfg, icon_mode=parse_icon_mode(gntp_cfg.icon_mode))
    return Config(mpd=mpd_cfg, gntp=gntp_cfg, debug=debug)
