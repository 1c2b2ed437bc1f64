import argparse

import pytest

from mpdnotify.lib.config import Config, parse_icon_mode, resolve_config
from mpdnotify.lib.errors import ConfigurationError
from mpdnotify.monitor import build_parser


def args(*argv):
    return build_parser().parse_args(list(argv))


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        '[mpd]\n'
        'host = "file-host"\n'
        'port = 6601\n'
        'timeout = 20\n'
        '\n'
        '[gntp]\n'
        'host = "growl-host"\n'
        'port = 23000\n'
        'password = "secret"\n'
        'icon_mode = "DataURL"\n'
    )
    return path


def test_defaults():
    config = resolve_config(args(), env={}, search_paths=[])
    assert config == Config()
    assert config.mpd_address == "localhost:6600"
    assert config.gntp_address == "localhost:23053"
    assert config.mpd.timeout == 10
    assert config.gntp.icon_mode == "binary"
    assert not config.debug


def test_file_overrides_defaults(config_file):
    config = resolve_config(args("--config", str(config_file)), env={})
    assert config.mpd.host == "file-host"
    assert config.mpd.port == 6601
    assert config.mpd.timeout == 20
    assert config.gntp.host == "growl-host"
    assert config.gntp.port == 23000
    assert config.gntp.password == "secret"
    assert config.gntp.icon_mode == "dataurl"


def test_env_overrides_file(config_file):
    env = {"MPD_HOST": "env-host", "MPD_PORT": "6602", "MPD_TIMEOUT": "5"}
    config = resolve_config(args("--config", str(config_file)), env=env)
    assert config.mpd.host == "env-host"
    assert config.mpd.port == 6602
    assert config.mpd.timeout == 5
    # GNTP has no environment layer
    assert config.gntp.host == "growl-host"


def test_flags_override_env(config_file):
    env = {"MPD_HOST": "env-host", "MPD_PORT": "6602"}
    config = resolve_config(args("--config", str(config_file),
                                 "--mpd-host", "flag-host",
                                 "--gntp-port", "24000",
                                 "--icon-mode", "fileurl"), env=env)
    assert config.mpd.host == "flag-host"
    assert config.mpd.port == 6602
    assert config.gntp.port == 24000
    assert config.gntp.icon_mode == "fileurl"


def test_zero_flags_do_not_override(config_file):
    config = resolve_config(args("--config", str(config_file), "--mpd-timeout", "0"), env={})
    assert config.mpd.timeout == 20


def test_bad_env_integer_is_ignored():
    config = resolve_config(args(), env={"MPD_PORT": "sixty-six", "MPD_TIMEOUT": "x"},
                            search_paths=[])
    assert config.mpd.port == 6600
    assert config.mpd.timeout == 10


def test_debug_from_env_or_flag():
    assert resolve_config(args(), env={"DEBUG": "1"}, search_paths=[]).debug
    assert resolve_config(args("--debug"), env={}, search_paths=[]).debug
    assert not resolve_config(args(), env={"DEBUG": "yes"}, search_paths=[]).debug


def test_invalid_toml_is_fatal(tmp_path):
    path = tmp_path / "broken.toml"
    path.write_text("[mpd\nhost = ")
    with pytest.raises(ConfigurationError):
        resolve_config(args("--config", str(path)), env={})


def test_wrong_value_type_is_fatal(tmp_path):
    path = tmp_path / "typed.toml"
    path.write_text('[mpd]\nport = "not a port"\n')
    with pytest.raises(ConfigurationError):
        resolve_config(args("--config", str(path)), env={})


def test_missing_explicit_file_uses_defaults(tmp_path):
    config = resolve_config(args("--config", str(tmp_path / "nope.toml")), env={})
    assert config == Config()


def test_search_paths_first_existing_wins(tmp_path, config_file):
    other = tmp_path / "other.toml"
    other.write_text('[mpd]\nhost = "other-host"\n')
    config = resolve_config(args(), env={}, search_paths=[tmp_path / "missing.toml", other, config_file])
    assert config.mpd.host == "other-host"


def test_unknown_keys_are_ignored(tmp_path):
    path = tmp_path / "extra.toml"
    path.write_text('[mpd]\nhost = "h"\ncolour = "blue"\n')
    assert resolve_config(args("--config", str(path)), env={}).mpd.host == "h"


def test_resolve_without_args():
    config = resolve_config(None, env={"MPD_HOST": "envonly"}, search_paths=[])
    assert config.mpd.host == "envonly"


def test_namespace_from_elsewhere():
    ns = argparse.Namespace(config=None, mpd_host="ns-host")
    assert resolve_config(ns, env={}, search_paths=[]).mpd.host == "ns-host"


@pytest.mark.parametrize("value,expected", [
    ("binary", "binary"),
    ("dataurl", "dataurl"),
    ("data-url", "dataurl"),
    ("FileURL", "fileurl"),
    ("http_url", "httpurl"),
    ("", "binary"),
    (None, "binary"),
    ("carrier-pigeon", "binary"),
])
def test_parse_icon_mode(value, expected):
    assert parse_icon_mode(value) == expected
