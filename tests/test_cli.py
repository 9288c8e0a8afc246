import logging

import pytest

import rconcli
from ssrcon.config import ClientSettings
from ssrcon.session import ConnectionState


def test_parser_accepts_short_flags():
    args = rconcli.build_parser().parse_args(["-d", "2", "-s", "game.example", "-p", "27016", "-u", "pw"])
    assert (args.debug, args.server, args.port, args.password) == ("2", "game.example", "27016", "pw")
    assert args.ui is False


def test_every_flag_is_optional():
    args = rconcli.build_parser().parse_args([])
    assert (args.debug, args.server, args.port, args.password) == (None, None, None, None)


def test_build_client_uses_flags_then_environment(monkeypatch):
    monkeypatch.setenv("SSRCON_PASSWORD", "from-env")
    monkeypatch.delenv("SSRCON_PORT", raising=False)
    args = rconcli.build_parser().parse_args(["-s", "game.example"])
    client = rconcli.build_client(args, ClientSettings(close_cooldown=3.0))
    creds = client.session.credentials
    assert (creds.address, creds.port, creds.password) == ("game.example", "", "from-env")
    assert client.state is ConnectionState.DISCONNECTED
    assert client.settings.close_cooldown == 3.0


def test_unknown_debug_mode_is_reported(caplog):
    caplog.set_level(logging.INFO, logger="ssrcon")
    args = rconcli.build_parser().parse_args(["-d", "9"])
    rconcli._startup_log(args, 0, False)
    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("Started version") for m in messages)
    assert "Unknown debug mode '9', running without debug output." in messages


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as info:
        rconcli.build_parser().parse_args(["--version"])
    assert info.value.code == 0
    assert "ssrcon" in capsys.readouterr().out
