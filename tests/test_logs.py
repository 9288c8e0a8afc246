import logging

import pytest

from ssrcon import logs


@pytest.fixture(autouse=True)
def reset_debug_level():
    yield
    logs.set_debug_level(logs.DEBUG_NONE)


@pytest.mark.parametrize(
    "value, expected",
    [("0", (0, True)), ("3", (3, True)), (2, (2, True)), ("7", (0, False)), ("-1", (0, False)), ("x", (0, False))],
)
def test_coerce_debug_level(value, expected):
    assert logs.coerce_debug_level(value) == expected


def test_hexdump_only_at_detailed_level(caplog):
    logger = logging.getLogger("ssrcon.test")
    caplog.set_level(logging.DEBUG, logger="ssrcon")

    logs.set_debug_level(logs.DEBUG_STANDARD)
    logs.hexdump(logger, "Sending", b"\x0a\x00")
    assert not caplog.records

    logs.set_debug_level(logs.DEBUG_DETAILED)
    logs.hexdump(logger, "Sending", b"\x0a\x00")
    assert caplog.records[-1].getMessage() == "Sending: 0a 00"


def test_debug_is_gated_per_level(caplog):
    logger = logging.getLogger("ssrcon.test")
    caplog.set_level(logging.DEBUG, logger="ssrcon")
    logs.set_debug_level(logs.DEBUG_MINIMAL)
    logs.debug(logger, logs.DEBUG_STANDARD, "hidden")
    logs.debug(logger, logs.DEBUG_MINIMAL, "shown %d", 1)
    assert [r.getMessage() for r in caplog.records] == ["shown 1"]


def test_configure_logging_writes_prefixed_lines(tmp_path, restore_logging):
    log_file = tmp_path / "logs" / "SSRCON.log"
    logs.configure_logging(logs.DEBUG_MINIMAL, log_file=log_file, console=False)
    logging.getLogger("ssrcon.client").info("Connected to the RCON server.")
    for handler in logging.getLogger().handlers:
        handler.flush()
    text = log_file.read_text(encoding="utf-8")
    assert "| INFO     | ssrcon.client | Connected to the RCON server." in text
    assert logs.get_debug_level() == logs.DEBUG_MINIMAL
    assert logging.getLogger().level == logging.DEBUG
