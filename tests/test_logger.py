import asyncio
import logging

from presence_client import logger as log_module
from presence_client.logger import LayeredFormatter, get_logger, spinner


def _record(level, msg, layer=None):
    record = logging.LogRecord("presence_client.test", level, __file__, 1, msg, None, None)
    if layer:
        record.layer = layer
    return record


def test_get_logger_nests_under_base_name():
    assert get_logger("session").logger.name == "presence_client.session"
    assert get_logger("presence_client.cli").logger.name == "presence_client.cli"


def test_formatter_uses_layer_icon():
    formatter = LayeredFormatter("%(message)s")

    assert "✓" in formatter.format(_record(logging.INFO, "done", layer="success"))
    assert "▶" in formatter.format(_record(logging.INFO, "start", layer="step"))


def test_formatter_falls_back_to_level():
    formatter = LayeredFormatter("%(message)s")

    assert "✗" in formatter.format(_record(logging.ERROR, "broken"))
    assert "[debug]" in formatter.format(_record(logging.DEBUG, "detail"))


def test_adapter_marks_warnings(caplog):
    with caplog.at_level(logging.WARNING, logger="presence_client"):
        get_logger("test").warning("careful")

    assert caplog.records[-1].layer == "warning"


def test_spinner_reports_failure(caplog):
    async def scenario():
        async with spinner("Signing in", animate=False) as spin:
            spin.fail("rejected")

    with caplog.at_level(logging.INFO, logger="presence_client"):
        asyncio.run(scenario())

    assert "Signing in – rejected" in caplog.text
    assert not any(getattr(r, "layer", None) == "success" for r in caplog.records)


def test_set_log_profile_adjusts_console_handler(monkeypatch):
    monkeypatch.setenv("LOG_PROFILE", "user")
    base = logging.getLogger(log_module.BASE_LOGGER_NAME)
    console = [h for h in base.handlers if type(h) is logging.StreamHandler]
    original = [h.level for h in console]
    try:
        log_module.set_log_profile("quiet")
        assert all(h.level == logging.WARNING for h in console)
    finally:
        for handler, level in zip(console, original):
            handler.setLevel(level)
        log_module.LOG_PROFILE = "user"


def test_progress_uses_progress_layer(caplog):
    with caplog.at_level(logging.INFO, logger="presence_client"):
        log_module.progress("Fetching your profile")

    record = caplog.records[-1]
    assert record.layer == "progress"
    assert record.getMessage() == "Fetching your profile"
