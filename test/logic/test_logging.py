from loguru import logger

from benchpsu.util import (
    clear_log,
    format_error_response,
    get_log_filename,
    log_default_path,
    shutdown_log,
    start_log,
)


def test_log_to_file(tmp_path):
    log_path = tmp_path / "psu.log"
    start_log(log_to_file=True, log_path=str(log_path), log_level="DEBUG")
    logger.debug("Power supply: opened resource {}", "ASRL5::INSTR")
    assert get_log_filename() == str(log_path)
    shutdown_log()

    text = log_path.read_text()
    assert "Log started at" in text
    assert "opened resource ASRL5::INSTR" in text


def test_clear_prev(tmp_path):
    log_path = tmp_path / "psu.log"
    log_path.write_text("stale line\n")
    start_log(log_to_file=True, log_path=str(log_path), clear_prev=True)
    shutdown_log()
    assert "stale line" not in log_path.read_text()


def test_clear_missing_log(tmp_path):
    clear_log(str(tmp_path / "missing.log"))


def test_default_path():
    assert log_default_path().endswith("benchpsu.log")


def test_format_error_response(monkeypatch):
    try:
        raise RuntimeError("display gone")
    except RuntimeError:
        text = format_error_response()
        monkeypatch.setattr("benchpsu.util.logging.SINGLE_LINE_ERR_LOG", True)
        single = format_error_response()

    assert text.startswith("Traceback")
    assert "RuntimeError: display gone" in text
    assert "\n" not in single
    assert "RuntimeError: display gone" in single
