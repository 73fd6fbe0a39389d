import datetime
import logging

from chatstate.logging_config import DailyFileHandler, LocalTimezoneFormatter


def test_daily_file_handler_writes_dated_file_and_prunes_old_ones(tmp_path):
    for day in ("2020-01-01", "2020-01-02", "2020-01-03"):
        (tmp_path / f"chatstate-{day}.log").write_text("old\n", encoding="utf-8")

    handler = DailyFileHandler(log_dir=tmp_path, backup_count=2)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    try:
        record = logging.LogRecord("chatstate", logging.INFO, __file__, 1, "appended", None, None)
        handler.emit(record)
    finally:
        handler.close()

    today = datetime.date.today().isoformat()
    current = tmp_path / f"chatstate-{today}.log"
    assert current.read_text(encoding="utf-8") == "INFO appended\n"
    remaining = sorted(p.name for p in tmp_path.iterdir())
    assert len(remaining) == 2
    assert current.name in remaining


def test_formatter_uses_configured_timezone():
    formatter = LocalTimezoneFormatter("%(asctime)s", timezone_name="UTC")
    record = logging.LogRecord("chatstate", logging.INFO, __file__, 1, "x", None, None)
    record.created = 0.0
    assert formatter.formatTime(record) == "1970-01-01T00:00:00.000+00:00"


def test_formatter_falls_back_on_unknown_timezone():
    formatter = LocalTimezoneFormatter("%(asctime)s", timezone_name="Nowhere/Invalid")
    record = logging.LogRecord("chatstate", logging.INFO, __file__, 1, "x", None, None)
    assert formatter.formatTime(record)
