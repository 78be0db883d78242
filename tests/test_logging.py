import logging

from risk_link.core.logging import RunContextFormatter, configure_logging

FORMAT = "event=%(event)s run_id=%(run_id)s stage=%(stage)s records=%(record_count)s %(message)s"


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("risk-link", logging.INFO, __file__, 1, "페이지 수신", None, None)
    for name, value in extra.items():
        setattr(record, name, value)
    return record


def test_formatter_fills_missing_context():
    line = RunContextFormatter(FORMAT).format(_record())
    assert line == "event=system run_id=- stage=- records=- 페이지 수신"


def test_formatter_keeps_run_context():
    record = _record(event="page_fetched", run_id="run-1", stage="fetch", record_count=5)
    line = RunContextFormatter(FORMAT).format(record)
    assert line == "event=page_fetched run_id=run-1 stage=fetch records=5 페이지 수신"


def test_formatter_replaces_empty_record_count():
    record = _record(event="pipeline_start", run_id="run-2", stage="fetch", record_count=None)
    line = RunContextFormatter(FORMAT).format(record)
    assert "records=-" in line


def test_configure_logging_quiets_http_client_loggers():
    configure_logging("debug")
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING
