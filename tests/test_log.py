from __future__ import annotations

import logging
from pathlib import Path

from orchext.utils.log import OrchextLogger, StructuredFormatter


def test_structured_formatter_appends_extras() -> None:
    formatter = StructuredFormatter("%(message)s")
    record = logging.LogRecord("orchext", logging.INFO, __file__, 1, "[installer] Run complete", None, None)
    record.installed = 2
    record.extension = "iis-orchestrator"

    assert formatter.format(record) == '[installer] Run complete | {"extension": "iis-orchestrator", "installed": 2}'


def test_logger_writes_debug_records_to_file(tmp_path: Path) -> None:
    log = OrchextLogger(name="orchext.test-file", log_dir=tmp_path)
    try:
        log.debug("[fetcher] Downloading release asset", extra={"url": "https://example.com/a.zip"})
        log_files = list(tmp_path.glob("orchext_*.log"))
        assert len(log_files) == 1
        content = log_files[0].read_text(encoding="utf-8")
        assert "[DEBUG] [fetcher] Downloading release asset" in content
        assert '"url": "https://example.com/a.zip"' in content
    finally:
        for handler in list(log.logger.handlers):
            log.logger.removeHandler(handler)
            handler.close()


def test_init_logger_replaces_global_logger(tmp_path: Path) -> None:
    from orchext.utils import log as log_module

    previous = log_module._logger
    try:
        logger = log_module.init_logger(tmp_path / "logs")
        assert log_module.get_logger() is logger
        assert list((tmp_path / "logs").glob("orchext_*.log"))
    finally:
        if log_module._logger is not None and log_module._logger._file_handler is not None:
            log_module._logger.logger.removeHandler(log_module._logger._file_handler)
            log_module._logger._file_handler.close()
        log_module._logger = previous
