import logging
from pathlib import Path

import pytest

from core.logging import LOG_FILE_NAME, LOG_FORMAT, ROOT_LOGGER_NAME, UtcFormatter, configure_logging, get_logger


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger(ROOT_LOGGER_NAME)
    level = root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)


def test_get_logger_is_namespaced() -> None:
    assert get_logger("core.catalog").name == f"{ROOT_LOGGER_NAME}.core.catalog"
    assert get_logger().name == ROOT_LOGGER_NAME


def test_configure_logging_writes_utc_lines(tmp_path: Path, restore_root_logger) -> None:
    log_dir = tmp_path / "logs"
    configure_logging(log_dir, level=logging.DEBUG)

    get_logger("tests").info("hello from tests")
    for handler in restore_root_logger.handlers:
        handler.flush()

    content = (log_dir / LOG_FILE_NAME).read_text(encoding="utf-8")
    assert "INFO hitsaver.tests hello from tests" in content
    assert "Z INFO" in content


def test_configure_logging_twice_does_not_duplicate_handlers(tmp_path: Path, restore_root_logger) -> None:
    configure_logging(tmp_path / "logs")
    configure_logging(tmp_path / "logs")

    assert len(restore_root_logger.handlers) == 2


def test_utc_formatter_stamps_epoch_in_utc() -> None:
    record = logging.LogRecord("hitsaver.x", logging.WARNING, __file__, 1, "disk full", None, None)
    record.created = 0.0

    line = UtcFormatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S").format(record)
    assert line == "1970-01-01T00:00:00Z WARNING hitsaver.x disk full"
