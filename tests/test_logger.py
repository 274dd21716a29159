import os
from pathlib import Path

from shared.logging.logger import get_logger


def test_loggers_are_cached_per_runtime_and_name():
    first = get_logger("matrix.test")

    assert get_logger("matrix.test") is first
    assert get_logger("matrix.test", runtime="cli") is not first
    assert first.name == "matrix:matrix.test"
    assert first.propagate is False


def test_file_handler_writes_under_configured_log_dir():
    logger = get_logger("matrix.test.files")
    log_dir = Path(os.path.abspath(os.environ["MATRIX_LOG_DIR"]))

    files = [
        Path(h.baseFilename)
        for h in logger.handlers
        if hasattr(h, "baseFilename")
    ]

    assert len(files) == 1
    assert files[0].parent == log_dir
    assert files[0].name.startswith("matrix-")
