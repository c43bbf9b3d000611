from __future__ import annotations

import io
import json
import logging

import pytest
from workctx_core.config import LoggingConfig
from workctx_core.logging import get_logger, setup_logging, setup_logging_from


@pytest.fixture
def fresh_logger():
    logger = logging.getLogger("workctx")
    saved_handlers, saved_level = logger.handlers[:], logger.level
    logger.handlers.clear()
    yield logger
    logger.handlers[:] = saved_handlers
    logger.setLevel(saved_level)


class TestLogging:
    def test_get_logger_namespace(self):
        assert get_logger("capture").name == "workctx.capture"

    def test_text_output(self, fresh_logger):
        stream = io.StringIO()
        setup_logging("DEBUG", stream=stream)
        get_logger("manager").debug("Added entry %s", "abc")
        assert "workctx.manager: Added entry abc" in stream.getvalue()

    def test_level_filters(self, fresh_logger):
        stream = io.StringIO()
        setup_logging("WARNING", stream=stream)
        get_logger("manager").info("quiet")
        assert stream.getvalue() == ""

    def test_json_output(self, fresh_logger):
        stream = io.StringIO()
        setup_logging("INFO", json_output=True, stream=stream)
        get_logger("builder").info("Building working context with %s backend", "sqlite")

        record = json.loads(stream.getvalue().strip())
        assert record["level"] == "INFO"
        assert record["logger"] == "workctx.builder"
        assert record["msg"] == "Building working context with sqlite backend"

    def test_idempotent(self, fresh_logger):
        setup_logging("INFO", stream=io.StringIO())
        setup_logging("DEBUG", stream=io.StringIO())
        assert len(fresh_logger.handlers) == 1
        assert fresh_logger.level == logging.INFO

    def test_from_config(self, fresh_logger):
        logger = setup_logging_from(LoggingConfig(level="ERROR"))
        assert logger.level == logging.ERROR
