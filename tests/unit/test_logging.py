"""Tests for logging setup."""

from __future__ import annotations

import io
import logging

import pytest

from imagegen_mcp.logging import ROOT_LOGGER, configure_logging, get_logger


@pytest.fixture(autouse=True)
def restore_root_logger():
    logger = logging.getLogger(ROOT_LOGGER)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


class TestGetLogger:
    def test_namespaced(self) -> None:
        assert get_logger("registry").name == "imagegen_mcp.registry"

    def test_already_namespaced(self) -> None:
        assert get_logger("imagegen_mcp.dispatch").name == "imagegen_mcp.dispatch"

    def test_root(self) -> None:
        assert get_logger().name == ROOT_LOGGER


class TestConfigureLogging:
    def test_writes_to_given_stream(self) -> None:
        stream = io.StringIO()
        configure_logging("DEBUG", stream=stream)
        get_logger("test").debug("hello")
        assert "hello" in stream.getvalue()

    def test_level_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("IMAGEGEN_MCP_LOG_LEVEL", "WARNING")
        logger = configure_logging(stream=io.StringIO())
        assert logger.level == logging.WARNING

    def test_reconfigure_does_not_stack_handlers(self) -> None:
        configure_logging("INFO", stream=io.StringIO())
        logger = configure_logging("INFO", stream=io.StringIO())
        owned = [h for h in logger.handlers if getattr(h, "_imagegen_mcp_handler", False)]
        assert len(owned) == 1

    def test_unknown_level(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("LOUD", stream=io.StringIO())
