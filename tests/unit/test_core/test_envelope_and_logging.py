"""Tests for response envelopes, correlation context and log formatting."""

import io
import json
import logging

from spectree.core.context import get_correlation_id, sync_request_context
from spectree.core.logging_config import configure_logging
from spectree.core.normalizer import normalize
from spectree.core.responses import (
    RESPONSE_VERSION,
    ErrorCode,
    ErrorType,
    error_response,
    success_response,
)


class TestResponses:
    def test_success_envelope(self):
        response = success_response({"a": 1}, b=2, request_id="req_1", warnings=["careful"])
        assert response.success is True
        assert response.data == {"a": 1, "b": 2}
        assert response.error is None
        assert response.meta["version"] == RESPONSE_VERSION
        assert response.meta["request_id"] == "req_1"
        assert response.meta["warnings"] == ["careful"]

    def test_error_envelope(self):
        response = error_response(
            "Target feature does not exist",
            error_code=ErrorCode.PARENT_NOT_FOUND,
            error_type=ErrorType.NOT_FOUND,
            remediation="Pick an existing feature",
        )
        assert response.success is False
        assert response.error == "Target feature does not exist"
        assert response.data["error_code"] == "PARENT_NOT_FOUND"
        assert response.data["error_type"] == "not_found"
        assert response.data["remediation"] == "Pick an existing feature"

    def test_error_defaults(self):
        response = error_response("boom")
        assert response.data["error_code"] == "INTERNAL_ERROR"
        assert response.data["error_type"] == "internal"


class TestCorrelationContext:
    def test_context_sets_and_resets(self):
        assert get_correlation_id() == ""
        with sync_request_context(prefix="cli") as ctx:
            assert ctx.correlation_id.startswith("cli_")
            assert get_correlation_id() == ctx.correlation_id
        assert get_correlation_id() == ""

    def test_explicit_id(self):
        with sync_request_context(correlation_id="fixed"):
            assert get_correlation_id() == "fixed"


class TestLogging:
    def test_structured_lines_carry_correlation_id(self):
        stream = io.StringIO()
        configure_logging(level="DEBUG", format="structured", stream=stream)

        with sync_request_context(correlation_id="req_abc"):
            logging.getLogger("spectree.core.moves").warning("Move rejected")

        entry = json.loads(stream.getvalue().strip())
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "spectree.core.moves"
        assert entry["message"] == "Move rejected"
        assert entry["correlation_id"] == "req_abc"

    def test_human_format(self):
        stream = io.StringIO()
        configure_logging(level=logging.INFO, format="human", stream=stream)
        with sync_request_context(correlation_id="req_xyz"):
            logging.getLogger("spectree.core.normalizer").info("Normalized app")

        line = stream.getvalue()
        assert "[INFO]" in line
        assert "[req_xyz]" in line
        assert "core.normalizer: Normalized app" in line

    def test_level_filters(self):
        stream = io.StringIO()
        configure_logging(level="WARNING", stream=stream)
        logging.getLogger("spectree.core.breadcrumb").debug("hidden")
        assert stream.getvalue() == ""

    def test_core_module_warnings_reach_configured_handler(self, sample_payload):
        stream = io.StringIO()
        configure_logging(level="WARNING", format="structured", stream=stream)
        sample_payload["epics"].append({"title": "No id"})

        normalize(sample_payload, "chat-key", "app-1")

        entries = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert any(entry["logger"] == "spectree.core.normalizer" for entry in entries)
