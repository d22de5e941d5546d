"""Unit tests for structured logging configuration."""

import json

import pytest
import structlog

from rolekeeper.core.config import Settings
from rolekeeper.core.logging import (
    LoggingContext,
    add_correlation_id,
    bind_correlation_id,
    clear_context,
    configure_logging,
    get_logger,
    rename_message_field,
)


@pytest.fixture(autouse=True)
def _reset_structlog():
    clear_context()
    yield
    clear_context()
    structlog.reset_defaults()


def test_json_output_in_production(capsys):
    """Test production logs are JSON lines with a message field."""
    configure_logging(
        Settings(_env_file=None, environment="production", log_format="json", log_level="INFO")
    )
    bind_correlation_id("cid_test")

    get_logger("rolekeeper.test").info("Role created", role_id="cashier")

    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["message"] == "Role created"
    assert record["role_id"] == "cashier"
    assert record["level"] == "info"
    assert record["correlation_id"] == "cid_test"
    assert record["logger"] == "rolekeeper.test"
    assert "event" not in record


def test_level_filtering(capsys):
    """Test records below the configured level are dropped."""
    configure_logging(
        Settings(_env_file=None, environment="production", log_format="json", log_level="WARNING")
    )

    get_logger().info("quiet")

    assert "quiet" not in capsys.readouterr().out


def test_logging_context_binds_and_unbinds():
    with LoggingContext(role_id="staff", command="roles grant"):
        bound = structlog.contextvars.get_contextvars()
        assert bound["role_id"] == "staff"
        assert bound["command"] == "roles grant"

    assert "role_id" not in structlog.contextvars.get_contextvars()


def test_add_correlation_id_keeps_existing():
    assert add_correlation_id(None, "info", {"correlation_id": "cid_x"}) == {"correlation_id": "cid_x"}
    assert add_correlation_id(None, "info", {})["correlation_id"].startswith("cid_")


def test_rename_message_field():
    assert rename_message_field(None, "info", {"event": "hello"}) == {"message": "hello"}
