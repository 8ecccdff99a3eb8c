"""Tests for structured logging and id helpers."""

import json
import logging

from advanced_workflow.utils.idgen import generate_correlation_id, generate_instance_id
from advanced_workflow.utils.logger import (
    JsonFormatter,
    correlation_id_var,
    get_context_logger,
    set_correlation_id,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="advanced_workflow.engine.engine",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Transition %s taken",
        args=("t1",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_engine_fields() -> None:
    token = correlation_id_var.set("COR-test")
    try:
        payload = json.loads(JsonFormatter().format(_record(instance_id="WFI-1", transition_id="t1")))
    finally:
        correlation_id_var.reset(token)

    assert payload["message"] == "Transition t1 taken"
    assert payload["level"] == "INFO"
    assert payload["correlation_id"] == "COR-test"
    assert payload["instance_id"] == "WFI-1"
    assert payload["transition_id"] == "t1"
    assert "action_id" not in payload


def test_context_logger_binds_fields(caplog) -> None:
    set_correlation_id("COR-bound")
    logger = get_context_logger("advanced_workflow.test", instance_id="WFI-2")

    with caplog.at_level(logging.INFO, logger="advanced_workflow.test"):
        logger.info("hello", extra={"action_id": "A1"})

    record = caplog.records[-1]
    assert record.instance_id == "WFI-2"
    assert record.action_id == "A1"
    assert record.correlation_id == "COR-bound"


def test_prefixed_ids() -> None:
    assert generate_instance_id().startswith("WFI-")
    assert generate_instance_id() != generate_instance_id()
    assert generate_correlation_id().startswith("COR-")
