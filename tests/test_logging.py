import json
import logging

import pytest
import structlog

from dg_awskms.logging import configure_logging


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()
    logging.basicConfig(force=True, handlers=[logging.NullHandler()])


def test_events_are_json_lines_named_after_module(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("debug")
    structlog.get_logger("dg_awskms.handles").info("kms.handle.constructed", generation="v2")

    record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert record["msg"] == "kms.handle.constructed"
    assert record["component"] == "handles"
    assert record["level"] == "info"
    assert record["generation"] == "v2"
    assert "ts" in record
    assert "logger" not in record


def test_level_filters_lower_events(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("WARNING")
    logger = structlog.get_logger("dg_awskms.aead")
    logger.debug("kms.encrypt", key_arn="arn")
    logger.warning("kms.decrypt.failed", key_arn="arn", error="ClientError")

    lines = capsys.readouterr().err.strip().splitlines()
    assert [json.loads(line)["msg"] for line in lines] == ["kms.decrypt.failed"]
