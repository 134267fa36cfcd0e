"""Tests for structured logging utilities."""

import logging

import pytest
from freezegun import freeze_time
from unittest.mock import patch

from src.utils.logging import (
    correlation_context,
    get_correlation_id,
    get_structured_logger,
    log_timing,
    mask_identifier,
    mask_sensitive_data,
    truncate_text,
)


@pytest.mark.unit
def test_correlation_context_sets_and_restores():
    assert get_correlation_id() is None

    with correlation_context() as correlation_id:
        assert correlation_id.startswith("req_")
        assert get_correlation_id() == correlation_id
        with correlation_context("req_inner") as inner:
            assert get_correlation_id() == inner
        assert get_correlation_id() == correlation_id

    assert get_correlation_id() is None


@pytest.mark.unit
@pytest.mark.parametrize(
    "text,secret",
    [
        ("Authorization: Bearer eyJhbGciOi.abc.def", "eyJhbGciOi"),
        ('{"access_token": "tok_live_abcdefghijklmnop"}', "tok_live_abcdefghijklmnop"),
        ("contact mario.rossi@example.it", "mario.rossi@example.it"),
        ("call +39 02 1234567 now", "1234567"),
    ],
)
def test_mask_sensitive_data(text, secret):
    assert secret not in mask_sensitive_data(text)


@pytest.mark.unit
def test_mask_identifier_shortens_long_values():
    masked = mask_identifier("agency_01HZX3K9ABCDEFG")

    assert masked.startswith("agen...")
    assert "01HZX3K9ABCDEFG" not in masked
    assert mask_identifier("loc_001") == "loc_001"


@pytest.mark.unit
def test_truncate_text():
    assert truncate_text(None) is None
    assert truncate_text("short") == "short"
    assert truncate_text("a" * 250) == "a" * 200 + "..."


@pytest.mark.unit
def test_structured_logger_adds_correlation_id(caplog):
    logger = get_structured_logger("tests.logging")

    with caplog.at_level(logging.INFO, logger="tests.logging"):
        with correlation_context("req_abc"):
            logger.info("Publish attempt completed", location_id="loc_001")

    record = caplog.records[-1]
    assert record.correlation_id == "req_abc"
    assert record.location_id == "loc_001"


@pytest.mark.unit
def test_log_timing_warns_on_slow_operation(caplog):
    logger = get_structured_logger("tests.timing")

    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        with patch("src.utils.logging.LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS", 100):
            with caplog.at_level(logging.INFO, logger="tests.timing"):
                with log_timing("provider_publish", logger=logger, location_id="loc_001"):
                    frozen_time.tick(0.5)

    messages = [record.getMessage() for record in caplog.records]
    assert "Completed provider_publish" in messages
    assert "Slow operation detected: provider_publish" in messages
