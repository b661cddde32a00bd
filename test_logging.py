"""Tests for the session context attached to log records."""

import asyncio
import logging

import pytest

from scope_calculator.utils.logging import ContextFilter, clear_context, set_context


def _stamped(stage_filter: ContextFilter = None) -> logging.LogRecord:
    record = logging.LogRecord("scope", logging.INFO, __file__, 1, "message", None, None)
    (stage_filter or ContextFilter()).filter(record)
    return record


@pytest.fixture(autouse=True)
def _reset_context():
    clear_context()
    yield
    clear_context()


def test_filter_defaults_missing_fields():
    record = _stamped()

    assert record.session_id == "-"
    assert record.stage == "-"


def test_set_and_clear_context():
    set_context(session_id="abc123", stage="review")
    record = _stamped()
    assert (record.session_id, record.stage) == ("abc123", "review")

    set_context(stage="send")
    assert _stamped().session_id == "abc123"

    clear_context()
    assert _stamped().session_id == "-"


@pytest.mark.parametrize("stage", ["parse_text", "send"])
def test_formatter_renders_context(stage):
    set_context(session_id="s-1", stage=stage)

    rendered = logging.Formatter("[%(session_id)s/%(stage)s] %(message)s").format(_stamped())

    assert rendered == f"[s-1/{stage}] message"


@pytest.mark.asyncio
async def test_concurrent_tasks_keep_their_own_session():
    seen = {}

    async def request(session_id: str, pause: float):
        set_context(session_id=session_id, stage="review")
        await asyncio.sleep(pause)
        seen[session_id] = _stamped().session_id

    await asyncio.gather(request("first", 0.02), request("second", 0.0))

    assert seen == {"first": "first", "second": "second"}
    assert _stamped().session_id == "-"
