"""Tests for the scope parser plugin with a mocked Bedrock client."""

import json
from unittest.mock import AsyncMock, Mock

import pytest
from botocore.exceptions import ClientError

from scope_calculator.plugins.scope_parser import ScopeParserPlugin
from scope_calculator.utils.bedrock_client import BedrockClient
from scope_calculator.utils.errors import (
    ErrorType,
    InvalidShapeError,
    MalformedExtractionError,
    UpstreamUnavailableError,
)


VALID_REPLY = json.dumps({
    "deductible": 2500,
    "claimNumber": "CLM-1",
    "claimAdjuster": {"name": "Dana Reyes", "email": "dana@example.com"},
    "trades": [{
        "id": "trade-1",
        "name": "Roofing",
        "checked": False,
        "supplements": [],
        "lineItems": [
            {"id": "item-1", "documentLineNumber": "01", "quantity": "45 SQ",
             "description": "Remove composition shingles", "rcv": 4500.0, "acv": 3100.0,
             "checked": False, "notes": ""},
        ],
    }],
})


def _bedrock_returning(*texts):
    bedrock = Mock(spec=BedrockClient)
    bedrock.invoke = AsyncMock(side_effect=[{"text": text} for text in texts])
    return bedrock


@pytest.mark.asyncio
async def test_parse_scope_text_returns_record():
    bedrock = _bedrock_returning(f"```json\n{VALID_REPLY}\n```")
    plugin = ScopeParserPlugin(bedrock)

    record = await plugin.parse_scope_text("Line 01  Remove composition shingles  45 SQ  4,500.00")

    assert record.deductible == 2500.0
    assert record.claim_adjuster.email == "dana@example.com"
    assert record.trades[0].line_items[0].document_line_number == "01"

    messages = bedrock.invoke.call_args.kwargs["messages"]
    assert "Remove composition shingles" in messages[0]["content"][0]["text"]


@pytest.mark.asyncio
async def test_parse_scope_document_sends_document_block():
    bedrock = _bedrock_returning(VALID_REPLY)
    plugin = ScopeParserPlugin(bedrock)

    await plugin.parse_scope_document(b"%PDF-1.7 fake", document_name="estimate.pdf")

    content = bedrock.invoke.call_args.kwargs["messages"][0]["content"]
    assert content[0]["document"]["format"] == "pdf"
    assert content[0]["document"]["source"]["bytes"] == b"%PDF-1.7 fake"


@pytest.mark.asyncio
async def test_images_use_image_block():
    bedrock = _bedrock_returning(VALID_REPLY)
    plugin = ScopeParserPlugin(bedrock)

    await plugin.parse_scope_document(b"\x89PNG\r\n\x1a\nrest", document_name="photo.png")

    content = bedrock.invoke.call_args.kwargs["messages"][0]["content"]
    assert content[0]["image"]["format"] == "png"


@pytest.mark.asyncio
async def test_malformed_reply_without_regeneration_raises():
    bedrock = _bedrock_returning("I could not find any line items.")
    plugin = ScopeParserPlugin(bedrock)

    with pytest.raises(MalformedExtractionError):
        await plugin.parse_scope_text("some text")

    assert bedrock.invoke.await_count == 1


@pytest.mark.asyncio
async def test_regeneration_retries_with_stricter_instructions():
    bedrock = _bedrock_returning('{"deductible": 0}', VALID_REPLY)
    plugin = ScopeParserPlugin(bedrock, regenerate_attempts=1)

    record = await plugin.parse_scope_text("some text")

    assert record.trades[0].name == "Roofing"
    assert bedrock.invoke.await_count == 2
    retry_messages = bedrock.invoke.call_args.kwargs["messages"]
    assert retry_messages[-1]["role"] == "user"
    assert "single valid JSON object" in retry_messages[-1]["content"][0]["text"]


@pytest.mark.asyncio
async def test_regeneration_is_bounded():
    bedrock = _bedrock_returning('{"deductible": 0}', '{"deductible": 0}', '{"deductible": 0}')
    plugin = ScopeParserPlugin(bedrock, regenerate_attempts=2)

    with pytest.raises(InvalidShapeError):
        await plugin.parse_scope_text("some text")

    assert bedrock.invoke.await_count == 3


@pytest.mark.asyncio
async def test_upstream_errors_are_not_regenerated():
    bedrock = Mock(spec=BedrockClient)
    bedrock.invoke = AsyncMock(side_effect=UpstreamUnavailableError.from_client_error(
        ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "Converse"),
        operation="invoke",
    ))
    plugin = ScopeParserPlugin(bedrock, regenerate_attempts=3)

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await plugin.parse_scope_text("some text")

    assert exc_info.value.error_type == ErrorType.UPSTREAM_RATE_LIMIT
    assert exc_info.value.context.recoverable is True
    assert bedrock.invoke.await_count == 1
