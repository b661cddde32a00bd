"""Tests for the Bedrock Converse wrapper using a stubbed runtime client."""

from unittest.mock import AsyncMock, Mock

import pytest
from botocore.exceptions import ClientError

from scope_calculator.utils import bedrock_client as bedrock_module
from scope_calculator.utils.bedrock_client import BedrockClient
from scope_calculator.utils.errors import ErrorType, UpstreamUnavailableError


CONVERSE_RESPONSE = {
    "output": {"message": {"role": "assistant", "content": [{"text": '{"trades": []}'}]}},
    "stopReason": "end_turn",
    "usage": {"inputTokens": 10, "outputTokens": 5},
}


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} happened"}}, "Converse")


@pytest.mark.asyncio
async def test_invoke_parses_converse_response():
    runtime = Mock()
    runtime.converse.return_value = CONVERSE_RESPONSE
    client = BedrockClient(model_id="test-model", runtime=runtime)

    result = await client.invoke(messages=[{"role": "user", "content": [{"text": "hi"}]}])

    assert result["text"] == '{"trades": []}'
    assert result["stop_reason"] == "end_turn"
    assert runtime.converse.call_args.kwargs["modelId"] == "test-model"


@pytest.mark.asyncio
async def test_throttling_surfaces_as_rate_limit_with_single_attempt():
    runtime = Mock()
    runtime.converse.side_effect = _client_error("ThrottlingException")
    client = BedrockClient(max_retries=1, runtime=runtime)

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await client.invoke(messages=[])

    error = exc_info.value
    assert error.error_type == ErrorType.UPSTREAM_RATE_LIMIT
    assert error.context.message == "API rate limit reached. Please wait a moment and try again."
    assert error.context.recoverable is True
    assert runtime.converse.call_count == 1


@pytest.mark.asyncio
async def test_retryable_errors_back_off_then_succeed(monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr(bedrock_module.asyncio, "sleep", sleep)
    runtime = Mock()
    runtime.converse.side_effect = [_client_error("ServiceUnavailableException"), CONVERSE_RESPONSE]
    client = BedrockClient(max_retries=3, runtime=runtime)

    result = await client.invoke(messages=[])

    assert result["stop_reason"] == "end_turn"
    assert runtime.converse.call_count == 2
    sleep.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_validation_errors_are_not_retried():
    runtime = Mock()
    runtime.converse.side_effect = _client_error("ValidationException")
    client = BedrockClient(max_retries=3, runtime=runtime)

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await client.invoke(messages=[])

    assert exc_info.value.error_type == ErrorType.UPSTREAM_INVALID_REQUEST
    assert exc_info.value.context.recoverable is False
    assert runtime.converse.call_count == 1


def test_auth_mode_follows_environment(monkeypatch):
    monkeypatch.delenv("AWS_BEARER_TOKEN_BEDROCK", raising=False)
    monkeypatch.setenv("BEDROCK_API_KEY", "  ")
    assert BedrockClient(runtime=Mock()).auth_mode == "iam"

    monkeypatch.setenv("BEDROCK_API_KEY", "key-123")
    assert bedrock_module.resolve_bearer_token() == "key-123"
    assert BedrockClient(runtime=Mock()).auth_mode == "api-key"
