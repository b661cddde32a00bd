"""Async wrapper around the Bedrock Converse API used for scope extraction."""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError
from dotenv import load_dotenv

from .errors import UpstreamUnavailableError, handle_upstream_error

load_dotenv()

logger = logging.getLogger(__name__)

BEARER_TOKEN_VARIABLES = ("AWS_BEARER_TOKEN_BEDROCK", "BEDROCK_API_KEY")

# Only these error codes are worth another attempt.
RETRYABLE_ERROR_CODES = frozenset({
    "ThrottlingException",
    "TooManyRequestsException",
    "ServiceUnavailableException",
    "InternalServerException",
    "RequestTimeout",
    "RequestTimeoutException",
})


def resolve_bearer_token() -> Optional[str]:
    """First non-blank Bedrock API key found in the environment."""
    for name in BEARER_TOKEN_VARIABLES:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def build_runtime(region: str, timeout: int, bearer_token: Optional[str] = None):
    """
    Create a bedrock-runtime client.

    botocore's own retries are disabled; BedrockClient.invoke owns the
    attempt budget. With a bearer token the client signs with the API key,
    otherwise it falls back to the IAM credential chain.
    """
    options: Dict[str, Any] = {
        "region_name": region,
        "connect_timeout": timeout,
        "read_timeout": timeout,
        "retries": {"max_attempts": 0},
    }
    if bearer_token:
        os.environ.setdefault("AWS_BEARER_TOKEN_BEDROCK", bearer_token)
        options["signature_version"] = "bearer"
    return boto3.client("bedrock-runtime", config=Config(**options))


class BedrockClient:
    """
    Sends Converse requests for the extraction plugin.

    Attributes:
        model_id: Converse-capable model used for every request
        max_retries: Total attempts per invoke(); 1 means no retrying
        runtime: The underlying bedrock-runtime client
    """

    def __init__(
        self,
        region: str = "us-east-1",
        model_id: str = "amazon.nova-pro-v1:0",
        timeout: int = 120,
        max_retries: int = 1,
        runtime: Optional[Any] = None
    ):
        self.region = region
        self.model_id = model_id
        self.max_retries = max(1, max_retries)

        bearer_token = resolve_bearer_token()
        self.auth_mode = "api-key" if bearer_token else "iam"
        self.runtime = runtime if runtime is not None else build_runtime(region, timeout, bearer_token)

        logger.info(
            f"BedrockClient ready: region={region}, model={model_id}, "
            f"auth={self.auth_mode}, attempts={self.max_retries}"
        )

    async def invoke(
        self,
        messages: List[Dict[str, Any]],
        temperature: float = 0.0,
        max_tokens: int = 8192,
        system_prompts: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """
        Run one Converse request, retrying throttling and transient faults.

        Args:
            messages: Converse messages (role plus content blocks)
            temperature: Sampling temperature
            max_tokens: Generation limit
            system_prompts: Optional system blocks

        Returns:
            Dict with 'text', 'stop_reason', 'usage', 'role' and raw 'content'

        Raises:
            UpstreamUnavailableError: When the final attempt fails
        """
        request: Dict[str, Any] = {
            "modelId": self.model_id,
            "messages": messages,
            "inferenceConfig": {"temperature": temperature, "maxTokens": max_tokens},
        }
        if system_prompts:
            request["system"] = system_prompts

        attempt = 0
        while True:
            attempt += 1
            try:
                response = await asyncio.to_thread(self.runtime.converse, **request)
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code", "Unknown")
                logger.warning(f"Converse failed on attempt {attempt}/{self.max_retries}: {code}")
                if code not in RETRYABLE_ERROR_CODES or attempt >= self.max_retries:
                    handle_upstream_error(e, "invoke", logger)
                delay = 2 ** (attempt - 1)
                logger.info(f"Backing off {delay}s before retrying")
                await asyncio.sleep(delay)
                continue
            except Exception as e:
                logger.error(f"Unexpected error invoking model: {str(e)}")
                raise UpstreamUnavailableError.unexpected(e, "invoke")

            logger.info(
                f"Converse succeeded: stop_reason={response.get('stopReason')}, "
                f"usage={response.get('usage')}"
            )
            return self._parse_converse_response(response)

    @staticmethod
    def _parse_converse_response(response: Dict[str, Any]) -> Dict[str, Any]:
        message = response.get("output", {}).get("message", {})
        content = message.get("content", [])
        return {
            "content": content,
            "role": message.get("role", "assistant"),
            "text": "\n".join(block["text"] for block in content if "text" in block),
            "stop_reason": response.get("stopReason", "unknown"),
            "usage": response.get("usage", {}),
        }
