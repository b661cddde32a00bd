"""Repair and parse model output into a claim record."""

import json
import logging
import re
from typing import Any, Optional, Tuple

from ..models.claim import ClaimRecord
from ..utils.errors import MalformedExtractionError
from .validation import validate_claim_payload

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_CHARS = 500

_OPENING_FENCE = re.compile(r'^```[^\n]*\n')
_CLOSING_FENCE = re.compile(r'\n?```\s*$')
_TRAILING_COMMA = re.compile(r',(\s*[}\]])')

# A "key": "value" pair on one line. The value ends at the first quote that is
# followed by structure (a comma and the next key, a closing bracket, or the
# end of the line), so bare quotes inside the value are captured with it.
_STRING_PAIR = re.compile(
    r'"((?:[^"\\\n]|\\.)*)"(\s*:\s*)"(.*?)"(?=\s*(?:,\s*"|,\s*$|[}\]]|$))',
    re.MULTILINE
)

# Stand-in for already-escaped quotes while bare ones are escaped.
_ESCAPED_QUOTE_PLACEHOLDER = '￿'


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite number {name} is not valid JSON")


def _loads(text: str) -> Any:
    return json.loads(text, parse_constant=_reject_constant)


class ScopeResponseParser:
    """
    Turns raw model text into structured claim data.

    Tries, in order:
    1. The fence-stripped text as-is
    2. The fence-stripped text after structural repair
    3. The outermost {...} span of the text after structural repair

    Whatever parses is then validated into a ClaimRecord.
    """

    @staticmethod
    def strip_markdown_fence(response_text: str) -> str:
        """
        Remove a surrounding markdown code fence, whatever its language tag.

        Args:
            response_text: Raw response text

        Returns:
            Trimmed text without the opening and closing fence lines
        """
        text = (response_text or "").strip()
        if text.startswith("```"):
            text = _OPENING_FENCE.sub('', text, count=1)
            text = _CLOSING_FENCE.sub('', text, count=1)
        return text.strip()

    @staticmethod
    def escape_inner_quotes(value: str) -> str:
        """Escape bare double quotes; leave existing \\" sequences as they are."""
        protected = value.replace('\\"', _ESCAPED_QUOTE_PLACEHOLDER)
        escaped = protected.replace('"', '\\"')
        return escaped.replace(_ESCAPED_QUOTE_PLACEHOLDER, '\\"')

    @staticmethod
    def repair_json(text: str) -> str:
        """
        Fix the malformed-JSON patterns models commonly emit.

        - trailing commas before a closing brace or bracket
        - unescaped double quotes inside string values

        Args:
            text: JSON-like text

        Returns:
            Repaired text (not guaranteed to be valid JSON)
        """
        repaired = _TRAILING_COMMA.sub(r'\1', text)

        def _escape_pair(match: "re.Match[str]") -> str:
            key, colon, value = match.group(1), match.group(2), match.group(3)
            return f'"{key}"{colon}"{ScopeResponseParser.escape_inner_quotes(value)}"'

        return _STRING_PAIR.sub(_escape_pair, repaired)

    @staticmethod
    def outermost_object(text: str) -> Optional[str]:
        """Return the span from the first '{' to the last '}', if any."""
        start_idx = text.find('{')
        end_idx = text.rfind('}')
        if start_idx == -1 or end_idx <= start_idx:
            return None
        return text[start_idx:end_idx + 1]

    @staticmethod
    def load_json(
        response_text: str,
        preview_chars: int = DEFAULT_PREVIEW_CHARS
    ) -> Tuple[Any, str]:
        """
        Parse model text into a JSON value, repairing it if needed.

        Args:
            response_text: Raw model output
            preview_chars: Size of the preview kept when every attempt fails

        Returns:
            Tuple of (parsed JSON value, cleaned text)

        Raises:
            MalformedExtractionError: If no stage produced valid JSON
        """
        cleaned = ScopeResponseParser.strip_markdown_fence(response_text)

        try:
            return _loads(cleaned), cleaned
        except ValueError as e:
            logger.debug(f"Direct parse failed: {str(e)}")

        last_error: Exception
        try:
            parsed = _loads(ScopeResponseParser.repair_json(cleaned))
            logger.debug("Parsed model output after structural repair")
            return parsed, cleaned
        except ValueError as e:
            last_error = e
            logger.warning(f"Repaired parse failed: {str(e)}")

        candidate = ScopeResponseParser.outermost_object(cleaned)
        if candidate is None:
            last_error = ValueError("No JSON object found in response")
        else:
            try:
                parsed = _loads(ScopeResponseParser.repair_json(candidate))
                logger.info("Parsed model output from embedded JSON object")
                return parsed, cleaned
            except ValueError as e:
                last_error = e
                logger.warning(f"Embedded object parse failed: {str(e)}")

        logger.error(f"All parsing attempts failed. Cleaned text preview: {cleaned[:preview_chars]}")
        raise MalformedExtractionError.from_parse_failure(cleaned, last_error, preview_chars)


def parse_claim_response(
    response_text: str,
    preview_chars: int = DEFAULT_PREVIEW_CHARS
) -> ClaimRecord:
    """
    Run the full repair pipeline and validate the result.

    Args:
        response_text: Raw model output
        preview_chars: Size of the preview attached to errors

    Returns:
        Validated ClaimRecord

    Raises:
        MalformedExtractionError: Text could not be coerced into JSON
        InvalidShapeError: JSON parsed but has no usable trades
    """
    data, cleaned = ScopeResponseParser.load_json(response_text, preview_chars)
    return validate_claim_payload(data, preview=cleaned[:preview_chars])
