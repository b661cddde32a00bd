"""Scope parsing plugin for Semantic Kernel using AWS Bedrock."""

import logging
import time
from typing import Dict, Any, Optional, List

from semantic_kernel.functions import kernel_function

from ..extraction.response_parser import DEFAULT_PREVIEW_CHARS, parse_claim_response
from ..models.claim import ClaimRecord
from ..utils.bedrock_client import BedrockClient
from ..utils.errors import ExtractionError

logger = logging.getLogger(__name__)


PARSING_PROMPT = """You are an expert parser of insurance restoration documents for construction projects. Extract ALL scope items from the document and organize them by trade.

Instructions:
1. Read the entire document, including tables, appendices and summary sections.
2. Extract every line item, however small. Keep labor and material lines separate.
3. Extract the deductible amount if it is mentioned.
4. Extract the claim number and the insurance adjuster's name and email if available.
5. Group items by trade. Typical trades: Roofing, Gutters & Downspouts, Siding, Windows & Doors, Painting, Decking/Framing, Fencing, General Conditions. Use "Miscellaneous" when the trade cannot be determined.

For each line item extract:
- documentLineNumber: the line number exactly as printed in the document ("01", "Line 1", ...)
- quantity: number and unit ("120 LF", "45 SQ", "1 EA"); use "1 EA" when none is listed
- description: the complete work description as written
- rcv: Replacement Cost Value as a number without symbols or commas (required)
- acv: Actual Cash Value as a number, only when the document lists a separate value

RCV and ACV:
- ACV is RCV minus depreciation and is usually lower than RCV.
- If the document shows only one amount for an item, use it for rcv and OMIT acv. Never copy rcv into acv.

Do not extract sales tax, material tax or any other tax lines.

Return a JSON object with exactly this structure:

{
  "deductible": 0,
  "claimNumber": "",
  "claimAdjuster": {"name": "", "email": ""},
  "trades": [
    {
      "id": "trade-1",
      "name": "Roofing",
      "checked": false,
      "supplements": [],
      "lineItems": [
        {
          "id": "item-1",
          "documentLineNumber": "01",
          "quantity": "45 SQ",
          "description": "Tear off composition shingles",
          "rcv": 2500.00,
          "acv": 1500.00,
          "checked": false,
          "notes": ""
        }
      ]
    }
  ]
}

Rules:
- Every trade and line item has "checked": false.
- Ids use the format "trade-1", "trade-2", "item-1", "item-2", ...
- Keep line items in the same order as the document.
- Deductible is a number, 0 if not found.
- Return ONLY the JSON object, no additional text or explanation."""


STRICT_RETRY_INSTRUCTIONS = """Your previous answer could not be read as JSON ({reason}).
Answer again with a single valid JSON object and nothing else:
- no markdown code fences and no commentary
- no trailing commas
- escape every double quote inside string values as \\"
- the top-level object must contain a "trades" array"""


class ScopeParserPlugin:
    """
    Semantic Kernel plugin that turns claim documents into claim records.

    Sends pasted text or an uploaded PDF/image to the model, then runs the
    reply through the extraction repair pipeline. When the reply cannot be
    repaired, the model may be asked again with stricter instructions, up
    to ``regenerate_attempts`` times.
    """

    def __init__(
        self,
        bedrock_client: BedrockClient,
        regenerate_attempts: int = 0,
        preview_chars: int = DEFAULT_PREVIEW_CHARS,
        max_tokens: int = 8192
    ):
        """
        Initialize scope parser plugin.

        Args:
            bedrock_client: Configured BedrockClient instance
            regenerate_attempts: Extra model calls allowed after a failed parse
            preview_chars: Size of the text preview attached to parse errors
            max_tokens: Maximum tokens the model may generate
        """
        self.bedrock = bedrock_client
        self.regenerate_attempts = max(0, regenerate_attempts)
        self.preview_chars = preview_chars
        self.max_tokens = max_tokens
        logger.info(f"Initialized ScopeParserPlugin (regenerate_attempts={self.regenerate_attempts})")

    @kernel_function(
        name="parse_scope_text",
        description=(
            "Extract trades, line items, deductible and claim details from the "
            "pasted text of an insurance scope document."
        )
    )
    async def parse_scope_text(self, text: str) -> ClaimRecord:
        """
        Parse pasted document text into a claim record.

        Args:
            text: Document text as pasted by the user

        Returns:
            Validated ClaimRecord

        Raises:
            UpstreamUnavailableError: Model call failed; safe to retry
            MalformedExtractionError: Reply could not be repaired into JSON
            InvalidShapeError: Reply parsed but has no usable trades
        """
        logger.info(f"Starting scope parsing from text ({len(text)} characters)")
        content = [{"text": f"{PARSING_PROMPT}\n\nDocument to parse:\n\n{text}"}]
        return await self._extract(content, source="text")

    @kernel_function(
        name="parse_scope_document",
        description=(
            "Extract trades, line items, deductible and claim details from an "
            "insurance scope PDF or image."
        )
    )
    async def parse_scope_document(
        self,
        document_bytes: bytes,
        document_name: str = "document",
        document_format: Optional[str] = None
    ) -> ClaimRecord:
        """
        Parse a claim document using model document analysis.

        Args:
            document_bytes: Raw document bytes (PDF, JPEG, PNG, ...)
            document_name: Name/identifier for the document
            document_format: Optional format hint ("pdf", "jpeg", "png")

        Returns:
            Validated ClaimRecord
        """
        if document_format is None:
            document_format = self._detect_document_format(document_bytes)

        logger.info(
            f"Starting scope parsing: {document_name} "
            f"({len(document_bytes)} bytes, format={document_format})"
        )
        content = [
            self._document_block(document_bytes, document_format),
            {"text": PARSING_PROMPT},
        ]
        return await self._extract(content, source=document_name)

    async def _extract(self, content: List[Dict[str, Any]], source: str) -> ClaimRecord:
        messages: List[Dict[str, Any]] = [{"role": "user", "content": content}]
        start_time = time.time()
        attempt = 0

        while True:
            response = await self.bedrock.invoke(
                messages=messages,
                temperature=0.0,
                max_tokens=self.max_tokens
            )
            response_text = response.get("text", "")
            logger.debug(f"Model response length: {len(response_text)} characters")

            try:
                record = parse_claim_response(response_text, self.preview_chars)
            except ExtractionError as e:
                if attempt >= self.regenerate_attempts:
                    logger.error(f"Extraction failed for {source}: {e.context.message[:200]}")
                    raise
                attempt += 1
                logger.warning(
                    f"Extraction failed for {source}, regenerating "
                    f"({attempt}/{self.regenerate_attempts}): {e.error_type.value}"
                )
                messages = messages + [
                    {"role": "assistant", "content": [{"text": response_text or "(empty)"}]},
                    {"role": "user", "content": [{"text": STRICT_RETRY_INSTRUCTIONS.format(
                        reason=e.error_type.value.lower()
                    )}]},
                ]
                continue

            logger.info(
                f"Scope parsing complete for {source}: trades={len(record.trades)}, "
                f"deductible={record.deductible} in {time.time() - start_time:.3f}s"
            )
            return record

    @staticmethod
    def _detect_document_format(document_bytes: bytes) -> str:
        """
        Detect document format from magic bytes.

        Returns:
            Format string ("pdf", "jpeg", "png", "gif", "webp")
        """
        if document_bytes.startswith(b'%PDF'):
            return "pdf"
        elif document_bytes.startswith(b'\xff\xd8\xff'):
            return "jpeg"
        elif document_bytes.startswith(b'\x89PNG\r\n\x1a\n'):
            return "png"
        elif document_bytes.startswith(b'GIF87a') or document_bytes.startswith(b'GIF89a'):
            return "gif"
        elif document_bytes.startswith(b'RIFF') and b'WEBP' in document_bytes[:12]:
            return "webp"
        logger.warning("Unknown document format, defaulting to PDF")
        return "pdf"

    @staticmethod
    def _document_block(document_bytes: bytes, document_format: str) -> Dict[str, Any]:
        # boto3's converse API takes raw bytes, not base64
        if document_format == "pdf":
            return {
                "document": {
                    "format": "pdf",
                    "name": "claim-document",
                    "source": {"bytes": document_bytes}
                }
            }
        return {
            "image": {
                "format": document_format,
                "source": {"bytes": document_bytes}
            }
        }
