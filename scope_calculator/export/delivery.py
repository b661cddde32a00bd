"""Delivery of the summary PDF to the CRM attachment webhook."""

import logging
from typing import Any, Dict, Optional

import httpx

from ..models.claim import ClaimRecord
from ..utils.errors import DeliveryError

logger = logging.getLogger(__name__)


class AttachmentDelivery:
    """
    Posts summary documents to a generic attachment webhook as multipart form data.

    Fields sent: ``file`` (the PDF), ``related_id`` (CRM record id),
    ``attachment_type``, ``description`` and ``filename``.
    """

    def __init__(
        self,
        webhook_url: str,
        attachment_type: str = "Document",
        description: str = "Scope of Work Summary",
        filename: str = "Scope Summary.pdf",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            webhook_url: Attachment endpoint URL
            attachment_type: CRM attachment type label
            description: Attachment description shown in the CRM
            filename: Name the attachment is stored under
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.webhook_url = webhook_url
        self.attachment_type = attachment_type
        self.description = description
        self.filename = filename
        self.timeout = timeout
        self.transport = transport

    async def send(
        self,
        pdf_bytes: bytes,
        related_id: str,
        attachment_type: Optional[str] = None,
        description: Optional[str] = None,
        filename: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Upload one PDF.

        Returns:
            Dict with the delivered filename, related id and webhook status

        Raises:
            DeliveryError: Missing related id, transport failure or non-2xx reply
        """
        if not related_id:
            raise DeliveryError.missing_customer()

        filename = filename or self.filename
        data = {
            "related_id": related_id,
            "attachment_type": attachment_type or self.attachment_type,
            "description": description or self.description,
            "filename": filename,
        }
        files = {"file": (filename, pdf_bytes, "application/pdf")}

        logger.info(
            f"Sending attachment: filename={filename}, related_id={related_id}, "
            f"size={len(pdf_bytes)} bytes"
        )

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, data=data, files=files)
        except httpx.HTTPError as e:
            logger.error(f"Attachment webhook unreachable: {str(e)}")
            raise DeliveryError.transport_failed(e)

        if not response.is_success:
            logger.error(
                f"Attachment webhook failed: {response.status_code} - {response.text[:500]}"
            )
            raise DeliveryError.upstream_rejected(response.status_code, response.text)

        logger.info(f"Attachment delivered: status={response.status_code}")
        return {
            "success": True,
            "filename": filename,
            "related_id": related_id,
            "status_code": response.status_code,
        }

    async def send_summary(self, record: ClaimRecord, pdf_bytes: bytes) -> Dict[str, Any]:
        """Deliver a record's summary to its customer's CRM record."""
        if record.customer is None or not record.customer.jnid:
            raise DeliveryError.missing_customer()
        return await self.send(pdf_bytes, related_id=record.customer.jnid)
