"""
Wizard workflow for the scope calculator.

Ties the collaborators together for one session at a time: extraction from
text or documents, review updates, finalization, PDF export and delivery.
The HTTP layer calls into ScopeWizard and never touches the plugins or the
session store directly.
"""

import logging
import uuid
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

from .export.delivery import AttachmentDelivery
from .export.summary_pdf import render_summary_pdf, summary_filename
from .models.claim import ClaimRecord, Customer, Signature
from .plugins.pdf_extractor import PDFExtractorPlugin
from .plugins.scope_parser import ScopeParserPlugin
from .scope import updates
from .scope.aggregator import compute_payment_schedule, compute_totals, work_not_doing
from .storage.session_store import SessionStore
from .utils.bedrock_client import BedrockClient
from .utils.config import Config
from .utils.errors import ErrorContext, ErrorType, ScopeProcessingError
from .utils.logging import clear_context, set_context, setup_logging

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def review_payload(record: ClaimRecord) -> Dict[str, Any]:
    """Record plus everything derived from it, recomputed on each call."""
    totals = compute_totals(record)
    schedule = compute_payment_schedule(totals, record.deductible)
    return {
        "record": record.to_dict(),
        "totals": totals.to_dict(),
        "schedule": schedule.to_dict(),
        "workNotDoing": work_not_doing(record.trades),
    }


class ScopeWizard:
    """
    Session-scoped operations behind the wizard pages.

    Attributes:
        config: Loaded configuration
        store: Per-session key-value storage
        parser: Model-backed extraction plugin
        pdf_extractor: PDF text extraction plugin
        delivery: Attachment webhook client
    """

    def __init__(
        self,
        config: Config,
        store: SessionStore,
        parser: ScopeParserPlugin,
        pdf_extractor: PDFExtractorPlugin,
        delivery: AttachmentDelivery
    ):
        self.config = config
        self.store = store
        self.parser = parser
        self.pdf_extractor = pdf_extractor
        self.delivery = delivery

    def new_session(self) -> Dict[str, Any]:
        session_id = uuid.uuid4().hex
        logger.info(f"Started wizard session {session_id}")
        return {
            "sessionId": session_id,
            "maxFileSizeMb": self.config.uploads.max_file_size_mb,
            "allowedTypes": self.config.uploads.allowed_types,
        }

    def load_record(self, session_id: str) -> Optional[ClaimRecord]:
        return self.store.load_record(session_id)

    async def parse_text(
        self,
        session_id: str,
        text: str,
        rep: str = "",
        customer: Optional[Customer] = None
    ) -> Dict[str, Any]:
        """
        Extract a claim record from pasted text and store it.

        The text is stored as the session draft before the model is called,
        so it is still there when extraction fails.
        """
        set_context(session_id=session_id, stage="parse_text")
        self.store.save_draft(session_id, text)

        record = await self.parser.parse_scope_text(text)
        return self._store_extraction(session_id, record, rep, customer)

    async def process_document(
        self,
        session_id: str,
        filename: str,
        document_bytes: bytes,
        rep: str = "",
        customer: Optional[Customer] = None
    ) -> Dict[str, Any]:
        set_context(session_id=session_id, stage="process_document")
        record = await self.parser.parse_scope_document(document_bytes, document_name=filename)
        return self._store_extraction(session_id, record, rep, customer)

    def extract_text(self, session_id: str, filename: str, pdf_bytes: bytes) -> Dict[str, Any]:
        """Pull the text out of a PDF and keep it as the session draft."""
        set_context(session_id=session_id, stage="extract_text")
        text = self.pdf_extractor.extract_text(pdf_bytes, filename=filename)
        self.store.save_draft(session_id, text)
        return {"success": True, "text": text, "filename": filename, "sourceType": "pdf"}

    def _store_extraction(
        self,
        session_id: str,
        record: ClaimRecord,
        rep: str,
        customer: Optional[Customer]
    ) -> Dict[str, Any]:
        record = replace(record, rep=rep or "", customer=customer)
        self.store.save_record(session_id, record)
        logger.info(f"Extraction stored: trades={len(record.trades)}")
        return review_payload(record)

    def apply_action(self, session_id: str, record: ClaimRecord, action: Dict[str, Any]) -> Dict[str, Any]:
        set_context(session_id=session_id, stage="review")
        updated = updates.apply_action(record, action)
        self.store.save_record(session_id, updated)
        logger.debug(f"Applied review action {action.get('type')}")
        return review_payload(updated)

    def finalize(
        self,
        session_id: str,
        record: ClaimRecord,
        rep: Optional[str] = None,
        signature: Optional[Signature] = None
    ) -> Dict[str, Any]:
        set_context(session_id=session_id, stage="finalize")
        finalized = updates.finalize(record, rep=rep, signature=signature)
        self.store.save_record(session_id, finalized)
        return review_payload(finalized)

    def export_pdf(self, session_id: str, record: ClaimRecord) -> Tuple[bytes, str]:
        set_context(session_id=session_id, stage="export")
        pdf_bytes = render_summary_pdf(
            record,
            title=self.config.export.title,
            page_size=self.config.export.page_size
        )
        return pdf_bytes, summary_filename(record)

    async def send(self, session_id: str, record: ClaimRecord) -> Dict[str, Any]:
        """Render the summary and deliver it to the customer's CRM record."""
        set_context(session_id=session_id, stage="send")
        pdf_bytes, _ = self.export_pdf(session_id, record)
        result = await self.delivery.send_summary(record, pdf_bytes)
        result["message"] = "Document sent to CRM"
        return result

    def start_over(self, session_id: str) -> None:
        set_context(session_id=session_id, stage="start_over")
        self.store.clear(session_id)
        clear_context()


# Global instance (initialized on first use)
_wizard: Optional[ScopeWizard] = None


def _initialize_system(config_path: str = "config.yaml") -> ScopeWizard:
    """
    Build the wizard and its collaborators from configuration.

    Called lazily on the first request so importing the module has no side
    effects on AWS or the filesystem.
    """
    try:
        logger.info("Initializing scope calculator")

        config = Config.load(config_path)
        setup_logging(
            level=config.logging.level,
            log_format=config.logging.format,
            log_file=config.logging.file
        )
        logger.info(f"Configuration loaded: region={config.aws_region}, model={config.bedrock.model_id}")

        bedrock_client = BedrockClient(
            region=config.aws_region,
            model_id=config.bedrock.model_id,
            timeout=config.bedrock.timeout,
            max_retries=config.bedrock.max_retries
        )

        parser = ScopeParserPlugin(
            bedrock_client,
            regenerate_attempts=config.extraction.regenerate_attempts,
            preview_chars=config.extraction.preview_chars,
            max_tokens=config.bedrock.max_tokens
        )

        delivery = AttachmentDelivery(
            webhook_url=config.delivery.webhook_url,
            attachment_type=config.delivery.attachment_type,
            description=config.delivery.description,
            filename=config.export.filename,
            timeout=config.delivery.timeout
        )
        if not config.delivery.webhook_url:
            logger.warning("No delivery webhook configured; sending summaries will fail")

        wizard = ScopeWizard(
            config=config,
            store=SessionStore(),
            parser=parser,
            pdf_extractor=PDFExtractorPlugin(),
            delivery=delivery
        )
        logger.info("System initialization complete")
        return wizard

    except ScopeProcessingError:
        raise

    except Exception as e:
        logger.error(f"System initialization failed: {str(e)}", exc_info=True)
        raise ScopeProcessingError(
            ErrorContext(
                error_type=ErrorType.INITIALIZATION_FAILED,
                message=f"Failed to initialize scope calculator: {str(e)}",
                recoverable=False,
                original_exception=e
            )
        )


def get_wizard() -> ScopeWizard:
    global _wizard
    if _wizard is None:
        _wizard = _initialize_system()
    return _wizard
