"""PDF text extraction plugin for Semantic Kernel."""

import io
import logging
import re

import pdfplumber
import PyPDF2
from semantic_kernel.functions import kernel_function

from ..utils.errors import DocumentProcessingError

logger = logging.getLogger(__name__)

# Fewer characters than this means the PDF has no usable text layer.
MIN_TEXT_CHARACTERS = 100

_REPEATED_JUNK = re.compile(r'([^\w\s\-$.])\1{3,}')
_EXCESS_NEWLINES = re.compile(r'\n{3,}')


def clean_extracted_text(text: str) -> str:
    """
    Normalize raw PDF text before it is shown for editing.

    Trims each line, drops empty lines and non-printable characters, removes
    runs of four or more identical junk characters and collapses blank runs.
    """
    lines = [line.strip() for line in text.split('\n')]
    cleaned = '\n'.join(line for line in lines if line)

    cleaned = ''.join(
        char for char in cleaned
        if 32 <= ord(char) <= 126 or char in '\t\n\r'
    )

    cleaned = _REPEATED_JUNK.sub('', cleaned)
    cleaned = _EXCESS_NEWLINES.sub('\n\n', cleaned)
    return cleaned.strip()


class PDFExtractorPlugin:
    """
    Semantic Kernel plugin for extracting text from claim PDFs.

    Uses PyPDF2 as primary extractor with pdfplumber as fallback
    for better handling of complex layouts.
    """

    def __init__(self, min_characters: int = MIN_TEXT_CHARACTERS):
        self.min_characters = min_characters
        logger.info("Initialized PDFExtractorPlugin")

    @kernel_function(
        name="extract_pdf_text",
        description="Extract and clean the text of a claim PDF so it can be reviewed before parsing."
    )
    def extract_text(self, pdf_bytes: bytes, filename: str = "document.pdf") -> str:
        """
        Extract cleaned text from a PDF.

        Args:
            pdf_bytes: Raw PDF bytes
            filename: Name used in log and error messages

        Returns:
            Cleaned text content

        Raises:
            DocumentProcessingError: If extraction fails or the PDF is scanned
        """
        text = ""
        try:
            text = self._extract_with_pypdf2(pdf_bytes)
            if text.strip():
                logger.info(f"Extracted {len(text)} characters using PyPDF2 from {filename}")
            else:
                logger.warning("PyPDF2 returned empty text, trying pdfplumber")
        except Exception as e:
            logger.warning(f"PyPDF2 extraction failed: {str(e)}, trying pdfplumber")

        if not text.strip():
            try:
                text = self._extract_with_pdfplumber(pdf_bytes)
                logger.info(f"Extracted {len(text)} characters using pdfplumber from {filename}")
            except Exception as e:
                logger.error(f"pdfplumber extraction failed: {str(e)}")
                raise DocumentProcessingError.pdf_extraction_failed(filename, e)

        cleaned = clean_extracted_text(text)
        if len(cleaned) < self.min_characters:
            logger.warning(
                f"Only {len(cleaned)} characters extracted from {filename}; treating as scanned"
            )
            raise DocumentProcessingError.scanned_document(filename, len(cleaned))

        return cleaned

    @staticmethod
    def _extract_with_pypdf2(pdf_bytes: bytes) -> str:
        reader = PyPDF2.PdfReader(io.BytesIO(pdf_bytes))
        return '\n'.join(page.extract_text() or '' for page in reader.pages)

    @staticmethod
    def _extract_with_pdfplumber(pdf_bytes: bytes) -> str:
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            return '\n'.join(page.extract_text() or '' for page in pdf.pages)
