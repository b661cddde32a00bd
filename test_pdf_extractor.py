"""Tests for PDF text extraction and cleanup."""

import io

import pytest
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from scope_calculator.plugins.pdf_extractor import PDFExtractorPlugin, clean_extracted_text
from scope_calculator.utils.errors import DocumentProcessingError, ErrorType


def _pdf_with_lines(lines) -> bytes:
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    y = 780
    for line in lines:
        pdf.drawString(72, y, line)
        y -= 18
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def test_extracts_text_layer():
    pdf_bytes = _pdf_with_lines([
        "ESTIMATE FOR CLAIM CLM-2024-0042",
        "01  45 SQ  Remove composition shingles  4,500.00",
        "02  45 SQ  Install laminated shingles  9,800.00",
        "03  120 LF  Replace K-style gutters  1,200.00",
    ])

    text = PDFExtractorPlugin().extract_text(pdf_bytes, filename="estimate.pdf")

    assert "Remove composition shingles" in text
    assert "CLM-2024-0042" in text


def test_blank_pdf_is_treated_as_scanned():
    with pytest.raises(DocumentProcessingError) as exc_info:
        PDFExtractorPlugin().extract_text(_pdf_with_lines([]), filename="scan.pdf")

    assert exc_info.value.error_type == ErrorType.SCANNED_DOCUMENT
    assert exc_info.value.context.fallback_action


def test_unreadable_bytes_raise_extraction_error():
    with pytest.raises(DocumentProcessingError) as exc_info:
        PDFExtractorPlugin().extract_text(b"definitely not a pdf", filename="broken.pdf")

    assert exc_info.value.error_type == ErrorType.PDF_EXTRACTION_FAILED


def test_clean_extracted_text():
    raw = "  Line one  \n\n\n  Line two\x00 \n=====\nTotal: $1,200.00\n"

    assert clean_extracted_text(raw) == "Line one\nLine two\n\nTotal: $1,200.00"


def test_clean_collapses_blank_runs_left_by_junk():
    assert clean_extracted_text("a\n*****\n#####\nb") == "a\n\nb"
