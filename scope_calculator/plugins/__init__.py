"""Semantic Kernel plugins for claim document processing."""

from .pdf_extractor import PDFExtractorPlugin
from .scope_parser import ScopeParserPlugin

__all__ = [
    'PDFExtractorPlugin',
    'ScopeParserPlugin'
]
