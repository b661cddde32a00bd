"""Repair and validation of model output."""

from .response_parser import ScopeResponseParser, parse_claim_response
from .validation import validate_claim_payload

__all__ = [
    'ScopeResponseParser',
    'parse_claim_response',
    'validate_claim_payload'
]
