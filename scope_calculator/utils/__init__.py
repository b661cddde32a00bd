"""Utility modules for configuration, logging, errors, and AWS integration."""

from .bedrock_client import BedrockClient
from .config import Config

__all__ = [
    'BedrockClient',
    'Config'
]
