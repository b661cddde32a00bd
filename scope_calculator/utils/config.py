"""Configuration management for the scope calculator."""

import os
import yaml
from dataclasses import dataclass, field
from typing import List

from .errors import ErrorContext, ErrorType, ScopeProcessingError


@dataclass
class BedrockConfig:
    """AWS Bedrock configuration."""
    model_id: str
    timeout: int
    max_retries: int
    max_tokens: int


@dataclass
class ExtractionConfig:
    """Extraction repair pipeline configuration."""
    preview_chars: int = 500
    regenerate_attempts: int = 0


@dataclass
class UploadConfig:
    """Upload limits for documents submitted to the wizard."""
    max_file_size_mb: int = 20
    allowed_types: List[str] = field(default_factory=lambda: ["pdf", "png", "jpg", "jpeg", "webp", "gif"])


@dataclass
class ExportConfig:
    """Summary PDF configuration."""
    page_size: str = "A4"
    filename: str = "Scope Summary.pdf"
    title: str = "Scope of Work Summary"


@dataclass
class DeliveryConfig:
    """Attachment webhook configuration."""
    webhook_url: str = ""
    attachment_type: str = "Document"
    description: str = "Scope of Work Summary - Generated from Rep Calculator"
    timeout: float = 30.0


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str
    format: str
    file: str


@dataclass
class Config:
    """Main configuration class."""
    aws_region: str
    bedrock: BedrockConfig
    extraction: ExtractionConfig
    uploads: UploadConfig
    export: ExportConfig
    delivery: DeliveryConfig
    logging: LoggingConfig

    @classmethod
    def load(cls, config_path: str = "config.yaml") -> "Config":
        """
        Load configuration from file and environment variables.

        Environment variables override config file values:
        - AWS_REGION
        - BEDROCK_MODEL_ID
        - EXTRACTION_REGENERATE_ATTEMPTS
        - MAX_FILE_SIZE_MB
        - DELIVERY_WEBHOOK_URL
        - LOG_LEVEL

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            ScopeProcessingError: If the file is missing or lacks a required section
        """
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ScopeProcessingError(
                ErrorContext(
                    error_type=ErrorType.CONFIG_MISSING,
                    message=f"Configuration file not found: {config_path}",
                    recoverable=False,
                    original_exception=e
                )
            )

        try:
            aws_region = os.getenv("AWS_REGION", config_data["aws"]["region"])

            bedrock_config = BedrockConfig(
                model_id=os.getenv("BEDROCK_MODEL_ID", config_data["aws"]["bedrock"]["model_id"]),
                timeout=int(config_data["aws"]["bedrock"]["timeout"]),
                max_retries=int(config_data["aws"]["bedrock"]["max_retries"]),
                max_tokens=int(config_data["aws"]["bedrock"].get("max_tokens", 8192))
            )

            ex = config_data.get("extraction", {}) or {}
            extraction_config = ExtractionConfig(
                preview_chars=int(ex.get("preview_chars", 500)),
                regenerate_attempts=int(
                    os.getenv("EXTRACTION_REGENERATE_ATTEMPTS", ex.get("regenerate_attempts", 0))
                )
            )

            up = config_data.get("uploads", {}) or {}
            upload_config = UploadConfig(
                max_file_size_mb=int(os.getenv("MAX_FILE_SIZE_MB", up.get("max_file_size_mb", 20))),
                allowed_types=[t.lower() for t in up.get("allowed_types", UploadConfig().allowed_types)]
            )

            exp = config_data.get("export", {}) or {}
            export_config = ExportConfig(
                page_size=exp.get("page_size", "A4"),
                filename=exp.get("filename", ExportConfig.filename),
                title=exp.get("title", ExportConfig.title)
            )

            dl = config_data.get("delivery", {}) or {}
            delivery_config = DeliveryConfig(
                webhook_url=os.getenv("DELIVERY_WEBHOOK_URL", dl.get("webhook_url", "")),
                attachment_type=dl.get("attachment_type", DeliveryConfig.attachment_type),
                description=dl.get("description", DeliveryConfig.description),
                timeout=float(dl.get("timeout", 30.0))
            )

            logging_config = LoggingConfig(
                level=os.getenv("LOG_LEVEL", config_data["logging"]["level"]),
                format=config_data["logging"]["format"],
                file=config_data["logging"].get("file", "")
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ScopeProcessingError(
                ErrorContext(
                    error_type=ErrorType.CONFIG_INVALID,
                    message=f"Invalid configuration in {config_path}: {str(e)}",
                    recoverable=False,
                    original_exception=e
                )
            )

        return cls(
            aws_region=aws_region,
            bedrock=bedrock_config,
            extraction=extraction_config,
            uploads=upload_config,
            export=export_config,
            delivery=delivery_config,
            logging=logging_config,
        )
