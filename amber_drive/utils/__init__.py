"""
Utility modules for Amber Drive admin.

Provides shared functionality across all services:
- AI client for the language-model car search
- Image storage for car photos
- Security utilities for auth
- Logging utilities for structured logging
"""

from amber_drive.utils.ai_client import ai_client, prompt_builder, AIClient, AIPromptBuilder
from amber_drive.utils.storage import ImageStorage, image_storage
from amber_drive.utils.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    decode_token,
)
from amber_drive.utils.logging import (
    setup_logging,
    get_logger,
    RequestLogger,
    AuditLogger,
    ServiceLogger,
    request_logger,
    audit_logger,
)

__all__ = [
    # AI Client
    "ai_client",
    "prompt_builder",
    "AIClient",
    "AIPromptBuilder",
    # Storage
    "ImageStorage",
    "image_storage",
    # Security
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "decode_token",
    # Logging
    "setup_logging",
    "get_logger",
    "RequestLogger",
    "AuditLogger",
    "ServiceLogger",
    "request_logger",
    "audit_logger",
]
