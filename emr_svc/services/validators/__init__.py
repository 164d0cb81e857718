"""
Validation utilities for services.
"""
from services.validators.upload_validator import (
    validate_upload_file,
    validate_upload_batch,
    validate_file_size,
    validate_file_present,
    validate_content_type,
    validate_file_extension,
    ALLOWED_ATTACHMENT_TYPES,
    ALLOWED_EXTENSIONS,
)

__all__ = [
    "validate_upload_file",
    "validate_upload_batch",
    "validate_file_size",
    "validate_file_present",
    "validate_content_type",
    "validate_file_extension",
    "ALLOWED_ATTACHMENT_TYPES",
    "ALLOWED_EXTENSIONS",
]
