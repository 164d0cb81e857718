"""
Validation utilities for task attachment uploads.

Files must have an allowed content type and an extension that matches it.
Size limits are checked after the content has been read.
"""
import logging
from pathlib import Path
from typing import Sequence, Tuple

from fastapi import UploadFile

from core.exceptions import FileTooLargeError, InvalidFileTypeError, TooManyFilesError, UploadError

logger = logging.getLogger(__name__)

# Allowed attachment MIME types and extensions
ALLOWED_ATTACHMENT_TYPES = {
    "application/pdf": [".pdf"],
    "application/msword": [".doc"],
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": [".docx"],
    "image/jpeg": [".jpg", ".jpeg"],
    "image/png": [".png"],
    "image/gif": [".gif"],
    "text/plain": [".txt"],
    "application/vnd.ms-excel": [".xls"],
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": [".xlsx"],
}
ALLOWED_EXTENSIONS = {ext for exts in ALLOWED_ATTACHMENT_TYPES.values() for ext in exts}


def validate_file_present(file: UploadFile) -> None:
    """
    Validate that a file is provided and has a name.

    Raises:
        UploadError: 400 if no file is provided.
    """
    if not file or not file.filename:
        logger.error("No file provided in upload request")
        raise UploadError("No file provided")


def validate_content_type(file: UploadFile) -> str:
    """
    Validate that the file has an allowed content type.

    Returns:
        str: The validated content type.

    Raises:
        UploadError: 400 if the content type is missing.
        InvalidFileTypeError: 415 if the content type is not allowed.
    """
    if not file.content_type:
        logger.error("File has no content type")
        raise UploadError("File content type is missing")

    content_type = file.content_type.split(";")[0].strip().lower()
    if content_type not in ALLOWED_ATTACHMENT_TYPES:
        logger.error(f"Invalid content type: {file.content_type}")
        raise InvalidFileTypeError(
            f"Invalid file type '{content_type}'. Allowed: PDF, Word, Excel, images and plain text",
            content_type=content_type,
        )

    return content_type


def validate_file_extension(file: UploadFile, content_type: str) -> str:
    """
    Validate that the file extension is allowed and matches the content type.

    Returns:
        str: The validated file extension (with leading dot).

    Raises:
        InvalidFileTypeError: 415 if the extension is missing, not allowed,
            or does not match the content type.
    """
    file_extension = Path(file.filename).suffix.lower() if file.filename else ""

    if not file_extension or file_extension not in ALLOWED_EXTENSIONS:
        logger.error(f"Invalid file extension: {file_extension}")
        raise InvalidFileTypeError(
            f"Invalid file extension. Allowed extensions: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    if file_extension not in ALLOWED_ATTACHMENT_TYPES.get(content_type, []):
        logger.error(f"File extension {file_extension} does not match content type {content_type}")
        raise InvalidFileTypeError("File extension does not match content type")

    return file_extension


def validate_file_size(file_size: int, max_size: int) -> None:
    """
    Validate that the file size is within allowed limits.

    Raises:
        UploadError: 400 if the file is empty.
        FileTooLargeError: 413 if it exceeds max_size.
    """
    if file_size == 0:
        logger.error("Empty file uploaded")
        raise UploadError("File is empty")

    if file_size > max_size:
        logger.error(f"File size {file_size} exceeds maximum {max_size}")
        raise FileTooLargeError(
            f"File size exceeds maximum allowed size of {max_size / (1024 * 1024):.1f}MB",
            size=file_size,
            max_size=max_size,
        )


def validate_upload_file(file: UploadFile) -> Tuple[str, str]:
    """
    Run the presence, content type and extension checks on one file.

    File size validation requires reading the content, so it is handled
    separately in the service layer.

    Returns:
        Tuple[str, str]: (content_type, file_extension).
    """
    validate_file_present(file)
    content_type = validate_content_type(file)
    file_extension = validate_file_extension(file, content_type)
    return content_type, file_extension


def validate_upload_batch(files: Sequence[UploadFile], max_files: int) -> None:
    """
    Validate the number of files sent in one request.

    Raises:
        UploadError: 400 if no files were sent.
        TooManyFilesError: 400 if more than max_files were sent.
    """
    if not files:
        raise UploadError("No files provided")
    if len(files) > max_files:
        logger.error(f"Upload of {len(files)} files exceeds limit of {max_files}")
        raise TooManyFilesError(f"At most {max_files} files can be uploaded at once", count=len(files))
