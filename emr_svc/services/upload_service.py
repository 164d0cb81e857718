"""
Service for storing task attachment files on disk.
"""
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Sequence

from fastapi import UploadFile

from core.config import MAX_ATTACHMENTS, UPLOAD_DIR, UPLOAD_MAX_SIZE
from core.exceptions import EMRServiceError, NotFoundError
from services.validators import validate_file_size, validate_upload_batch, validate_upload_file

logger = logging.getLogger(__name__)


class UploadService:
    """Service for saving, locating and removing attachment files."""

    def __init__(self, upload_dir: str = UPLOAD_DIR, max_size: int = UPLOAD_MAX_SIZE,
                 max_files: int = MAX_ATTACHMENTS):
        """
        Initialize the upload service.

        Args:
            upload_dir: Directory where attachment files are stored
            max_size: Maximum allowed size per file in bytes
            max_files: Maximum number of files per upload request
        """
        self.upload_dir = Path(upload_dir)
        self.max_size = max_size
        self.max_files = max_files
        # Ensure upload directory exists
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    async def save_files(self, files: Sequence[UploadFile]) -> List[Dict[str, Any]]:
        """
        Validate and write a batch of uploaded files.

        All files are validated before any is written, so a bad file
        rejects the whole batch.

        Args:
            files: The uploaded files (1 to max_files).

        Returns:
            One dict per file: {original_name, stored_name, content_type, size}.

        Raises:
            UploadError / InvalidFileTypeError / FileTooLargeError /
            TooManyFilesError: On validation failure.
        """
        validate_upload_batch(files, self.max_files)

        prepared = []
        for file in files:
            content_type, file_extension = validate_upload_file(file)
            content = await file.read()
            validate_file_size(len(content), self.max_size)
            prepared.append((file.filename, content_type, file_extension, content))

        saved: List[Dict[str, Any]] = []
        try:
            for original_name, content_type, file_extension, content in prepared:
                stored_name = f"{uuid.uuid4()}{file_extension}"
                with open(self.upload_dir / stored_name, "wb") as f:
                    f.write(content)
                saved.append({
                    "original_name": original_name,
                    "stored_name": stored_name,
                    "content_type": content_type,
                    "size": len(content),
                })
                logger.info(f"Stored attachment: {stored_name} (size: {len(content)} bytes)")
        except OSError as e:
            logger.error(f"Failed to write attachment to disk: {e}")
            self.remove_files(s["stored_name"] for s in saved)
            raise EMRServiceError("Failed to save file to disk")

        return saved

    def path_for(self, stored_name: str) -> Path:
        """
        Resolve a stored attachment to its path.

        Raises:
            NotFoundError: If the name escapes the upload directory or the file is gone.
        """
        path = (self.upload_dir / stored_name).resolve()
        if path.parent != self.upload_dir.resolve() or not path.is_file():
            raise NotFoundError("Attachment file", stored_name)
        return path

    def remove_files(self, stored_names) -> None:
        """Delete stored files; missing files are ignored."""
        for name in stored_names:
            try:
                (self.upload_dir / name).unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to delete attachment file {name}: {e}")
