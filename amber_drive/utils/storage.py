"""
Local file storage for car images.

The catalog only keeps the returned reference (the stored file name); the
binary content lives on disk under the configured upload directory.
"""

import secrets
import time
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.orm import Session

from amber_drive.config.settings import settings
from amber_drive.exceptions import ValidationError
from amber_drive.utils.logging import get_logger

logger = get_logger(__name__)

# session.info keys for file changes tied to the unit of work
SAVED_KEY = "image_storage.saved"
DISCARDED_KEY = "image_storage.discarded"


class ImageStorage:
    """
    Stores uploaded images under generated, collision-free names.
    """

    def __init__(
        self,
        root: str | Path | None = None,
        allowed_extensions: list[str] | None = None,
        max_file_size_mb: int | None = None,
    ):
        self.root = Path(root or settings.storage.local_path)
        self.allowed_extensions = [
            ext.lower() for ext in (allowed_extensions or settings.storage.allowed_extensions)
        ]
        self.max_bytes = (max_file_size_mb or settings.storage.max_file_size_mb) * 1024 * 1024

    def save(self, filename: str, content: bytes) -> str:
        """
        Validate and persist an uploaded image.

        Args:
            filename: Original client file name (only its extension is kept)
            content: Raw file bytes

        Returns:
            Stored reference

        Raises:
            ValidationError: Unsupported extension, empty or oversized file
        """
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "jpg"
        if ext not in self.allowed_extensions:
            raise ValidationError("Invalid image format", extension=ext)
        if not content:
            raise ValidationError("Image file is empty")
        if len(content) > self.max_bytes:
            raise ValidationError("Image file is too large", size=len(content))

        self.root.mkdir(parents=True, exist_ok=True)
        reference = f"{int(time.time() * 1000)}_{secrets.token_hex(4)}.{ext}"
        (self.root / reference).write_bytes(content)

        logger.info("image_stored", reference=reference, size=len(content))
        return reference

    def delete(self, reference: str | None) -> None:
        """Remove a stored image; missing files are ignored."""
        if not reference:
            return
        path = self.root / Path(reference).name
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("image_delete_failed", reference=reference, error=str(e))

    def save_in(self, session, filename: str, content: bytes) -> str:
        """
        Save an image as part of a session's unit of work.

        The file is removed again if the session rolls back.
        """
        reference = self.save(filename, content)
        session.info.setdefault(SAVED_KEY, []).append((self, reference))
        return reference

    def discard_in(self, session, reference: str | None) -> None:
        """Delete an image once the session commits."""
        if reference:
            session.info.setdefault(DISCARDED_KEY, []).append((self, reference))

    def exists(self, reference: str) -> bool:
        return bool(reference) and (self.root / Path(reference).name).is_file()

    def public_url(self, reference: str | None) -> str | None:
        if not reference:
            return None
        return f"{settings.storage.public_url_prefix.rstrip('/')}/{reference}"


# Global storage instance
image_storage = ImageStorage()


@event.listens_for(Session, "after_commit")
def _apply_discarded_images(session: Session) -> None:
    session.info.pop(SAVED_KEY, None)
    for storage, reference in session.info.pop(DISCARDED_KEY, []):
        storage.delete(reference)


@event.listens_for(Session, "after_soft_rollback")
def _remove_saved_images(session: Session, previous_transaction) -> None:
    if previous_transaction.parent is not None:
        return
    session.info.pop(DISCARDED_KEY, None)
    for storage, reference in session.info.pop(SAVED_KEY, []):
        storage.delete(reference)
