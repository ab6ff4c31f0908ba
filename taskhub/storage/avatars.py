# taskhub/storage/avatars.py
"""Avatar files on local disk, served under AVATAR_URL_PREFIX"""
import uuid
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, UploadFile, status
from loguru import logger

from taskhub.core.config import settings

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
ALLOWED_MIME_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp"}
CHUNK_SIZE = 1024 * 1024


class AvatarStorage:
    """Stores uploaded avatars and resolves their public URLs back to files"""

    def __init__(self, directory: str, url_prefix: str, max_bytes: int):
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes

    def ensure_directory(self) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory

    def validate(self, upload: UploadFile) -> str:
        """Check extension and MIME type; returns the normalized extension"""
        extension = Path(upload.filename or "").suffix.lower()
        if extension not in ALLOWED_EXTENSIONS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"File type not allowed. Allowed extensions: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
            )
        if upload.content_type not in ALLOWED_MIME_TYPES and upload.content_type != "application/octet-stream":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"MIME type not allowed: {upload.content_type}"
            )
        return extension

    async def save(self, upload: UploadFile) -> str:
        """Stream the upload to disk in chunks and return its public URL"""
        extension = self.validate(upload)
        filename = f"{uuid.uuid4().hex}{extension}"
        path = self.ensure_directory() / filename

        total = 0
        try:
            with open(path, "wb") as out:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    total += len(chunk)
                    if total > self.max_bytes:
                        raise HTTPException(
                            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
                            detail=f"File too large. Maximum size: {self.max_bytes // (1024 * 1024)}MB"
                        )
                    out.write(chunk)
        except Exception:
            path.unlink(missing_ok=True)
            raise

        if total == 0:
            path.unlink(missing_ok=True)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")

        logger.info(f"Avatar stored: {filename} ({total} bytes)")
        return f"{self.url_prefix}/{filename}"

    def path_for(self, reference: Optional[str]) -> Optional[Path]:
        """Map a stored URL back to a file inside the avatar directory"""
        if not reference or not reference.startswith(self.url_prefix + "/"):
            return None
        name = reference[len(self.url_prefix) + 1:]
        if not name or "/" in name or name in (".", ".."):
            return None
        return self.directory / name

    def release(self, reference: Optional[str]) -> bool:
        """Delete the file behind a reference. Failures are logged, never raised."""
        path = self.path_for(reference)
        if path is None:
            return False
        try:
            path.unlink()
            logger.debug(f"Avatar file removed: {path}")
            return True
        except FileNotFoundError:
            logger.warning(f"Avatar file already gone: {path}")
        except OSError as e:
            logger.error(f"Failed to remove avatar file {path}: {e}")
        return False


avatar_storage = AvatarStorage(
    directory=settings.AVATAR_DIR,
    url_prefix=settings.AVATAR_URL_PREFIX,
    max_bytes=settings.AVATAR_MAX_BYTES,
)
