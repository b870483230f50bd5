"""
Photo storage for member pictures
"""
import io
import re
import time
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlparse

from PIL import Image

from memberdesk.core import settings
from memberdesk.core.errors import TransientBackendError, ValidationError
from memberdesk.core.logging_config import get_logger

logger = get_logger("services.image_service")


class PhotoStorage:
    """Object storage for member photos, backed by a local directory per bucket"""

    ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png'}
    CONTENT_TYPES = {'.jpg': 'image/jpeg', '.jpeg': 'image/jpeg', '.png': 'image/png'}
    MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB
    TARGET_SIZE = (500, 500)  # Maximum dimensions
    PHOTOS_PREFIX = "photos"

    def __init__(
        self,
        root: Optional[Path] = None,
        base_url: Optional[str] = None,
        bucket: Optional[str] = None,
    ):
        self.root = Path(root or settings.UPLOAD_DIR)
        self.base_url = (base_url or settings.PUBLIC_BASE_URL).rstrip('/')
        self.bucket = bucket or settings.PHOTO_BUCKET

    def _object_path(self, bucket: str, path: str) -> Path:
        bucket_root = (self.root / bucket).resolve()
        full_path = (bucket_root / path).resolve()
        if bucket_root not in full_path.parents:
            raise ValidationError(f"Invalid storage path: {path}")
        return full_path

    def validate_image(self, file_data: bytes, filename: str) -> Tuple[bool, str]:
        """
        Validate image file

        Args:
            file_data: Image file bytes
            filename: Original filename

        Returns:
            Tuple of (is_valid, error_message)
        """
        if len(file_data) > self.MAX_FILE_SIZE:
            return False, f"File size exceeds {self.MAX_FILE_SIZE // (1024*1024)}MB limit"

        ext = Path(filename).suffix.lower()
        if ext not in self.ALLOWED_EXTENSIONS:
            return False, f"Invalid file type. Allowed types: {', '.join(sorted(self.ALLOWED_EXTENSIONS))}"

        # Validate it's a real image
        try:
            img = Image.open(io.BytesIO(file_data))
            img.verify()
            return True, ""
        except Exception as e:
            return False, f"Invalid image file: {str(e)}"

    def process_image(self, file_data: bytes, ext: str) -> bytes:
        """Flatten to RGB, crop to a centred square and shrink to TARGET_SIZE."""
        img = Image.open(io.BytesIO(file_data))

        if img.mode in ('RGBA', 'LA', 'P'):
            # Composite transparency onto white
            background = Image.new('RGB', img.size, (255, 255, 255))
            if img.mode == 'P':
                img = img.convert('RGBA')
            background.paste(img, mask=img.split()[-1] if img.mode in ('RGBA', 'LA') else None)
            img = background
        elif img.mode != 'RGB':
            img = img.convert('RGB')

        width, height = img.size
        if width != height:
            size = min(width, height)
            left = (width - size) // 2
            top = (height - size) // 2
            img = img.crop((left, top, left + size, top + size))

        if img.size[0] > self.TARGET_SIZE[0]:
            img.thumbnail(self.TARGET_SIZE, Image.Resampling.LANCZOS)

        output = io.BytesIO()
        if ext in ('.jpg', '.jpeg'):
            img.save(output, 'JPEG', quality=85, optimize=True)
        else:
            img.save(output, 'PNG', optimize=True)
        return output.getvalue()

    def build_photo_path(self, member_name: str, filename: str, now_ms: Optional[int] = None) -> str:
        """photos/member_<Name_With_Underscores>_<epoch ms>.<ext>"""
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        slug = re.sub(r"\s+", "_", member_name.strip())
        slug = re.sub(r"[^A-Za-z0-9_-]", "", slug) or "member"
        ext = Path(filename).suffix.lower()
        return f"{self.PHOTOS_PREFIX}/member_{slug}_{now_ms}{ext}"

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/uploads/{bucket}/{path}"

    def path_from_url(self, url: Optional[str]) -> Optional[Tuple[str, str]]:
        """Recover (bucket, path) from a public URL produced by this storage."""
        if not url:
            return None
        parts = urlparse(url).path.lstrip('/').split('/', 2)
        if len(parts) < 3 or parts[0] != "uploads":
            return None
        return parts[1], parts[2]

    def put_object(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Store bytes at bucket/path and return the public URL. Existing objects are never overwritten."""
        full_path = self._object_path(bucket, path)
        if full_path.exists():
            raise ValidationError(f"Object already exists: {path}")

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(data)
        except OSError as e:
            logger.error(f"Photo upload error for {path}: {e}")
            raise TransientBackendError("Failed to upload photo") from e

        logger.info(f"Stored {content_type} object {bucket}/{path} ({len(data)} bytes)")
        return self.get_public_url(bucket, path)

    def delete_object(self, bucket: str, path: str) -> bool:
        """Delete bucket/path. Missing objects count as deleted."""
        try:
            full_path = self._object_path(bucket, path)
            if full_path.exists():
                full_path.unlink()
            return True
        except (OSError, ValidationError) as e:
            logger.error(f"Error deleting object {bucket}/{path}: {str(e)}")
            return False

    def upload_member_photo(self, file_data: bytes, filename: str, member_name: str) -> str:
        """Validate, normalise and store a member photo; returns its public URL."""
        is_valid, error_message = self.validate_image(file_data, filename)
        if not is_valid:
            raise ValidationError(f"Invalid photo: {error_message}")

        ext = Path(filename).suffix.lower()
        path = self.build_photo_path(member_name, filename)
        return self.put_object(self.bucket, path, self.process_image(file_data, ext), self.CONTENT_TYPES[ext])

    def delete_member_photo(self, photo_url: Optional[str]) -> bool:
        """Remove the object behind a member's photo URL, if it is one of ours."""
        location = self.path_from_url(photo_url)
        if location is None:
            return True
        bucket, path = location
        return self.delete_object(bucket, path)
