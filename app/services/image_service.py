"""
app/services/image_service.py

Purpose: Product image storage

- Saves uploaded images under UPLOAD_DIR with random names
- Validates content type and size
- Removes images that are no longer referenced
"""

import uuid
from pathlib import Path
from typing import Optional

from starlette.datastructures import UploadFile

from app.core.config import settings
from app.core.exceptions import BadRequestError
from app.core.logging import get_logger
from utils.constants import MSG_UNSUPPORTED_IMAGE, MSG_IMAGE_TOO_LARGE, UPLOADS_URL_PATH
from utils.validation_utils import image_extension

logger = get_logger(__name__)


def get_upload_dir() -> Path:
    path = Path(settings.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


async def save_image(upload: UploadFile) -> str:
    """
    Stores an uploaded product image.

    Args:
        upload: Multipart file from the admin product form

    Returns:
        Public path of the stored image (``/uploads/<name>``)

    Raises:
        BadRequestError: If the file is not an accepted image or is too large
    """
    extension = image_extension(upload.content_type)
    if extension is None:
        raise BadRequestError(MSG_UNSUPPORTED_IMAGE, details={"content_type": upload.content_type})

    # Read one byte past the limit to detect oversized files without loading more
    data = await upload.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise BadRequestError(MSG_IMAGE_TOO_LARGE, details={"max_bytes": settings.MAX_UPLOAD_BYTES})
    if not data:
        raise BadRequestError("Uploaded image is empty")

    filename = f"{uuid.uuid4().hex}{extension}"
    target = get_upload_dir() / filename
    target.write_bytes(data)

    logger.info(f"Stored product image {filename} ({len(data)} bytes)")
    return f"{UPLOADS_URL_PATH}/{filename}"


def is_uploaded_image(image: Optional[str]) -> bool:
    """Check if ``image`` points into the upload directory"""
    return bool(image) and image.startswith(f"{UPLOADS_URL_PATH}/")


def delete_image(image: Optional[str]) -> bool:
    """
    Deletes a previously uploaded image. External URLs are left alone.

    Callers decide whether the file is still referenced.

    Returns:
        True if a file was removed
    """
    if not is_uploaded_image(image):
        return False
    prefix = f"{UPLOADS_URL_PATH}/"

    # Only the bare file name is trusted, never a path
    name = Path(image[len(prefix):]).name
    target = get_upload_dir() / name
    if not target.is_file():
        return False

    target.unlink()
    logger.info(f"Removed product image {name}")
    return True
