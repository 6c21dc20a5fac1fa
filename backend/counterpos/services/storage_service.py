"""
Local file storage for product images and the store logo.

Files live in UPLOAD_FOLDER and are referenced as /product-image/<name>,
which is also the public URL they are served from. External references
(http(s) or data URLs) are never touched.

Deleting is best effort: a missing or locked file is logged and ignored,
since a stale image on disk never affects correctness.
"""
import logging
import os
import time
from typing import Optional

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..models.inventory import LOCAL_IMAGE_PREFIX
from ..validation import ValidationError

logger = logging.getLogger(__name__)

PRODUCT_IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg'}
LOGO_EXTENSIONS = {'png', 'jpg', 'jpeg', 'webp'}
ALLOWED_MIME_TYPES = {
    'image/png',
    'image/jpeg',
    'image/jpg',
    'image/webp',
}


def upload_folder() -> str:
    folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(folder, exist_ok=True)
    return folder


def is_local_reference(reference: Optional[str]) -> bool:
    return bool(reference) and reference.startswith(LOCAL_IMAGE_PREFIX)


def _filename_from_reference(reference: str) -> str:
    # Only the final path segment is honored
    return secure_filename(reference[len(LOCAL_IMAGE_PREFIX):])


def _extension(filename: str) -> str:
    return filename.rsplit('.', 1)[1].lower() if '.' in filename else ''


def save_upload(file: FileStorage, *, prefix: str = '', allowed_extensions=PRODUCT_IMAGE_EXTENSIONS) -> str:
    """
    Store an uploaded image and return its /product-image/ reference.

    Names are "<prefix><epoch ms>.<ext>" so re-uploads never collide.

    Raises ValidationError for a missing file, a disallowed type, or a file
    larger than MAX_IMAGE_BYTES.
    """
    if not file or not file.filename:
        raise ValidationError("No file uploaded")

    ext = _extension(secure_filename(file.filename))
    if ext not in allowed_extensions:
        allowed = ', '.join(sorted(e.upper() for e in allowed_extensions))
        raise ValidationError(f"Only {allowed} images are allowed")

    if file.mimetype and file.mimetype not in ALLOWED_MIME_TYPES:
        raise ValidationError(f"Unsupported image type: {file.mimetype}")

    data = file.read()
    max_bytes = current_app.config.get('MAX_IMAGE_BYTES', 5 * 1024 * 1024)
    if len(data) > max_bytes:
        raise ValidationError(f"Image exceeds maximum size of {max_bytes // (1024 * 1024)} MB")

    filename = f"{prefix}{int(time.time() * 1000)}.{ext}"
    write_image(filename, data)
    logger.info("[STORAGE] Saved %s (%d bytes)", filename, len(data))
    return f"{LOCAL_IMAGE_PREFIX}{filename}"


def delete_reference(reference: Optional[str]) -> None:
    """Remove the file behind a local reference. Non-fatal."""
    if not is_local_reference(reference):
        return
    filename = _filename_from_reference(reference)
    if not filename:
        return
    try:
        os.remove(os.path.join(upload_folder(), filename))
    except OSError as e:
        logger.warning("[STORAGE] Could not delete %s: %s", filename, e)


def list_images() -> list[str]:
    folder = upload_folder()
    return sorted(
        name for name in os.listdir(folder)
        if os.path.isfile(os.path.join(folder, name))
    )


def read_image(filename: str) -> bytes:
    with open(os.path.join(upload_folder(), secure_filename(filename)), 'rb') as fh:
        return fh.read()


def write_image(filename: str, data: bytes) -> str:
    safe_name = secure_filename(filename)
    if not safe_name:
        raise ValidationError(f"Invalid image filename: {filename!r}")
    with open(os.path.join(upload_folder(), safe_name), 'wb') as fh:
        fh.write(data)
    return safe_name


def clear_images() -> int:
    """Delete every stored image; returns how many were removed."""
    removed = 0
    try:
        names = list_images()
    except OSError as e:
        logger.error("[STORAGE] Could not list images: %s", e)
        return 0

    for name in names:
        try:
            os.remove(os.path.join(upload_folder(), name))
            removed += 1
        except OSError as e:
            logger.warning("[STORAGE] Could not delete %s: %s", name, e)
    return removed
