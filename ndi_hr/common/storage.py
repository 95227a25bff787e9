"""Local filesystem storage for uploaded files: photos, logos and leave attachments.

Storage keys are POSIX-style paths relative to ``settings.UPLOAD_DIR``.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
import time
import uuid
from typing import Optional

from ndi_hr.common.exceptions import BadRequestException
from ndi_hr.config import settings

logger = logging.getLogger(__name__)

PROFILE_PHOTO_PREFIX = "profile-photos"
LEAVE_ATTACHMENT_PREFIX = "leave-attachments"
ORGANIZATION_LOGO_PREFIX = "organization-logos"
SIGNUP_PHOTO_PREFIX = "pending-signups"

IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})

_EXTENSION_BY_MIME = {
    "application/pdf": "pdf",
    "image/png": "png",
    "image/webp": "webp",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
}


def sanitize_file_name(value: str) -> str:
    """Lowercase, dash-separated, at most 80 characters."""
    cleaned = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return cleaned[:80] or "attachment"


def file_extension(mime_type: Optional[str]) -> str:
    """Extension for a validated upload type; the client file name is never used."""
    extension = _EXTENSION_BY_MIME.get((mime_type or "").lower())
    if extension is None:
        raise BadRequestException("Unsupported file type")
    return extension


def leave_attachment_folder(user_id: uuid.UUID, organization_id: Optional[uuid.UUID]) -> str:
    """Key prefix owned by one uploader, trailing slash included."""
    scope = str(organization_id) if organization_id else "global"
    return f"{LEAVE_ATTACHMENT_PREFIX}/{scope}/{user_id}/"


def is_within_folder(storage_key: str, folder: str) -> bool:
    """True when *storage_key* is a normalized key below *folder*."""
    return posixpath.normpath(storage_key) == storage_key and storage_key.startswith(folder)


def build_leave_attachment_key(
    user_id: uuid.UUID,
    organization_id: Optional[uuid.UUID],
    file_name: str,
    mime_type: Optional[str],
) -> str:
    base_name = sanitize_file_name(os.path.splitext(file_name)[0])
    extension = file_extension(mime_type)
    stamp = int(time.time() * 1000)
    return f"{leave_attachment_folder(user_id, organization_id)}{stamp}-{base_name}.{extension}"


def build_profile_photo_key(user_id: uuid.UUID, mime_type: Optional[str]) -> str:
    # UUID-only filename; the client file name never reaches the filesystem
    extension = file_extension(mime_type)
    return f"{PROFILE_PHOTO_PREFIX}/{user_id}-{uuid.uuid4().hex}.{extension}"


def build_organization_logo_key(folder: str, mime_type: Optional[str]) -> str:
    return f"{ORGANIZATION_LOGO_PREFIX}/{folder}/{uuid.uuid4().hex}.{file_extension(mime_type)}"


def build_signup_photo_key(mime_type: Optional[str], year: int) -> str:
    return f"{SIGNUP_PHOTO_PREFIX}/{year}/{uuid.uuid4().hex}.{file_extension(mime_type)}"


def validate_image(
    content_type: Optional[str],
    contents: Optional[bytes],
    *,
    missing_detail: str = "No file attached",
    type_detail: str = "Only JPG, PNG or WEBP images are allowed",
) -> bytes:
    """Reject missing, empty, oversized or non-image uploads."""
    if contents is None:
        raise BadRequestException(detail=missing_detail)
    if len(contents) == 0:
        raise BadRequestException(detail="Selected file is empty")
    if len(contents) > settings.max_upload_bytes:
        raise BadRequestException(detail=f"File exceeds {settings.MAX_UPLOAD_SIZE_MB}MB limit")
    if (content_type or "").lower() not in IMAGE_TYPES:
        raise BadRequestException(detail=type_detail)
    return contents


def resolve_path(storage_key: str) -> str:
    """Absolute path for a storage key; rejects keys escaping the upload root."""
    root = os.path.abspath(settings.UPLOAD_DIR)
    path = os.path.abspath(os.path.join(root, storage_key))
    if os.path.commonpath([root, path]) != root:
        raise BadRequestException("Invalid attachment reference")
    return path


def save_file(storage_key: str, contents: bytes) -> str:
    path = resolve_path(storage_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(contents)
    return storage_key


def read_file(storage_key: str) -> Optional[bytes]:
    path = resolve_path(storage_key)
    if not os.path.isfile(path):
        return None
    with open(path, "rb") as f:
        return f.read()


def delete_file(storage_key: str) -> bool:
    """Remove a stored file. Missing files and OS errors are logged, not raised."""
    path = resolve_path(storage_key)
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    except OSError:
        logger.exception("Failed to delete stored file %s", storage_key)
        return False
    return True


def public_url(storage_key: str) -> str:
    return f"/uploads/{storage_key}"
