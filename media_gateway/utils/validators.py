"""
Input validators for resource ids, object ids, file extensions and
declared content types.

All validators are total: they return a verdict and never raise.
"""

import os
import re
from typing import Dict, Iterable, Optional, Tuple

MAX_RESOURCE_ID_LENGTH = 500
MAX_OBJECT_ID_LENGTH = 100  # uuid (36) + dot + extension

_CONTROL_CHARS = re.compile(r"[\x00-\x1f]")
_OBJECT_ID_PATTERN = re.compile(
    r"^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}\.[a-z0-9]+$",
    re.IGNORECASE,
)

# Extensions mapped to the MIME types a client may legitimately declare for them.
# Extensions missing from this table accept any declared type.
EXTENSION_MIME_MAP: Dict[str, Tuple[str, ...]] = {
    # Documents
    "pdf": ("application/pdf",),
    "doc": ("application/msword",),
    "docx": ("application/vnd.openxmlformats-officedocument.wordprocessingml.document",),
    "xls": ("application/vnd.ms-excel",),
    "xlsx": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",),
    "ppt": ("application/vnd.ms-powerpoint",),
    "pptx": ("application/vnd.openxmlformats-officedocument.presentationml.presentation",),
    "txt": ("text/plain",),
    "rtf": ("application/rtf", "text/rtf"),
    "csv": ("text/csv", "text/plain", "application/csv"),
    # Images
    "jpg": ("image/jpeg",),
    "jpeg": ("image/jpeg",),
    "png": ("image/png",),
    "gif": ("image/gif",),
    "webp": ("image/webp",),
    "bmp": ("image/bmp",),
    "svg": ("image/svg+xml",),
    # Audio
    "mp3": ("audio/mpeg", "audio/mp3"),
    "wav": ("audio/wav", "audio/wave", "audio/x-wav", "audio/vnd.wave"),
    "ogg": ("audio/ogg",),
    "m4a": ("audio/mp4", "audio/x-m4a"),
    "flac": ("audio/flac",),
    # Video
    "mp4": ("video/mp4",),
    "mov": ("video/quicktime",),
    "avi": ("video/x-msvideo",),
    "mkv": ("video/x-matroska",),
    "webm": ("video/webm",),
    # Archives
    "zip": ("application/zip", "application/x-zip-compressed"),
    "rar": ("application/vnd.rar", "application/x-rar-compressed"),
    "7z": ("application/x-7z-compressed",),
    "tar": ("application/x-tar",),
    "gz": ("application/gzip", "application/x-gzip"),
}


def validate_resource_id(resource_id) -> bool:
    """Reject anything that could escape its namespace once joined into a storage key."""
    if not isinstance(resource_id, str) or not resource_id:
        return False
    if len(resource_id) > MAX_RESOURCE_ID_LENGTH:
        return False
    if ".." in resource_id or "/" in resource_id or "\\" in resource_id:
        return False
    # NUL falls inside the control range
    if _CONTROL_CHARS.search(resource_id):
        return False
    return True


def extract_extension(filename) -> Optional[str]:
    """Lowercase extension without the dot, or None when there is none."""
    if not isinstance(filename, str) or not filename:
        return None
    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    _, ext = os.path.splitext(base)
    if not ext or ext == ".":
        return None
    return ext[1:].lower()


def is_extension_allowed(extension: Optional[str], allowed: Optional[Iterable[str]]) -> bool:
    if not extension:
        return False
    if allowed is None:
        return True
    return extension.lower() in {str(item).lower() for item in allowed}


def normalize_mime_type(mime_type: str) -> str:
    # "text/plain; charset=utf-8" -> "text/plain"
    return mime_type.split(";", 1)[0].strip().lower()


def validate_content_type(extension: Optional[str], declared_mime_type: Optional[str]) -> bool:
    """
    Check a declared MIME type against the canonical types for an extension.

    Extensions without an entry in EXTENSION_MIME_MAP are accepted with any
    declared type. This keeps uncommon formats uploadable but means no
    spoofing protection applies to them.
    """
    if not extension or not isinstance(declared_mime_type, str) or not declared_mime_type:
        return False
    allowed_mimes = EXTENSION_MIME_MAP.get(extension.lower())
    if allowed_mimes is None:
        return True
    return normalize_mime_type(declared_mime_type) in allowed_mimes


def validate_object_id(object_id) -> bool:
    """Strict allow-list: only the `<uuid>.<ext>` shape issued at upload time passes."""
    if not isinstance(object_id, str) or not object_id:
        return False
    if len(object_id) > MAX_OBJECT_ID_LENGTH:
        return False
    return _OBJECT_ID_PATTERN.fullmatch(object_id) is not None
