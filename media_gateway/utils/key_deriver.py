"""
Storage key derivation.

Key format: ``prefix + resource_id + "/" + object_id``, e.g.
``uploads/myPad/1b4e28ba-2fa1-4d2b-883f-0016d3cca427.pdf``. The key can be
recomputed from the three inputs alone, so downloads need no lookup table.
"""

import re
import uuid
from urllib.parse import quote

from media_gateway.models.errors import InvalidInputError
from media_gateway.utils.validators import validate_object_id

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")

INLINE = "inline"
ATTACHMENT = "attachment"


def new_object_id(extension: str) -> str:
    return f"{uuid.uuid4()}.{extension.lower()}"


def derive_key(resource_id: str, prefix: str, generated_object_id: str) -> str:
    return f"{prefix or ''}{resource_id}/{generated_object_id}"


def reconstruct_key(resource_id: str, prefix: str, supplied_object_id: str) -> str:
    """Rebuild a key from a client-supplied object id; the id must pass validation first."""
    if not validate_object_id(supplied_object_id):
        raise InvalidInputError("Invalid object ID")
    return derive_key(resource_id, prefix, supplied_object_id)


def object_id_from_key(key: str) -> str:
    return key.rsplit("/", 1)[-1]


def safe_disposition_filename(original_filename: str) -> str:
    """Basename with every character outside [A-Za-z0-9._-] replaced by '_'."""
    base = (original_filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    return _UNSAFE_FILENAME_CHARS.sub("_", base) or "file"


def build_content_disposition(kind: str, filename: str) -> str:
    if kind not in (INLINE, ATTACHMENT):
        raise ValueError(f"Unknown disposition: {kind}")
    return f'{kind}; filename="{safe_disposition_filename(filename)}"'


def build_download_reference(resource_id: str, object_id: str) -> str:
    # Relative locator for our own download route, never a bucket URL
    return f"/resource/{quote(resource_id, safe='')}/download?object={quote(object_id, safe='')}"
