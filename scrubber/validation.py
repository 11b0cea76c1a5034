"""
VALIDATION: content-type allowlist for uploaded images.
"""
from dataclasses import dataclass
from typing import Optional

# MIME types Pillow can decode out of the box.
ALLOWED_IMAGE_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/pjpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/x-ms-bmp",
    "image/tiff",
    "image/x-icon",
    "image/vnd.microsoft.icon",
})


@dataclass(frozen=True)
class ContentTypeCheck:
    accepted: bool
    mime_type: str
    reason: str = ""


def normalize_mime_type(content_type: Optional[str]) -> str:
    """'Image/JPEG; charset=binary' -> 'image/jpeg'"""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def check_content_type(content_type: Optional[str]) -> ContentTypeCheck:
    mime = normalize_mime_type(content_type)
    if not mime:
        return ContentTypeCheck(False, mime, "Only image files are allowed (no content type declared)")
    if not mime.startswith("image/"):
        return ContentTypeCheck(False, mime, f"Only image files are allowed (got {mime})")
    if mime not in ALLOWED_IMAGE_TYPES:
        return ContentTypeCheck(False, mime, f"Unsupported image type: {mime}")
    return ContentTypeCheck(True, mime)
