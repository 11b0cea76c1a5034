"""
INSPECTOR: reports which metadata blocks an image still carries.
"""
import struct
import piexif
from scrubber.stripper import decode_image

_IFDS = ("0th", "Exif", "GPS", "Interop", "1st")
_XMP_KEYS = ("xmp", "XML:com.adobe.xmp")
TIFF_XMP_TAG = 700


def _readable(val):
    if isinstance(val, bytes):
        return val.decode("utf-8", errors="replace").rstrip("\x00")
    if isinstance(val, tuple):
        return str(val)
    return val


def read_exif(exif_bytes: bytes) -> dict:
    """Map raw EXIF bytes to {ifd: {tag name: value}}, skipping empty IFDs."""
    try:
        exif_dict = piexif.load(exif_bytes)
    except (piexif.InvalidImageDataError, struct.error, OSError, ValueError, KeyError, IndexError, TypeError) as e:
        # Present but unparsable still counts as metadata.
        return {"unreadable": {"error": str(e) or type(e).__name__, "length": len(exif_bytes)}}

    result = {}
    for ifd_name in _IFDS:
        ifd = exif_dict.get(ifd_name) or {}
        if not isinstance(ifd, dict):
            continue
        readable = {}
        for tag, val in ifd.items():
            tag_name = piexif.TAGS.get(ifd_name, {}).get(tag, {}).get("name", str(tag))
            readable[tag_name] = _readable(val)
        if readable:
            result[ifd_name] = readable
    return result


def _text_keys(img) -> list:
    """Keys of PNG tEXt/zTXt/iTXt chunks, XMP excluded."""
    text = getattr(img, "text", None) or {}
    return sorted(k for k in text if k not in _XMP_KEYS)


def _has_xmp(img) -> bool:
    if any(img.info.get(k) for k in _XMP_KEYS):
        return True
    tags = getattr(img, "tag_v2", None)
    return bool(tags is not None and tags.get(TIFF_XMP_TAG))


def inspect_metadata(data: bytes) -> dict:
    img = decode_image(data)
    try:
        info = img.info
        exif_bytes = info.get("exif") or b""
        exif = read_exif(exif_bytes) if exif_bytes else {}
        has_icc = bool(info.get("icc_profile"))
        has_xmp = _has_xmp(img)
        has_comment = bool(info.get("comment"))
        text = _text_keys(img)
        return {
            "format": img.format,
            "width": img.size[0],
            "height": img.size[1],
            "exif": exif,
            "iccProfile": has_icc,
            "xmp": has_xmp,
            "comment": has_comment,
            "text": text,
            "hasMetadata": bool(exif_bytes) or has_icc or has_xmp or has_comment or bool(text),
        }
    finally:
        img.close()
