"""
STRIPPER: re-encodes any decodable image as a JPEG carrying no metadata at all.
"""
import struct
from io import BytesIO
from PIL import Image, UnidentifiedImageError
from scrubber.errors import ProcessingFailedError
from scrubber.settings import JPEG_QUALITY

_ALPHA_MODES = ("RGBA", "LA", "PA", "RGBa", "La")

# Pillow plugins report corrupt data through any of these.
CODEC_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    ValueError,
    SyntaxError,
    struct.error,
    IndexError,
)


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in _ALPHA_MODES or (image.mode == "P" and "transparency" in image.info)


def _codec_failure(e: Exception) -> ProcessingFailedError:
    return ProcessingFailedError(str(e) or type(e).__name__)


def strip_all_metadata(image: Image.Image) -> Image.Image:
    # A freshly allocated image has an empty .info, so EXIF/ICC/XMP/comments can't follow the pixels.
    clean = Image.new("RGB", image.size, (255, 255, 255))
    if _has_alpha(image):
        rgba = image.convert("RGBA")
        clean.paste(rgba, mask=rgba.getchannel("A"))
    else:
        clean.paste(image if image.mode == "RGB" else image.convert("RGB"))
    return clean


def decode_image(data: bytes) -> Image.Image:
    """Open and fully load image bytes, mapping decoder failures to ProcessingFailedError."""
    try:
        img = Image.open(BytesIO(data))
        img.load()
        return img
    except CODEC_ERRORS as e:
        raise _codec_failure(e) from e


def transcode_to_jpeg(data: bytes, quality: int = JPEG_QUALITY) -> bytes:
    img = decode_image(data)
    buf = BytesIO()
    try:
        strip_all_metadata(img).save(buf, "JPEG", quality=quality, optimize=True)
    except CODEC_ERRORS as e:
        raise _codec_failure(e) from e
    finally:
        img.close()
    return buf.getvalue()
