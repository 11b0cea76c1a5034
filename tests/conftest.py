import struct
import zlib
from io import BytesIO
import piexif
import pytest
from fastapi.testclient import TestClient
from PIL import Image

FAKE_ICC = b"\x00\x00\x02\x0cfake-icc-profile" + b"\x00" * 64
XMP_PACKET = (
    b'<x:xmpmeta xmlns:x="adobe:ns:meta/"><rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">'
    b'<rdf:Description rdf:about="" xmlns:dc="http://purl.org/dc/elements/1.1/"><dc:creator>Jane</dc:creator>'
    b"</rdf:Description></rdf:RDF></x:xmpmeta>"
)


def build_exif() -> bytes:
    return piexif.dump({
        "0th": {
            piexif.ImageIFD.Make: b"Canon",
            piexif.ImageIFD.Model: b"EOS 5D",
            piexif.ImageIFD.Orientation: 6,
        },
        "Exif": {piexif.ExifIFD.DateTimeOriginal: b"2024:05:01 10:20:30"},
        "GPS": {
            piexif.GPSIFD.GPSLatitudeRef: b"N",
            piexif.GPSIFD.GPSLatitude: ((4, 1), (36, 1), (0, 1)),
            piexif.GPSIFD.GPSLongitudeRef: b"W",
            piexif.GPSIFD.GPSLongitude: ((74, 1), (4, 1), (0, 1)),
        },
    })


def make_image_bytes(fmt="JPEG", mode="RGB", size=(32, 24), color=(200, 30, 60), **save_kwargs) -> bytes:
    img = Image.new(mode, size, color)
    buf = BytesIO()
    img.save(buf, fmt, **save_kwargs)
    return buf.getvalue()


def _png_chunk(cid: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + cid + data + struct.pack(">I", zlib.crc32(cid + data) & 0xFFFFFFFF)


def make_split_png(second_chunk_type=b"IDAT", size=(16, 16)) -> bytes:
    """RGB PNG whose pixel data is split over two chunks; the second chunk type can be garbled."""
    width, height = size
    raw = b"".join(
        b"\x00" + bytes((x * 7 + y * 13 + c * 31) % 256 for x in range(width) for c in range(3))
        for y in range(height)
    )
    compressed = zlib.compress(raw, 0)
    half = len(compressed) // 2
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0))
        + _png_chunk(b"IDAT", compressed[:half])
        + _png_chunk(second_chunk_type, compressed[half:])
        + _png_chunk(b"IEND", b"")
    )


@pytest.fixture
def plain_jpeg():
    return make_image_bytes()


@pytest.fixture
def tagged_jpeg():
    return make_image_bytes(exif=build_exif(), icc_profile=FAKE_ICC, comment="shot at home", xmp=XMP_PACKET)


@pytest.fixture
def transparent_png():
    return make_image_bytes("PNG", mode="RGBA", color=(255, 0, 0, 0))


@pytest.fixture
def client():
    from main import app
    with TestClient(app) as c:
        yield c
