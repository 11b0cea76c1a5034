import pytest
from scrubber.validation import ALLOWED_IMAGE_TYPES, check_content_type, normalize_mime_type


@pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/webp", "image/gif", "image/tiff"])
def test_common_image_types_are_accepted(content_type):
    check = check_content_type(content_type)
    assert check.accepted
    assert check.mime_type == content_type
    assert check.reason == ""


def test_parameters_and_case_are_ignored():
    check = check_content_type("Image/JPEG; charset=binary")
    assert check.accepted
    assert check.mime_type == "image/jpeg"


def test_non_image_type_is_rejected_with_reason():
    check = check_content_type("text/plain")
    assert not check.accepted
    assert "text/plain" in check.reason


@pytest.mark.parametrize("content_type", [None, ""])
def test_missing_type_is_rejected(content_type):
    assert not check_content_type(content_type).accepted


def test_image_type_outside_allowlist_is_rejected():
    assert "image/svg+xml" not in ALLOWED_IMAGE_TYPES
    check = check_content_type("image/svg+xml")
    assert not check.accepted
    assert "Unsupported image type" in check.reason


def test_normalize_mime_type():
    assert normalize_mime_type(" image/PNG ;q=1") == "image/png"
    assert normalize_mime_type(None) == ""
