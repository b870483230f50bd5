import io

import pytest
from PIL import Image

from memberdesk.core.errors import ValidationError
from memberdesk.services.image_service import PhotoStorage


def _image_bytes(size=(800, 600), fmt="PNG", mode="RGB"):
    buffer = io.BytesIO()
    Image.new(mode, size, (10, 120, 200) if mode == "RGB" else (10, 120, 200, 128)).save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture
def storage(tmp_path):
    return PhotoStorage(root=tmp_path, base_url="http://gym.test/")


def test_validate_image(storage):
    assert storage.validate_image(_image_bytes(), "face.png") == (True, "")

    ok, message = storage.validate_image(_image_bytes(), "face.gif")
    assert ok is False
    assert message.startswith("Invalid file type")

    ok, message = storage.validate_image(b"\x00" * 10, "face.jpg")
    assert ok is False
    assert message.startswith("Invalid image file")

    ok, message = storage.validate_image(b"\x00" * (PhotoStorage.MAX_FILE_SIZE + 1), "face.jpg")
    assert ok is False
    assert message == "File size exceeds 5MB limit"


def test_process_image_crops_square_and_shrinks(storage):
    processed = storage.process_image(_image_bytes((1200, 800)), ".jpg")

    img = Image.open(io.BytesIO(processed))
    assert img.format == "JPEG"
    assert img.size == (500, 500)


def test_process_image_flattens_transparency(storage):
    processed = storage.process_image(_image_bytes((300, 300), mode="RGBA"), ".png")

    img = Image.open(io.BytesIO(processed))
    assert img.mode == "RGB"
    assert img.size == (300, 300)


def test_build_photo_path(storage):
    path = storage.build_photo_path("  Asha Rao ", "Face.JPG", now_ms=1700000000000)
    assert path == "photos/member_Asha_Rao_1700000000000.jpg"


def test_upload_and_delete(storage, tmp_path):
    url = storage.upload_member_photo(_image_bytes(), "face.png", "Asha Rao")

    assert url.startswith("http://gym.test/uploads/member-photos/photos/member_Asha_Rao_")
    bucket, path = storage.path_from_url(url)
    stored = tmp_path / bucket / path
    assert stored.exists()

    assert storage.delete_member_photo(url) is True
    assert not stored.exists()


def test_put_object_never_overwrites(storage):
    storage.put_object("member-photos", "photos/a.png", b"first", "image/png")

    with pytest.raises(ValidationError, match="Object already exists"):
        storage.put_object("member-photos", "photos/a.png", b"second", "image/png")


def test_put_object_rejects_paths_outside_bucket(storage):
    with pytest.raises(ValidationError, match="Invalid storage path"):
        storage.put_object("member-photos", "../../escape.png", b"data", "image/png")


def test_foreign_urls_are_left_alone(storage):
    assert storage.path_from_url("https://cdn.example.com/avatar.png") is None
    assert storage.path_from_url(None) is None
    assert storage.delete_member_photo("https://cdn.example.com/avatar.png") is True
