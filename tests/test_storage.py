import os
import re

import pytest

from gallery.services.storage import ImageStore, InvalidFilename, is_safe_name

NAME_PATTERN = re.compile(r"^\d+-\d+\.png$")


def test_generated_name_format():
    name = ImageStore.generate_name(".PNG")
    assert NAME_PATTERN.match(name)


def test_generated_names_are_unique():
    names = {ImageStore.generate_name(".jpg") for _ in range(10_000)}
    assert len(names) == 10_000


def test_put_creates_directory_and_writes(store, png_bytes):
    assert not store.root.exists()
    name = store.put(png_bytes, ".png")
    assert (store.root / name).read_bytes() == png_bytes


def test_put_retries_on_collision(store, png_bytes, monkeypatch):
    store.ensure_directory()
    (store.root / "1-1.png").write_bytes(b"existing")
    names = iter(["1-1.png", "1-2.png"])
    monkeypatch.setattr(ImageStore, "generate_name", staticmethod(lambda extension: next(names)))

    name = store.put(png_bytes, ".png")

    assert name == "1-2.png"
    assert (store.root / "1-1.png").read_bytes() == b"existing"


def test_list_filters_and_sorts_newest_first(store, png_bytes):
    store.ensure_directory()
    older = store.root / "100-1.png"
    newer = store.root / "200-2.jpg"
    older.write_bytes(png_bytes)
    newer.write_bytes(png_bytes)
    (store.root / "notes.txt").write_text("not an image")
    (store.root / "nested.png").mkdir()
    os.utime(older, (1_000, 1_000))
    os.utime(newer, (2_000, 2_000))

    images = store.list_images()

    assert [image.filename for image in images] == ["200-2.jpg", "100-1.png"]
    assert images[0].url == "/uploads/200-2.jpg"
    assert images[0].mimetype == "image/jpeg"
    assert images[1].size == len(png_bytes)


def test_list_missing_directory_is_empty(store):
    assert store.list_images() == []


def test_delete_existing_and_missing(store, png_bytes):
    name = store.put(png_bytes, ".png")
    assert store.delete(name) is True
    assert store.delete(name) is False
    assert store.list_images() == []


@pytest.mark.parametrize("name", ["../secret.txt", "..", ".hidden", "a/b.png", "a..png", "", "x y.png"])
def test_unsafe_names_rejected(name):
    assert not is_safe_name(name)


def test_delete_traversal_never_touches_filesystem(store, tmp_path):
    store.ensure_directory()
    secret = tmp_path / "secret.txt"
    secret.write_text("keep me")

    with pytest.raises(InvalidFilename):
        store.delete("../secret.txt")

    assert secret.exists()
