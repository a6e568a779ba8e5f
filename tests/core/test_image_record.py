"""Unit tests for ImageRecord."""

import pytest

from archive_gallery.core import ImageRecord


def test_ids_are_unique_per_record():
    first = ImageRecord(name="a.jpg", source="a.jpg")
    second = ImageRecord(name="a.jpg", source="a.jpg")
    assert first.id != second.id


def test_aspect_ratio():
    assert ImageRecord(name="w.jpg", source="w.jpg", width=200, height=100).aspect_ratio == 2.0
    assert ImageRecord(name="x.jpg", source="x.jpg").aspect_ratio == 0.0


def test_stamp_provenance_once():
    image = ImageRecord(name="a.jpg", source="a.jpg")
    assert not image.is_stamped

    image.stamp_provenance("Book.zip", "abc")

    assert image.is_stamped
    assert image.archive_name == "Book.zip"
    assert image.original_archive_id == "abc"


def test_restamping_is_rejected():
    image = ImageRecord(name="a.jpg", source="a.jpg")
    image.stamp_provenance("Book.zip", "abc")

    with pytest.raises(ValueError):
        image.stamp_provenance("Other.zip", "def")

    assert image.original_archive_id == "abc"
