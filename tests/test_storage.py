import pytest

from app.services.api_keys import usage_percentage
from app.services.storage import classify_file_type, format_file_size


@pytest.mark.parametrize(
    ("num_bytes", "expected"),
    [
        (0, "0 B"),
        (512, "512.00 B"),
        (1024, "1.00 KB"),
        (1536, "1.50 KB"),
        (1048576, "1.00 MB"),
        (5 * 1024**3, "5.00 GB"),
    ],
)
def test_format_file_size(num_bytes, expected):
    assert format_file_size(num_bytes) == expected


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("holiday.JPG", "image"),
        ("clip.mp4", "video"),
        ("notes.docx", "document"),
        ("archive.zip", "other"),
        ("README", "other"),
    ],
)
def test_classify_file_type(filename, expected):
    assert classify_file_type(filename) == expected


def test_usage_percentage_rounds_and_guards_zero_limit():
    assert usage_percentage(1, 3) == 33
    assert usage_percentage(2, 3) == 67
    assert usage_percentage(5, 0) == 0
