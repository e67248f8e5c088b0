from pathlib import Path

from manifestgen.utils import (
    humanize,
    is_cover_filename,
    natural_sorted,
    resolve_case_insensitive,
    strip_cover,
    url_from_abs,
)
from manifestgen.writer import helper_text


def test_humanize_folder_names():
    assert humanize("street_photos-2024") == "Street Photos 2024"
    assert humanize("my--trip") == "My Trip"
    assert humanize("Cats") == "Cats"


def test_url_from_abs_encodes_like_encode_uri():
    root = Path("/srv/public")
    assert url_from_abs(root, root / "Portfolio" / "My Trip" / "a b.jpg") == "/Portfolio/My%20Trip/a%20b.jpg"
    assert url_from_abs(root, root / "Portfolio" / "café.jpg") == "/Portfolio/caf%C3%A9.jpg"


def test_natural_sort_is_numeric_and_case_insensitive():
    assert natural_sorted(["a10", "a2", "A1", "b"]) == ["A1", "a2", "a10", "b"]


def test_resolve_case_insensitive_prefers_exact_match():
    assert resolve_case_insensitive(["A.jpg", "a.jpg"], "a.jpg") == "a.jpg"
    assert resolve_case_insensitive(["Photo.JPG"], "photo.jpg") == "Photo.JPG"
    assert resolve_case_insensitive(["Photo.JPG"], "nested/photo.jpg") == "Photo.JPG"
    assert resolve_case_insensitive(["Photo.JPG"], "other.jpg") is None


def test_cover_suffix_helpers():
    assert is_cover_filename("hero.jpg.COVER")
    assert strip_cover("hero.jpg.cover") == "hero.jpg"
    assert strip_cover("hero.jpg") == "hero.jpg"


def test_helper_text_strips_leading_dots():
    assert helper_text([], [".x.jpg", "y.jpg"]) == "x.jpg\ny.jpg\n"
    assert helper_text(["# head"], ["a"]) == "# head\n\na\n"
    assert helper_text([], []) == ""
