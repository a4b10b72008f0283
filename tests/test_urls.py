import time
import pytest
from tubenotes.providers.youtube import MAX_TEXT_LENGTH, MAX_URL_LENGTH, extract_url, is_valid_url, video_id

VID = "dQw4w9WgXcQ"


@pytest.mark.parametrize("url", [
    f"https://www.youtube.com/watch?v={VID}",
    f"http://youtube.com/watch?v={VID}",
    f"https://www.youtube.com/live/{VID}",
    f"https://youtube.com/embed/{VID}",
    f"https://youtube.com/shorts/{VID}",
    f"https://youtu.be/{VID}",
    f"youtu.be/{VID}",
    f"www.youtube.com/watch?v={VID}",
    f"https://youtu.be/{VID}?t=42",
    f"  https://youtu.be/{VID}  ",
])
def test_valid_urls(url):
    assert is_valid_url(url)


@pytest.mark.parametrize("url", [
    None,
    "",
    "https://youtu.be/short",
    f"https://youtu.be/{VID}x",
    f"https://vimeo.com/{VID}",
    f"https://youtube.com/playlist?list={VID}",
    f"see https://youtu.be/{VID}",
])
def test_invalid_urls(url):
    assert not is_valid_url(url)


def test_overlong_url_is_rejected():
    url = f"https://youtu.be/{VID}?t=" + "1" * MAX_URL_LENGTH
    assert not is_valid_url(url)


@pytest.mark.parametrize("text,expected", [
    (f"Check this out: https://youtu.be/{VID} amazing", f"https://youtu.be/{VID}"),
    (f"www.youtube.com/shorts/{VID}", f"https://www.youtube.com/shorts/{VID}"),
    (f"check this out: https://youtu.be/{VID}?t=5", f"https://youtu.be/{VID}?t=5"),
    (f"youtube.com/watch?v={VID}", f"https://youtube.com/watch?v={VID}"),
    (f"first https://youtu.be/{VID} second https://youtu.be/aaaaaaaaaaa", f"https://youtu.be/{VID}"),
    (f"  http://youtube.com/embed/{VID}\n", f"http://youtube.com/embed/{VID}"),
])
def test_extract_url(text, expected):
    assert extract_url(text) == expected


@pytest.mark.parametrize("text", [None, "", "no links here", "https://example.com/watch?v=123"])
def test_extract_url_no_match(text):
    assert extract_url(text) is None


def test_extract_url_rejects_huge_text():
    text = f"https://youtu.be/{VID} " + "x" * MAX_TEXT_LENGTH
    assert extract_url(text) is None


def test_extract_url_bounded_on_pathological_input():
    text = "youtu.be/" * (MAX_TEXT_LENGTH // 9)
    started = time.monotonic()
    assert extract_url(text) is None
    assert time.monotonic() - started < 1.0


def test_video_id():
    assert video_id(f"https://www.youtube.com/watch?v={VID}&t=1") == VID
    assert video_id(f"youtu.be/{VID}") == VID
    assert video_id("https://example.com") is None
