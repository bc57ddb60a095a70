import pytest

from crosspost.domain import MediaItem, MediaKind, PublishValidationError
from crosspost.domain.media import kind_from_mime_type, kind_from_url


class TestKindDetection:
    @pytest.mark.parametrize(
        "mime_type,expected",
        [
            ("image/png", MediaKind.IMAGE),
            ("image/jpeg", MediaKind.IMAGE),
            ("video/mp4", MediaKind.VIDEO),
            ("VIDEO/QuickTime", MediaKind.VIDEO),
        ],
    )
    def test_kind_from_mime_type(self, mime_type, expected):
        assert kind_from_mime_type(mime_type) is expected

    def test_unsupported_mime_type(self):
        with pytest.raises(PublishValidationError, match="Unsupported media type"):
            kind_from_mime_type("application/pdf")

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://cdn.example.com/photo.jpg", MediaKind.IMAGE),
            ("https://cdn.example.com/clip.mp4", MediaKind.VIDEO),
            ("https://cdn.example.com/clip.MOV?sig=abc", MediaKind.VIDEO),
            ("https://cdn.example.com/clip.webm", MediaKind.VIDEO),
            ("https://cdn.example.com/no-extension", MediaKind.IMAGE),
            ("https://cdn.example.com/mp4/photo.png", MediaKind.IMAGE),
        ],
    )
    def test_kind_from_url(self, url, expected):
        assert kind_from_url(url) is expected


class TestMediaItem:
    def test_from_bytes(self, png):
        item = MediaItem.from_bytes(png, "image/png")

        assert item.kind is MediaKind.IMAGE
        assert item.filename == "image.jpg"
        assert item.size == len(png)
        assert item.is_remote is False
        assert item.is_video is False

    def test_from_bytes_keeps_filename(self, mp4):
        item = MediaItem.from_bytes(mp4, "video/mp4", filename="holiday.mp4")

        assert item.kind is MediaKind.VIDEO
        assert item.filename == "holiday.mp4"

    def test_from_url(self):
        item = MediaItem.from_url("  https://cdn.example.com/media/clip.mp4?token=x  ")

        assert item.url == "https://cdn.example.com/media/clip.mp4?token=x"
        assert item.kind is MediaKind.VIDEO
        assert item.filename == "clip.mp4"
        assert item.is_remote is True
        assert item.size is None

    def test_explicit_kind_overrides_extension(self):
        item = MediaItem.from_url("https://cdn.example.com/render", kind=MediaKind.VIDEO)

        assert item.kind is MediaKind.VIDEO

    def test_requires_exactly_one_source(self, png):
        with pytest.raises(PublishValidationError):
            MediaItem()
        with pytest.raises(PublishValidationError):
            MediaItem(data=png, mime_type="image/png", url="https://cdn.example.com/a.png")

    def test_rejects_empty_bytes(self):
        with pytest.raises(PublishValidationError, match="cannot be empty"):
            MediaItem.from_bytes(b"", "image/png")

    def test_rejects_missing_mime_type(self, png):
        with pytest.raises(PublishValidationError, match="MIME type"):
            MediaItem(data=png)

    def test_rejects_non_http_url(self):
        with pytest.raises(PublishValidationError, match="HTTP"):
            MediaItem.from_url("ftp://files.example.com/a.png")

    def test_describe_is_log_safe(self, png):
        assert MediaItem.from_bytes(png, "image/png").describe() == f"image file image.jpg ({len(png)} bytes)"
        assert MediaItem.from_url("https://cdn.example.com/a.png?sig=secret").describe() == "image url a.png"
