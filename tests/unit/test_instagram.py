from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from crosspost.application.services import MediaNormalizer
from crosspost.channels import InstagramAdapter
from crosspost.domain import DestinationCredential, ErrorKind, MediaItem


def instagram_api(status_codes=("FINISHED",), status_detail=None, failing_children=()):
    """
    Fake Graph API for account ig1.

    Containers get sequential ids c1, c2, ...; status checks walk through
    status_codes, repeating the last one. Carousel children whose image URL
    ends with a name in failing_children are rejected.
    """
    containers = []
    checks = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/v18.0/ig1/media":
            form = dict(httpx.QueryParams(request.content.decode()))
            if form.get("image_url", "").rsplit("/", 1)[-1] in failing_children:
                return httpx.Response(400, json={"error": {"message": "Invalid image URL", "code": 9004}})
            containers.append(form)
            return httpx.Response(200, json={"id": f"c{len(containers)}"})
        if path == "/v18.0/ig1/media_publish":
            return httpx.Response(200, json={"id": "ig_post_1"})
        if request.method == "GET" and path.startswith("/v18.0/c"):
            checks.append(request)
            code = status_codes[min(len(checks), len(status_codes)) - 1]
            return httpx.Response(200, json={"status_code": code, "status": status_detail, "id": path})
        return httpx.Response(404)

    return handler


class TestInstagramAdapter:
    @pytest.fixture
    def credential(self):
        return DestinationCredential(access_token="ig-token", account_id="ig1")

    @pytest.fixture
    def uploader(self):
        uploader = MagicMock()
        uploader.upload = AsyncMock(return_value="https://media.example.com/images/abc.png")
        return uploader

    @pytest.fixture
    def make_adapter(self, settings, no_retry, uploader):
        def make(api):
            return InstagramAdapter(
                settings,
                normalizer=MediaNormalizer(uploader),
                retry_policy=no_retry,
                client_factory=api,
            )

        return make

    @pytest.mark.asyncio
    async def test_text_only_is_rejected(self, mock_api, make_adapter, credential):
        api = mock_api(instagram_api())

        result = await make_adapter(api).publish("hello", [], credential)

        assert result.success is False
        assert result.error_kind is ErrorKind.VALIDATION
        assert "requires at least one image or video" in result.message
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_mixed_kinds_rejected_before_network(self, mock_api, make_adapter, credential, uploader, png, mp4):
        api = mock_api(instagram_api())
        media = [MediaItem.from_bytes(png, "image/png"), MediaItem.from_bytes(mp4, "video/mp4")]

        result = await make_adapter(api).publish("hello", media, credential)

        assert result.error_kind is ErrorKind.VALIDATION
        assert "mixing images and videos" in result.message
        assert api.requests == []
        uploader.upload.assert_not_awaited()

    @pytest.mark.parametrize(
        "urls,message",
        [
            (["a.mp4", "b.mp4"], "only 1 video"),
            ([f"{n}.jpg" for n in range(11)], "at most 10 images"),
        ],
    )
    @pytest.mark.asyncio
    async def test_strict_limits(self, mock_api, make_adapter, credential, urls, message):
        api = mock_api(instagram_api())
        media = [MediaItem.from_url(f"https://cdn.example.com/{u}") for u in urls]

        result = await make_adapter(api).publish("hello", media, credential)

        assert result.error_kind is ErrorKind.VALIDATION
        assert message in result.message
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_single_image(self, mock_api, make_adapter, credential):
        api = mock_api(instagram_api())

        result = await make_adapter(api).publish(
            "Sunset", [MediaItem.from_url("https://cdn.example.com/sunset.jpg")], credential
        )

        assert result.success is True
        assert result.post_id == "ig_post_1"
        assert result.media_count == 1
        assert result.message == "Instagram image post published"
        created = api.form(api.matching("POST", "/v18.0/ig1/media")[0])
        assert created == {
            "access_token": "ig-token",
            "image_url": "https://cdn.example.com/sunset.jpg",
            "media_type": "IMAGE",
            "caption": "Sunset",
        }
        status = api.matching("GET", "/v18.0/c1")[0]
        assert status.url.params["fields"] == "status_code,status"
        published = api.form(api.matching("POST", "/v18.0/ig1/media_publish")[0])
        assert published["creation_id"] == "c1"

    @pytest.mark.asyncio
    async def test_single_video_is_a_reel(self, mock_api, make_adapter, credential):
        api = mock_api(instagram_api(status_codes=("IN_PROGRESS", "IN_PROGRESS", "FINISHED")))

        result = await make_adapter(api).publish(
            "Clip", [MediaItem.from_url("https://cdn.example.com/clip.mp4")], credential
        )

        assert result.success is True
        created = api.form(api.matching("POST", "/v18.0/ig1/media")[0])
        assert created["video_url"] == "https://cdn.example.com/clip.mp4"
        assert created["media_type"] == "REELS"
        assert len(api.matching("GET", "/v18.0/c1")) == 3

    @pytest.mark.asyncio
    async def test_uploaded_bytes_become_urls(self, mock_api, make_adapter, credential, uploader, png):
        api = mock_api(instagram_api())

        result = await make_adapter(api).publish(
            "Upload", [MediaItem.from_bytes(png, "image/png")], credential
        )

        assert result.success is True
        uploader.upload.assert_awaited_once()
        created = api.form(api.matching("POST", "/v18.0/ig1/media")[0])
        assert created["image_url"] == "https://media.example.com/images/abc.png"

    @pytest.mark.asyncio
    async def test_carousel(self, mock_api, make_adapter, credential):
        api = mock_api(instagram_api())
        media = [MediaItem.from_url(f"https://cdn.example.com/{n}.jpg") for n in range(3)]

        result = await make_adapter(api).publish("Trip", media, credential)

        assert result.success is True
        assert result.media_count == 3
        assert result.message == "Instagram carousel with 3 images published"
        created = [api.form(r) for r in api.matching("POST", "/v18.0/ig1/media")]
        for child in created[:3]:
            assert child["is_carousel_item"] == "true"
            assert "caption" not in child
            assert "media_type" not in child
        assert created[3] == {
            "media_type": "CAROUSEL",
            "children": "c1,c2,c3",
            "caption": "Trip",
            "access_token": "ig-token",
        }
        assert [r.url.path for r in api.requests if r.method == "GET"] == ["/v18.0/c4"]
        assert api.form(api.matching("POST", "/v18.0/ig1/media_publish")[0])["creation_id"] == "c4"

    @pytest.mark.asyncio
    async def test_carousel_skips_failed_child(self, mock_api, make_adapter, credential):
        api = mock_api(instagram_api(failing_children={"1.jpg"}))
        media = [MediaItem.from_url(f"https://cdn.example.com/{n}.jpg") for n in range(3)]

        result = await make_adapter(api).publish("Trip", media, credential)

        assert result.success is True
        assert result.media_count == 2
        assert [(s.index, s.reason) for s in result.skipped] == [
            (1, "Container creation failed: Invalid image URL")
        ]
        carousel = api.form(api.matching("POST", "/v18.0/ig1/media")[-1])
        assert carousel["children"] == "c1,c2"

    @pytest.mark.asyncio
    async def test_carousel_without_children_fails(self, mock_api, make_adapter, credential):
        api = mock_api(instagram_api(failing_children={"0.jpg", "1.jpg"}))
        media = [MediaItem.from_url(f"https://cdn.example.com/{n}.jpg") for n in range(2)]

        result = await make_adapter(api).publish("Trip", media, credential)

        assert result.error_kind is ErrorKind.UPSTREAM_INVALID
        assert api.matching("POST", "/v18.0/ig1/media_publish") == []

    @pytest.mark.asyncio
    async def test_object_store_failure_for_every_item(self, mock_api, make_adapter, credential, uploader, png):
        uploader.upload.side_effect = Exception("bucket unavailable")
        api = mock_api(instagram_api())
        media = [MediaItem.from_bytes(png, "image/png"), MediaItem.from_bytes(png + b"\x01", "image/png")]

        result = await make_adapter(api).publish("hello", media, credential)

        assert result.error_kind is ErrorKind.VALIDATION
        assert api.requests == []
        assert [s.index for s in result.skipped] == [0, 1]

    @pytest.mark.asyncio
    async def test_partial_object_store_failure_maps_original_positions(
        self, mock_api, make_adapter, credential, uploader, png
    ):
        uploader.upload.side_effect = [Exception("bucket unavailable"), "https://media.example.com/b.png"]
        api = mock_api(instagram_api())
        media = [
            MediaItem.from_bytes(png, "image/png"),
            MediaItem.from_url("https://cdn.example.com/a.jpg"),
            MediaItem.from_bytes(png + b"\x01", "image/png"),
        ]

        result = await make_adapter(api).publish("hello", media, credential)

        assert result.success is True
        assert result.media_count == 2
        assert [s.index for s in result.skipped] == [0]
        children = [api.form(r)["image_url"] for r in api.matching("POST", "/v18.0/ig1/media")[:2]]
        assert children == ["https://cdn.example.com/a.jpg", "https://media.example.com/b.png"]

    @pytest.mark.asyncio
    async def test_errored_container_fails_without_publish(self, mock_api, make_adapter, credential):
        api = mock_api(instagram_api(status_codes=("ERROR",), status_detail="Error: unsupported codec"))

        result = await make_adapter(api).publish(
            "Clip", [MediaItem.from_url("https://cdn.example.com/clip.mp4")], credential
        )

        assert result.error_kind is ErrorKind.UPSTREAM_INVALID
        assert result.message == "Media processing failed: Error: unsupported codec"
        assert api.matching("POST", "/v18.0/ig1/media_publish") == []

    @pytest.mark.asyncio
    async def test_unresolved_status_still_publishes(self, mock_api, make_adapter, credential):
        api = mock_api(instagram_api(status_codes=("IN_PROGRESS",)))

        result = await make_adapter(api).publish(
            "Clip", [MediaItem.from_url("https://cdn.example.com/clip.mp4")], credential
        )

        assert result.success is True
        assert len(api.matching("GET", "/v18.0/c1")) == 3
        assert len(api.matching("POST", "/v18.0/ig1/media_publish")) == 1

    @pytest.mark.asyncio
    async def test_missing_account_id(self, mock_api, make_adapter):
        api = mock_api(instagram_api())

        result = await make_adapter(api).publish(
            "hello",
            [MediaItem.from_url("https://cdn.example.com/a.jpg")],
            DestinationCredential(access_token="ig-token"),
        )

        assert result.error_kind is ErrorKind.VALIDATION
        assert result.message == "instagram credential is missing: account_id"

    @pytest.mark.asyncio
    async def test_permission_error_phrasing(self, mock_api, make_adapter, credential):
        api = mock_api(
            lambda r: httpx.Response(400, json={"error": {"message": "(#10) Not allowed", "code": 10}})
        )

        result = await make_adapter(api).publish(
            "hello", [MediaItem.from_url("https://cdn.example.com/a.jpg")], credential
        )

        assert result.error_kind is ErrorKind.PERMISSION
        assert "Business/Creator" in result.message
