"""
End-to-end tests for the avatar download pipeline.
All upstreams (relay, thumbnails API, CDN) are served by one MockTransport.
"""
import io
import json
import zipfile

import httpx
import pytest

from core.content_address import hash_url
from core.errors import (
    AvatarPipelineError,
    HTTPStatusFetchError,
    IdentityLookupError,
    InvalidUsernameError,
    OpaqueResponseError,
)
from core.services.avatar_pipeline import (
    CORS_HINT,
    download_avatar,
    failure_hint,
    rewrite_material,
    run_download,
    texture_entries,
)

from conftest import RELAY_URL, THUMBNAILS_URL, json_response

DESCRIPTOR_URL = "https://t3.rbxcdn.com/DESCRIPTORHASH"


class FakeUpstreams:
    """Routes requests by (method, url); unknown routes are 404."""

    def __init__(self, user_id=1):
        self.requests = []
        self.routes = {
            ("POST", f"{RELAY_URL}/api/userid"): json_response({"id": user_id}),
            ("GET", f"{THUMBNAILS_URL}?userId={user_id}"): json_response(
                {"targetId": user_id, "state": "Completed", "imageUrl": DESCRIPTOR_URL}
            ),
        }

    def set(self, url, response, method="GET"):
        self.routes[(method, url)] = response

    def descriptor(self, payload):
        self.set(DESCRIPTOR_URL, json_response(payload))

    def cdn(self, content_hash, response):
        self.set(hash_url(content_hash), response)

    def __call__(self, request):
        self.requests.append((request.method, str(request.url)))
        response = self.routes.get((request.method, str(request.url)))
        if response is None:
            return httpx.Response(404)
        # Fresh copy per request; a Response instance is not meant to be sent twice.
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )

    def transport(self):
        return httpx.MockTransport(self)

    def cdn_gets(self):
        return [url for method, url in self.requests if "rbxcdn.com" in url and url != DESCRIPTOR_URL]


def _open(artifact):
    return zipfile.ZipFile(io.BytesIO(artifact.data))


async def _download(upstreams, settings, reporter, username="Roblox"):
    async with httpx.AsyncClient(transport=upstreams.transport()) as client:
        return await download_avatar(username, client=client, settings=settings, reporter=reporter)


class TestRewriteMaterial:
    def test_every_occurrence_replaced(self):
        entries = texture_entries(["TEX1"])
        text = "map_Kd TEX1\nmap_d TEX1\nmap_Ka TEX1"
        rewritten = rewrite_material(text, entries)
        assert "TEX1" not in rewritten
        assert rewritten.count("texture_1.png") == 3

    def test_order_determines_filenames(self):
        entries = texture_entries(["HASHB", "HASHA"])
        assert [e.filename for e in entries] == ["texture_1.png", "texture_2.png"]
        assert rewrite_material("map_Kd HASHA\nmap_Bump HASHB", entries) == (
            "map_Kd texture_2.png\nmap_Bump texture_1.png"
        )

    def test_hash_is_matched_literally(self):
        entries = texture_entries(["a.c"])
        assert rewrite_material("abc a.c", entries) == "abc texture_1.png"

    def test_texture_urls_use_content_address(self):
        (entry,) = texture_entries(["TEX1"])
        assert entry.url == hash_url("TEX1")


@pytest.mark.asyncio
class TestDownloadAvatar:
    async def test_mesh_only(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams(user_id=1)
        descriptor = {"obj": "OBJHASH", "mtl": None, "textures": None}
        upstreams.descriptor(descriptor)
        upstreams.cdn("OBJHASH", httpx.Response(200, text="v 0 0 0\n"))

        artifact = await _download(upstreams, settings, reporter)

        assert artifact.filename == "User_Roblox_1_3D_Files.zip"
        with _open(artifact) as zf:
            assert sorted(zf.namelist()) == ["User_Roblox_1.obj", "User_Roblox_1_meta.json"]
            assert zf.read("User_Roblox_1.obj").decode() == "v 0 0 0\n"
            assert json.loads(zf.read("User_Roblox_1_meta.json")) == descriptor

    async def test_material_and_textures(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams(user_id=1)
        upstreams.descriptor({"mtl": "MTLHASH", "textures": ["TEX1", "TEX2"]})
        upstreams.cdn("MTLHASH", httpx.Response(200, text="map_Kd TEX1\nmap_Bump TEX2"))
        upstreams.cdn("TEX1", httpx.Response(200, content=b"png-1"))
        upstreams.cdn("TEX2", httpx.Response(200, content=b"png-2"))

        artifact = await _download(upstreams, settings, reporter)

        with _open(artifact) as zf:
            assert zf.namelist() == [
                "User_Roblox_1.mtl",
                "texture_1.png",
                "texture_2.png",
                "User_Roblox_1_meta.json",
            ]
            assert zf.read("User_Roblox_1.mtl").decode() == (
                "map_Kd texture_1.png\nmap_Bump texture_2.png"
            )
            assert zf.read("texture_1.png") == b"png-1"
            assert zf.read("texture_2.png") == b"png-2"

        # Sequential: material first, then textures in order.
        assert upstreams.cdn_gets() == [hash_url("MTLHASH"), hash_url("TEX1"), hash_url("TEX2")]

    async def test_meta_is_pretty_printed_full_descriptor(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams(user_id=7)
        descriptor = {"obj": "OBJHASH", "camera": {"fov": 70}, "aabb": {"min": {"x": 0}}}
        upstreams.descriptor(descriptor)
        upstreams.cdn("OBJHASH", httpx.Response(200, text="o"))

        artifact = await _download(upstreams, settings, reporter)

        with _open(artifact) as zf:
            meta = zf.read("User_Roblox_7_meta.json").decode()
        assert meta == json.dumps(descriptor, indent=2)

    async def test_listed_thumbnail_shape(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams(user_id=1)
        upstreams.set(
            f"{THUMBNAILS_URL}?userId=1",
            json_response({"data": [{"targetId": 1, "imageUrl": DESCRIPTOR_URL}]}),
        )
        upstreams.descriptor({"textures": []})

        artifact = await _download(upstreams, settings, reporter)
        with _open(artifact) as zf:
            assert zf.namelist() == ["User_Roblox_1_meta.json"]

    async def test_no_avatar_data(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams(user_id=1)
        upstreams.set(f"{THUMBNAILS_URL}?userId=1", json_response({"data": []}))

        with pytest.raises(AvatarPipelineError) as excinfo:
            await _download(upstreams, settings, reporter)
        assert str(excinfo.value) == "No avatar data returned from thumbnails API."

    async def test_entry_without_image_url(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams(user_id=1)
        upstreams.set(f"{THUMBNAILS_URL}?userId=1", json_response({"targetId": 1, "state": "Pending"}))

        with pytest.raises(AvatarPipelineError, match="returned no imageUrl"):
            await _download(upstreams, settings, reporter)

    async def test_descriptor_not_json(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams(user_id=1)
        upstreams.set(DESCRIPTOR_URL, httpx.Response(200, text="<html>nope</html>"))

        with pytest.raises(AvatarPipelineError, match="did not return JSON"):
            await _download(upstreams, settings, reporter)

    async def test_descriptor_without_assets(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams(user_id=1)
        upstreams.descriptor({"camera": {}})

        with pytest.raises(AvatarPipelineError, match="missing obj/mtl/textures"):
            await _download(upstreams, settings, reporter)

    async def test_opaque_cdn_response_aborts(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams(user_id=1)
        upstreams.descriptor({"obj": "OBJHASH"})
        upstreams.cdn("OBJHASH", httpx.Response(0))

        with pytest.raises(OpaqueResponseError) as excinfo:
            await _download(upstreams, settings, reporter)
        assert "opaque-response (CORS)" in str(excinfo.value)
        assert upstreams.cdn_gets() == [hash_url("OBJHASH")] * 3

    async def test_texture_failure_aborts_whole_run(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams(user_id=1)
        upstreams.descriptor({"mtl": "MTLHASH", "textures": ["TEX1", "TEX2"], "obj": "OBJHASH"})
        upstreams.cdn("MTLHASH", httpx.Response(200, text="map_Kd TEX1"))
        upstreams.cdn("TEX1", httpx.Response(200, content=b"png-1"))
        upstreams.cdn("TEX2", httpx.Response(500))

        with pytest.raises(HTTPStatusFetchError):
            await _download(upstreams, settings, reporter)
        # Mesh never fetched after the failure.
        assert hash_url("OBJHASH") not in upstreams.cdn_gets()

    async def test_relay_error(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams()
        upstreams.set(
            f"{RELAY_URL}/api/userid", json_response({"error": "user not found"}, 404), method="POST"
        )

        with pytest.raises(IdentityLookupError, match="user not found"):
            await _download(upstreams, settings, reporter)

    async def test_empty_username_makes_no_request(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams()
        with pytest.raises(InvalidUsernameError):
            await _download(upstreams, settings, reporter, username="   ")
        assert upstreams.requests == []

    async def test_progress_is_reported(self, settings, reporter, sleeps):
        upstreams = FakeUpstreams(user_id=1)
        upstreams.descriptor({"obj": "OBJHASH"})
        upstreams.cdn("OBJHASH", httpx.Response(200, text="o"))

        await _download(upstreams, settings, reporter)

        assert reporter.statuses[0][:2] == ("warn", "Working")
        assert reporter.lines[0] == "-> Resolved userId: 1"
        assert "-> Fetching .obj..." in reporter.lines
        assert reporter.lines[-1] == "-> Building ZIP..."


@pytest.mark.asyncio
class TestRunDownload:
    async def test_saves_archive_and_reports_done(self, settings, reporter, sleeps, tmp_path):
        upstreams = FakeUpstreams(user_id=1)
        upstreams.descriptor({"obj": "OBJHASH"})
        upstreams.cdn("OBJHASH", httpx.Response(200, text="o"))

        result = await run_download(
            " Roblox ",
            settings=settings,
            reporter=reporter,
            output_dir=tmp_path,
            transport=upstreams.transport(),
        )

        assert result.username == "Roblox"
        assert result.user_id == 1
        assert result.base_name == "User_Roblox_1"
        assert result.saved_path == tmp_path / "User_Roblox_1_3D_Files.zip"
        assert result.saved_path.exists()
        with zipfile.ZipFile(result.saved_path) as zf:
            assert "User_Roblox_1.obj" in zf.namelist()
        assert reporter.last[:2] == ("ok", "Done")

    async def test_failure_reports_with_cors_hint_and_saves_nothing(
        self, settings, reporter, sleeps, tmp_path
    ):
        upstreams = FakeUpstreams(user_id=1)
        upstreams.descriptor({"obj": "OBJHASH"})
        upstreams.cdn("OBJHASH", httpx.Response(0))

        with pytest.raises(OpaqueResponseError):
            await run_download(
                "Roblox",
                settings=settings,
                reporter=reporter,
                output_dir=tmp_path,
                transport=upstreams.transport(),
            )

        kind, title, message = reporter.last
        assert (kind, title) == ("err", "Failed")
        assert message.startswith("opaque-response (CORS)")
        assert CORS_HINT in message
        assert list(tmp_path.iterdir()) == []

    async def test_empty_username_reported(self, settings, reporter):
        with pytest.raises(InvalidUsernameError):
            await run_download("", settings=settings, reporter=reporter)
        assert reporter.statuses == [("err", "Error", "Please enter a username.")]


class TestFailureHint:
    @pytest.mark.parametrize(
        "message",
        ["opaque-response (CORS)", "Failed to fetch", "All connection attempts failed"],
    )
    def test_network_messages_get_hint(self, message):
        assert failure_hint(message) == CORS_HINT

    def test_other_messages_get_nothing(self):
        assert failure_hint("Avatar JSON missing obj/mtl/textures.") == ""
