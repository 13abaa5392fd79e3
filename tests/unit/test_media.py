"""Unit tests for services/media.py - frames to animated GIF."""
import io

import pytest
from PIL import Image

from core.cancel import CancelToken
from core.errors import BadInputError, CanceledError
from schemas.manifest_schema import decode_manifest
from services.asset_service import Upload
from services.media import compose_gif

CDN_PREFIX = "https://cdn.example.com"


@pytest.mark.fast
class TestComposeGif:
    def test_three_frames_loop_forever(self, png_factory):
        frames = [png_factory(c) for c in ((255, 0, 0), (0, 255, 0), (0, 0, 255))]
        data = compose_gif(frames)
        with Image.open(io.BytesIO(data)) as gif:
            assert gif.format == "GIF"
            assert gif.n_frames == 3
            assert gif.size == (8, 8)
            assert gif.info["loop"] == 0
            assert gif.info["duration"] == 100

    def test_mismatched_sizes(self, png_factory):
        frames = [png_factory(size=(8, 8)), png_factory(size=(9, 8))]
        with pytest.raises(BadInputError):
            compose_gif(frames)

    def test_unreadable_frame(self, png_factory):
        with pytest.raises(BadInputError):
            compose_gif([png_factory(), b"definitely not an image"])

    def test_no_frames(self):
        with pytest.raises(BadInputError):
            compose_gif([])

    def test_canceled(self, png_factory):
        token = CancelToken()
        token.cancel()
        with pytest.raises(CanceledError):
            compose_gif([png_factory()], token)


@pytest.mark.fast
class TestFramesToAnimated:
    def test_uploads_under_animated_prefix(self, controller, blob, png_factory):
        url = controller.frames_to_animated([png_factory((10, 10, 10)), png_factory((200, 200, 200))])
        assert url.startswith(f"{CDN_PREFIX}/gifs/")
        assert url.endswith(".gif")
        key = url[len(CDN_PREFIX) + 1:]
        assert blob.read(key)[:6] in (b"GIF87a", b"GIF89a")

    def test_url_feeds_sprite_ingest(self, controller, png_factory):
        frames = [png_factory((255, 0, 0)), png_factory((0, 0, 255))]
        url = controller.frames_to_animated(frames)
        asset = controller.upload_sprite(
            "walk", [Upload(f"f{i}.png", f) for i, f in enumerate(frames)], url, "u1", "hero", 1
        )
        assert url == f"{CDN_PREFIX}/{decode_manifest(asset.address).url}"
