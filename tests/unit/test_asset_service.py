"""Unit tests for services/asset_service.py through the controller facade."""
import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from core.controller import Controller
from core.errors import BadInputError, ForbiddenError, MalformedManifestError, NotFoundError
from models.asset import Asset, BACKGROUND, SOUND, SPRITE
from models.base import Base
from schemas.asset_schema import AssetSave
from schemas.manifest_schema import decode_manifest
from services.asset_service import Upload

CDN_PREFIX = "https://cdn.example.com"


def _row(db, id, author="u1", public=1, asset_type=SPRITE, name=None, address=None,
         category="cat", click_count=0, status=1, **extra):
    if address is None:
        address = json.dumps({"assets": {"image": f"sprites/{id}.png"}, "indexJson": "index.json",
                              "type": "image", "url": ""})
    db.add(Asset(
        id=id,
        name=name or id,
        author_id=author,
        category=category,
        is_public=public,
        address=address,
        asset_type=asset_type,
        click_count=click_count,
        status=status,
        **extra,
    ))
    db.commit()


def _urls(manifest):
    urls = list(manifest.assets.values())
    urls += [u for u in (manifest.index_json, manifest.url) if u]
    return urls


@pytest.mark.fast
class TestRead:
    def test_get_rewrites_manifest(self, controller, db):
        _row(db, "a1")
        asset = controller.get_asset("a1")
        manifest = decode_manifest(asset.address)
        assert manifest.assets == {"image": f"{CDN_PREFIX}/sprites/a1.png"}
        assert manifest.index_json == f"{CDN_PREFIX}/index.json"
        assert asset.click_count == "0"

    def test_stored_row_keeps_relative_keys(self, controller, db):
        _row(db, "a1")
        controller.get_asset("a1")
        db.expire_all()
        stored = decode_manifest(db.get(Asset, "a1").address)
        assert stored.assets == {"image": "sprites/a1.png"}

    def test_get_missing(self, controller):
        with pytest.raises(NotFoundError):
            controller.get_asset("missing")
        with pytest.raises(NotFoundError):
            controller.get_asset("")

    def test_malformed_manifest(self, controller, db):
        _row(db, "bad", address="{oops")
        with pytest.raises(MalformedManifestError):
            controller.get_asset("bad")

    def test_camel_case_on_the_wire(self, controller, db):
        _row(db, "a1")
        body = controller.get_asset("a1").model_dump(by_alias=True)
        assert {"authorId", "assetType", "clickCount", "isPublic", "cTime", "uTime"} <= set(body)


@pytest.mark.fast
class TestListing:
    def test_public_listing(self, controller, db):
        _row(db, "a1")
        _row(db, "a2", public=0)
        _row(db, "a3", status=0)
        _row(db, "a4", asset_type=BACKGROUND)
        page = controller.list_assets_public(1, 10, SPRITE)
        assert [a.id for a in page.data] == ["a1"]
        assert page.total == 1
        for asset in page.data:
            for url in _urls(decode_manifest(asset.address)):
                assert url.startswith(CDN_PREFIX + "/")

    def test_category_filter(self, controller, db):
        _row(db, "a1", category="animals")
        _row(db, "a2", category="food")
        page = controller.list_assets_public(1, 10, SPRITE, category="food")
        assert [a.id for a in page.data] == ["a2"]

    def test_order_by_time_then_hot(self, controller, db):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        _row(db, "old-hot", click_count=9, c_time=base)
        _row(db, "new-cold", click_count=1, c_time=base + timedelta(days=1))
        _row(db, "new-hot", click_count=5, c_time=base + timedelta(days=1))
        page = controller.list_assets_public(1, 10, SPRITE, by_time=True, by_hot=True)
        assert [a.id for a in page.data] == ["new-hot", "new-cold", "old-hot"]
        page = controller.list_assets_public(1, 10, SPRITE, by_hot=True)
        assert [a.id for a in page.data] == ["old-hot", "new-hot", "new-cold"]

    def test_user_listing_includes_private(self, controller, db):
        _row(db, "a1", author="u1", public=0)
        _row(db, "a2", author="u1", public=1)
        _row(db, "a3", author="u2", public=1)
        page = controller.list_assets_by_user(1, 10, SPRITE, "u1")
        assert [a.id for a in page.data] == ["a1", "a2"]

    def test_invalid_asset_type(self, controller):
        with pytest.raises(BadInputError):
            controller.list_assets_public(1, 10, "9")


@pytest.mark.fast
class TestSearch:
    def test_visibility(self, controller, db):
        _row(db, "A", author="u1", public=1)
        _row(db, "B", author="u2", public=0)
        assert [a.id for a in controller.search_assets("", SPRITE)] == ["A"]
        assert [a.id for a in controller.search_assets("", SPRITE, "u2")] == ["A", "B"]
        assert [a.id for a in controller.search_assets("", SPRITE, "u1")] == ["A"]

    def test_name_match_and_rewrite(self, controller, db):
        _row(db, "a1", name="red dragon")
        _row(db, "a2", name="blue bird")
        found = controller.search_assets("drag", SPRITE)
        assert [a.id for a in found] == ["a1"]
        assert decode_manifest(found[0].address).assets["image"].startswith(CDN_PREFIX + "/")

    def test_no_match_is_empty_list(self, controller):
        assert controller.search_assets("zzz", SPRITE) == []

    def test_like_wildcards_stay_bound(self, controller, db):
        _row(db, "a1", name="plain")
        assert controller.search_assets("' OR 1=1 --", SPRITE) == []


@pytest.mark.fast
class TestClickCount:
    def test_sequential_increments(self, controller, db):
        _row(db, "a1", click_count=3)
        for _ in range(5):
            controller.increment_asset_click_count("a1", SPRITE)
        assert controller.get_asset("a1").click_count == "8"

    def test_concurrent_increments_are_all_counted(self, settings, blob, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'clicks.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=engine)
        try:
            with sessionmaker(bind=engine, future=True)() as db:
                _row(db, "a1", click_count=3)
            ctrl = Controller(settings, engine=engine, blob=blob)
            with ThreadPoolExecutor(max_workers=8) as pool:
                futures = [pool.submit(ctrl.increment_asset_click_count, "a1", SPRITE) for _ in range(40)]
                for f in futures:
                    f.result()
            assert ctrl.get_asset("a1").click_count == "43"
        finally:
            engine.dispose()

    def test_type_must_match(self, controller, db):
        _row(db, "a1")
        with pytest.raises(NotFoundError):
            controller.increment_asset_click_count("a1", SOUND)


@pytest.mark.fast
class TestVisibility:
    def test_owner_can_publish(self, controller, db):
        _row(db, "a1", public=0)
        controller.update_asset_public("a1", 1, "u1")
        assert controller.get_asset("a1").is_public == 1

    def test_other_user_is_forbidden(self, controller, db):
        _row(db, "a1", public=0)
        with pytest.raises(ForbiddenError):
            controller.update_asset_public("a1", 1, "u2")
        with pytest.raises(NotFoundError):
            controller.update_asset_public("missing", 1, "u1")


@pytest.mark.fast
class TestSound:
    def test_create_sound(self, controller, blob):
        asset = controller.save_sound_asset(AssetSave(name="boom", author_id="u1"), b"RIFF1", "boom.wav")
        manifest = decode_manifest(asset.address)
        assert list(manifest.assets) == ["sound"]
        assert manifest.assets["sound"].startswith("sounds/")
        assert manifest.type == ""
        assert manifest.url == ""
        assert asset.asset_type == SOUND
        assert blob.read(manifest.assets["sound"]) == b"RIFF1"

    def test_replace_sound(self, controller, blob):
        first = controller.save_sound_asset(AssetSave(name="boom", author_id="u1"), b"RIFF1", "boom.wav")
        old_key = decode_manifest(first.address).assets["sound"]
        second = controller.save_sound_asset(
            AssetSave(id=first.id, name="boom2", author_id="u1"), b"RIFF2", "boom.mp3"
        )
        new_key = decode_manifest(second.address).assets["sound"]
        assert new_key != old_key
        assert new_key.endswith(".mp3")
        assert not blob.exists(old_key)
        assert blob.read(new_key) == b"RIFF2"
        assert controller.get_asset(first.id).name == "boom2"

    def test_replace_sound_of_other_user(self, controller, blob):
        first = controller.save_sound_asset(AssetSave(name="boom", author_id="u1"), b"RIFF1", "boom.wav")
        with pytest.raises(ForbiddenError):
            controller.save_sound_asset(AssetSave(id=first.id, author_id="u2"), b"x", "x.wav")
        assert blob.exists(decode_manifest(first.address).assets["sound"])


    def test_replace_keeps_name_and_category_when_omitted(self, controller):
        first = controller.save_sound_asset(
            AssetSave(name="boom", category="fx", author_id="u1"), b"RIFF1", "boom.wav"
        )
        controller.save_sound_asset(AssetSave(id=first.id, author_id="u1"), b"RIFF2", "boom.wav")
        stored = controller.get_asset(first.id)
        assert (stored.name, stored.category) == ("boom", "fx")

    def test_replace_onto_sprite_is_rejected(self, controller, blob):
        files = [Upload("a.png", b"a"), Upload("b.png", b"b")]
        sprite = controller.upload_sprite("s", files, f"{CDN_PREFIX}/gifs/x.gif", "u1", "cat", "0")
        before = sorted(blob.keys())
        with pytest.raises(BadInputError):
            controller.save_sound_asset(AssetSave(id=sprite.id, author_id="u1"), b"RIFF", "s.wav")
        assert sorted(blob.keys()) == before
        stored = controller.get_asset(sprite.id)
        assert stored.asset_type == SPRITE
        assert sorted(decode_manifest(stored.address).assets) == ["image0", "image1"]

    def test_replace_needs_single_slot(self, controller, db, blob):
        address = json.dumps({"assets": {"a": "sounds/a.wav", "b": "sounds/b.wav"}})
        _row(db, "s1", asset_type=SOUND, address=address)
        with pytest.raises(BadInputError):
            controller.save_sound_asset(AssetSave(id="s1", author_id="u1"), b"RIFF", "s.wav")
        assert blob.keys() == []


@pytest.mark.fast
class TestSpriteIngest:
    def test_single_image(self, controller, blob):
        asset = controller.upload_sprite("s", [Upload("a.png", b"png")], "", "u1", "cat", "0")
        manifest = decode_manifest(asset.address)
        assert manifest.type == "image"
        assert manifest.index_json == "index.json"
        assert list(manifest.assets) == ["image"]
        assert manifest.url == ""
        assert blob.read(manifest.assets["image"]) == b"png"

    def test_multi_frame(self, controller, blob):
        files = [Upload(f"f{i}.png", bytes([i])) for i in range(3)]
        asset = controller.upload_sprite("s", files, f"{CDN_PREFIX}/gifs/x.gif", "u1", "cat", "1")
        manifest = decode_manifest(asset.address)
        assert manifest.type == "gif"
        assert manifest.index_json == "index.json"
        assert sorted(manifest.assets) == ["image0", "image1", "image2"]
        assert manifest.url == "gifs/x.gif"
        assert asset.is_public == 1
        assert asset.asset_type == SPRITE
        assert asset.click_count == "0"
        assert asset.status == 1
        for i in range(3):
            assert blob.read(manifest.assets[f"image{i}"]) == bytes([i])

    def test_multi_frame_needs_cdn_url(self, controller, blob):
        files = [Upload("a.png", b"a"), Upload("b.png", b"b")]
        with pytest.raises(BadInputError):
            controller.upload_sprite("s", files, "https://elsewhere.org/x.gif", "u1", "cat", "1")
        assert blob.keys() == []

    def test_no_files(self, controller):
        with pytest.raises(BadInputError):
            controller.upload_sprite("s", [], "", "u1", "cat", "1")

    def test_read_back_is_rewritten(self, controller):
        files = [Upload("a.png", b"a"), Upload("b.png", b"b")]
        created = controller.upload_sprite("s", files, f"{CDN_PREFIX}/gifs/x.gif", "u1", "cat", "1")
        manifest = decode_manifest(controller.get_asset(created.id).address)
        assert manifest.url == f"{CDN_PREFIX}/gifs/x.gif"
        for url in _urls(manifest):
            assert url.startswith(CDN_PREFIX + "/")
