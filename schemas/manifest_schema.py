"""The asset manifest stored in ``asset.address`` and its codec.

Rows always hold relative blob keys. Reads pass the decoded manifest through
:func:`rewrite_manifest` exactly once before it leaves the service layer.
"""
import json
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.errors import MalformedManifestError

IMAGE = "image"
GIF = "gif"
INDEX_JSON = "index.json"


class Manifest(BaseModel):
    # one or more slots
    assets: dict[str, str] = Field(min_length=1)
    index_json: str = Field(default="", alias="indexJson")
    type: str = ""
    url: str = ""

    model_config = ConfigDict(populate_by_name=True)


def encode_manifest(manifest: Manifest) -> str:
    return json.dumps(
        manifest.model_dump(by_alias=True),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def decode_manifest(raw: str) -> Manifest:
    try:
        return Manifest.model_validate_json(raw or "")
    except ValidationError as exc:
        raise MalformedManifestError(f"malformed asset manifest: {exc.errors()[0]['msg']}") from exc


def rewrite_manifest(manifest: Manifest, to_url: Callable[[str], str]) -> Manifest:
    """Return a copy with every non-empty key mapped through ``to_url``."""

    def _map(key: str) -> str:
        return to_url(key) if key else key

    return Manifest(
        assets={slot: _map(key) for slot, key in manifest.assets.items()},
        index_json=_map(manifest.index_json),
        type=manifest.type,
        url=_map(manifest.url),
    )


def relative_key(url: str, cdn_prefix: str) -> str:
    """Strip ``cdn_prefix`` (and the joining slash) from a public URL."""
    prefix = cdn_prefix.rstrip("/")
    if not prefix or not url.startswith(prefix + "/"):
        raise ValueError(f"{url!r} is not under {cdn_prefix!r}")
    return url[len(prefix) + 1:]
