import io
import logging
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from PIL import Image, UnidentifiedImageError

from core.blob import BlobStore
from core.cancel import CancelToken, check
from core.config import Settings
from core.errors import BadInputError

logger = logging.getLogger(__name__)

# GIF delays are hundredths of a second; Pillow takes milliseconds
FRAME_DELAY_CS = 10
LOOP_FOREVER = 0


def _load_frame(data: bytes, index: int) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA")
            return img.convert("P", palette=Image.Palette.ADAPTIVE)
    except (UnidentifiedImageError, OSError) as exc:
        raise BadInputError(f"frame {index} is not a readable image: {exc}") from exc


def compose_gif(frames: Sequence[bytes], cancel: Optional[CancelToken] = None) -> bytes:
    """Encode ``frames`` into one looping GIF; all frames must share a size."""
    if not frames:
        raise BadInputError("no frames given")
    images = []
    for i, data in enumerate(frames):
        check(cancel)
        img = _load_frame(data, i)
        if images and img.size != images[0].size:
            raise BadInputError(f"frame {i} is {img.size[0]}x{img.size[1]}, expected "
                                f"{images[0].size[0]}x{images[0].size[1]}")
        images.append(img)

    # per-request scratch file; the directory goes away on every exit path
    with tempfile.TemporaryDirectory(prefix="spx_gif_") as tmp_dir:
        out_path = Path(tmp_dir) / "output.gif"
        images[0].save(
            out_path,
            format="GIF",
            save_all=True,
            append_images=images[1:],
            duration=FRAME_DELAY_CS * 10,
            loop=LOOP_FOREVER,
        )
        return out_path.read_bytes()


class MediaService:
    def __init__(self, blob: BlobStore, settings: Settings):
        self._blob = blob
        self._settings = settings

    def frames_to_animated(self, frames: Sequence[bytes], cancel: Optional[CancelToken] = None) -> str:
        data = compose_gif(frames, cancel)
        key = self._blob.put(self._settings.ANIMATED_PREFIX, "output.gif", data, cancel)
        logger.info("composed %d frames into %s", len(frames), key)
        return self._blob.public_url(key)
