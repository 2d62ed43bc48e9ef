import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from common.config.settings import settings
from ..exceptions import DecodeError

logger = logging.getLogger(__name__)


class ThumbnailTranscoder:
    """
    Turns raster image bytes into a PNG of exactly `width` x `height`.

    The image is scaled to fit inside the box with its aspect ratio kept,
    then pasted at the top-left corner of a fully transparent canvas, so every
    thumbnail has the same dimensions whatever the source format or shape.
    """

    def __init__(self, width: int = None, height: int = None):
        self.width = width or settings.THUMBNAIL_WIDTH
        self.height = height or settings.THUMBNAIL_HEIGHT

    @property
    def size(self):
        return (self.width, self.height)

    def __call__(self, image_bytes: bytes) -> bytes:
        img = self._decode(image_bytes)

        # Catmull-Rom, the same kernel Pillow uses for BICUBIC
        fitted = ImageOps.contain(img, self.size, method=Image.Resampling.BICUBIC)
        canvas = Image.new("RGBA", self.size, (0, 0, 0, 0))
        canvas.paste(fitted, (0, 0))

        buf = io.BytesIO()
        canvas.save(buf, format="PNG")
        return buf.getvalue()

    @staticmethod
    def _decode(image_bytes: bytes) -> Image.Image:
        try:
            with Image.open(io.BytesIO(image_bytes)) as src:
                # first frame only for animated GIFs
                src.seek(0)
                return src.convert("RGBA")
        except (UnidentifiedImageError, OSError, EOFError, SyntaxError, ValueError,
                Image.DecompressionBombError) as e:
            logger.error(f"[THUMBNAIL] Decode failed: {e}")
            raise DecodeError(str(e)) from e


def transcode(image_bytes: bytes) -> bytes:
    return ThumbnailTranscoder()(image_bytes)
