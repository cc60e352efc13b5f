import io
import logging
from typing import List, Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

IMAGE_MIME_PREFIX = "image/"


def _extract_dominant_colors(image: Image.Image, k: int = 5) -> List[Tuple[int, int, int]]:
    # adaptive palette on a thumbnail, most frequent first
    small = image.convert("RGB").resize((64, 64))
    palette = small.convert("P", palette=Image.ADAPTIVE, colors=k)
    palette_colors = palette.getpalette()
    color_counts = sorted(palette.getcolors(), reverse=True)

    colors = []
    for count, idx in color_counts[:k]:
        r = palette_colors[idx * 3]
        g = palette_colors[idx * 3 + 1]
        b = palette_colors[idx * 3 + 2]
        colors.append((r, g, b))
    return colors


def to_hex(rgb: Tuple[int, int, int]) -> str:
    return "#{:02X}{:02X}{:02X}".format(*rgb)


def extract_palette(data: bytes, k: int = 5) -> List[str]:
    """Dominant colors of an uploaded image as #RRGGBB strings; empty for non-images."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.debug("Palette extraction skipped: %s", e)
        return []
    return [to_hex(c) for c in _extract_dominant_colors(img, k)]
