"""Phone mockups: an app screenshot inside a device frame, centered on a solid canvas."""
import io
import logging
from typing import Tuple

from PIL import Image, ImageColor, ImageDraw, ImageOps, UnidentifiedImageError

from app.core.constants import ASPECT_RATIOS, PHONE_TEMPLATES
from app.core.errors import AppError

logger = logging.getLogger(__name__)

FRAME_COLOR = "#1a1a1e"
FRAME_OUTLINE = "#444444"
ISLAND_COLOR = "#0a0a0a"
DEFAULT_BACKGROUND = "#0f0f13"


def canvas_dimensions(aspect_ratio: str) -> Tuple[int, int]:
    dims = ASPECT_RATIOS.get(aspect_ratio, ASPECT_RATIOS["9:16"])
    return dims["width"], dims["height"]


def _rounded_mask(size: Tuple[int, int], radius: int) -> Image.Image:
    mask = Image.new("L", size, 0)
    ImageDraw.Draw(mask).rounded_rectangle((0, 0, size[0] - 1, size[1] - 1), radius=radius, fill=255)
    return mask


def _box(rect: dict, scale: float) -> Tuple[int, int, int, int]:
    x, y = round(rect["x"] * scale), round(rect["y"] * scale)
    return x, y, x + round(rect["width"] * scale), y + round(rect["height"] * scale)


def _phone_size(template: dict, canvas_width: int, canvas_height: int) -> Tuple[int, float]:
    share = 0.85 if template["orientation"] == "landscape" else 0.62
    width = canvas_width * share
    scale = width / template["frame_width"]
    # keep the whole device on the canvas
    if template["frame_height"] * scale > canvas_height * 0.92:
        scale = canvas_height * 0.92 / template["frame_height"]
    return round(template["frame_width"] * scale), scale


def composite_phone_mockup(
    screenshot: bytes,
    template_id: str,
    canvas_width: int,
    canvas_height: int,
    background_color: str = DEFAULT_BACKGROUND,
) -> bytes:
    """Render the screenshot into the device frame and return PNG bytes."""
    template = PHONE_TEMPLATES.get(template_id)
    if template is None:
        raise AppError(f"Unknown phone template: {template_id}", status_code=400)
    try:
        shot = Image.open(io.BytesIO(screenshot))
        shot.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.info("Mockup screenshot rejected: %s", e)
        raise AppError("Screenshot is not a readable image", status_code=400)

    frame_width, scale = _phone_size(template, canvas_width, canvas_height)
    frame_height = round(template["frame_height"] * scale)

    phone = Image.new("RGBA", (frame_width, frame_height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(phone)
    draw.rounded_rectangle(
        (0, 0, frame_width - 1, frame_height - 1),
        radius=round(template["frame_radius"] * scale),
        fill=FRAME_COLOR,
        outline=FRAME_OUTLINE,
        width=max(1, round(2 * scale)),
    )

    screen = template["screen"]
    left, top, right, bottom = _box(screen, scale)
    screen_size = (right - left, bottom - top)
    fitted = ImageOps.fit(shot.convert("RGBA"), screen_size, method=Image.LANCZOS)
    phone.paste(fitted, (left, top), _rounded_mask(screen_size, round(screen["radius"] * scale)))

    island = template.get("dynamic_island")
    if island:
        draw.rounded_rectangle(_box(island, scale), radius=round(island["radius"] * scale), fill=ISLAND_COLOR)

    canvas = Image.new("RGBA", (canvas_width, canvas_height), ImageColor.getcolor(background_color, "RGBA"))
    offset = ((canvas_width - frame_width) // 2, (canvas_height - frame_height) // 2)
    canvas.alpha_composite(phone, offset)

    out = io.BytesIO()
    canvas.convert("RGB").save(out, format="PNG")
    return out.getvalue()
