import io

import pytest
from PIL import Image

from app.core.errors import AppError
from app.services.mockup import canvas_dimensions, composite_phone_mockup

API = "/api/v1"


def _png(size=(300, 600), color=(255, 0, 0)):
    out = io.BytesIO()
    Image.new("RGB", size, color).save(out, format="PNG")
    return out.getvalue()


def _open(data):
    return Image.open(io.BytesIO(data)).convert("RGB")


def test_canvas_dimensions():
    assert canvas_dimensions("9:16") == (1080, 1920)
    assert canvas_dimensions("16:9") == (1920, 1080)
    assert canvas_dimensions("4:5") == (1080, 1920)


def test_portrait_mockup_centers_the_screenshot():
    image = _open(composite_phone_mockup(_png(), "iphone_15_pro", 1080, 1920, background_color="#00ff00"))

    assert image.size == (1080, 1920)
    assert image.getpixel((5, 5)) == (0, 255, 0)
    # middle of the screen shows the screenshot
    assert image.getpixel((540, 1100)) == (255, 0, 0)


def test_landscape_mockup_fits_a_wide_canvas():
    image = _open(composite_phone_mockup(_png((600, 300)), "iphone_15_pro_landscape", 1920, 1080))

    assert image.size == (1920, 1080)
    assert image.getpixel((5, 5)) == (15, 15, 19)
    assert image.getpixel((960, 540)) == (255, 0, 0)


def test_mockup_rejects_non_images_and_unknown_templates():
    with pytest.raises(AppError) as exc:
        composite_phone_mockup(b"not an image", "pixel_8", 1080, 1920)
    assert exc.value.status_code == 400

    with pytest.raises(AppError):
        composite_phone_mockup(_png(), "nokia_3310", 1080, 1920)


def test_mockup_route_updates_the_scene(client, storage, scenes):
    storage.objects["uploads/shot.png"] = _png()
    response = client.post(f"{API}/generate/mockup", json={
        "screenshot_url": "https://storage.test/uploads/shot.png",
        "template_id": "pixel_8",
        "aspect_ratio": "1:1",
        "scene_id": scenes[0].id,
    })
    assert response.status_code == 200, response.text
    body = response.json()
    assert (body["width"], body["height"]) == (1080, 1080)

    path = body["mockup_url"].replace("https://storage.test/", "")
    assert _open(storage.objects[path]).size == (1080, 1080)

    scene = client.get(f"{API}/scenes/{scenes[0].id}").json()
    assert scene["mockup_image_url"] == body["mockup_url"]
    assert scene["phone_mockup_config"]["template_id"] == "pixel_8"


def test_mockup_route_fetches_public_screenshots(client, http, storage):
    http.add("https://cdn.acme.test/shot.png", _png())
    response = client.post(f"{API}/generate/mockup", json={
        "screenshot_url": "https://cdn.acme.test/shot.png",
        "template_id": "iphone_15_pro",
    })
    assert response.status_code == 200, response.text
    assert http.requests[0]["headers"]["Accept"] == "image/*"


def test_mockup_route_validation(client, http):
    base = {"screenshot_url": "https://cdn.acme.test/shot.png", "template_id": "iphone_15_pro"}
    assert client.post(f"{API}/generate/mockup", json={**base, "template_id": "nokia"}).status_code == 422
    assert client.post(f"{API}/generate/mockup", json={**base, "background_color": "red"}).status_code == 422
    assert client.post(f"{API}/generate/mockup", json={**base, "aspect_ratio": "4:3"}).status_code == 422

    missing = client.post(f"{API}/generate/mockup", json=base)
    assert missing.status_code == 400
    assert missing.json()["error"] == "Failed to fetch screenshot image"

    internal = client.post(f"{API}/generate/mockup", json={**base, "screenshot_url": "http://10.0.0.5/shot.png"})
    assert internal.status_code == 400
    assert len(http.requests) == 1
