import base64
import logging
from typing import Optional

import requests

from app.core.config_video import IMAGEN_MODEL_ID
from app.core.errors import UpstreamAIError
from app.services.google_cloud import auth_headers, vertex_model_url

logger = logging.getLogger(__name__)


class ImagenService:
    """Synchronous still-image generation via the Vertex AI Imagen predict endpoint."""

    def generate(self, prompt: str, *, model: str = IMAGEN_MODEL_ID, aspect_ratio: Optional[str] = "1:1") -> bytes:
        payload = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "sampleCount": 1,
                "aspectRatio": aspect_ratio or "1:1",
                "personGeneration": "dont_allow",
            },
        }
        try:
            resp = requests.post(
                vertex_model_url(model, "predict"),
                headers=auth_headers(),
                json=payload,
                timeout=120,
            )
        except requests.RequestException as e:
            raise UpstreamAIError(f"Imagen request failed: {e}")

        if resp.status_code != 200:
            logger.error("Imagen error: %s - %s", resp.status_code, resp.text)
            raise UpstreamAIError(f"Imagen error: {resp.status_code} - {resp.text}")

        predictions = resp.json().get("predictions") or []
        if not predictions or "bytesBase64Encoded" not in predictions[0]:
            raise UpstreamAIError("No image generated")
        return base64.b64decode(predictions[0]["bytesBase64Encoded"])
