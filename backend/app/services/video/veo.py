import base64
import logging
from typing import Any, Dict, Optional

import requests

from app.core.config import settings
from app.core.config_video import VEO_MODEL_ID, GOOGLE_CLOUD_PROJECT_ID
from app.core.errors import UpstreamAIError
from app.services.google_cloud import auth_headers, vertex_model_url
from app.services.video.base import BaseVideoService, VideoOperation

logger = logging.getLogger(__name__)


def _model_from_operation(operation_name: str) -> Optional[str]:
    # projects/.../publishers/google/models/<model>/operations/<id>
    parts = operation_name.split("/")
    if "models" in parts:
        idx = parts.index("models")
        if idx + 1 < len(parts):
            return parts[idx + 1]
    return None


class VeoVideoService(BaseVideoService):
    """
    Video generation via Vertex AI Veo 3.1 (predictLongRunning).
    Submission and polling are separate calls so the operation name can be
    stored on the generation row and checked later.
    """

    def start_generation(
        self,
        prompt: str,
        *,
        model: str = VEO_MODEL_ID,
        aspect_ratio: str = "9:16",
        duration_seconds: int = 8,
        negative_prompt: Optional[str] = None,
        resolution: Optional[str] = None,
        source_video_uri: Optional[str] = None,
    ) -> str:
        params: Dict[str, Any] = {
            "sampleCount": 1,
            "aspectRatio": aspect_ratio,
            "durationSeconds": duration_seconds,
            "personGeneration": "dont_allow",
        }
        if negative_prompt:
            params["negativePrompt"] = negative_prompt
        if resolution:
            params["resolution"] = resolution
        if settings.GCS_BUCKET_NAME:
            params["storageUri"] = f"gs://{settings.GCS_BUCKET_NAME}/veo-output/"

        instance: Dict[str, Any] = {"prompt": prompt}
        if source_video_uri:
            # extension continues from the tail of an earlier clip
            instance["video"] = {"gcsUri": source_video_uri, "mimeType": "video/mp4"}

        payload = {"instances": [instance], "parameters": params}
        logger.debug("Veo submit model=%s params=%s", model, params)

        try:
            resp = requests.post(
                vertex_model_url(model, "predictLongRunning"),
                headers=auth_headers(),
                json=payload,
                timeout=60,
            )
        except requests.RequestException as e:
            raise UpstreamAIError(f"Veo request failed: {e}")

        if resp.status_code != 200:
            logger.error("Veo LRO error: %s - %s", resp.status_code, resp.text)
            raise UpstreamAIError(f"Veo LRO error: {resp.status_code} - {resp.text}")

        operation_name = resp.json().get("name")
        if not operation_name:
            raise UpstreamAIError(f"No operation name returned: {resp.text}")
        return operation_name

    def get_operation(self, operation_name: str, model: Optional[str] = None) -> VideoOperation:
        model = _model_from_operation(operation_name) or model or VEO_MODEL_ID
        poll_resp = requests.post(
            vertex_model_url(model, "fetchPredictOperation"),
            headers=auth_headers(),
            json={"operationName": operation_name},
            timeout=30,
        )
        if poll_resp.status_code != 200:
            raise UpstreamAIError(
                f"Failed to poll Veo operation: {poll_resp.status_code} - {poll_resp.text}"
            )

        poll_data = poll_resp.json()
        if not poll_data.get("done"):
            return VideoOperation(name=operation_name, done=False)

        if poll_data.get("error"):
            return VideoOperation(
                name=operation_name,
                done=True,
                error=poll_data["error"].get("message") or str(poll_data["error"]),
            )

        response = poll_data.get("response", {})
        videos = response.get("videos") or response.get("predictions") or []
        if not videos:
            if response.get("raiMediaFilteredCount"):
                reasons = "; ".join(response.get("raiMediaFilteredReasons") or [])
                return VideoOperation(name=operation_name, done=True, error=f"Video blocked by safety filter: {reasons}")
            return VideoOperation(name=operation_name, done=True)

        video = videos[0]
        if "gcsUri" in video:
            return VideoOperation(name=operation_name, done=True, video_uri=video["gcsUri"])
        if "bytesBase64Encoded" in video:
            return VideoOperation(
                name=operation_name,
                done=True,
                video_bytes=base64.b64decode(video["bytesBase64Encoded"]),
            )
        raise UpstreamAIError(f"Unknown Veo response format: {list(video.keys())}")

    def download_video(self, uri: str) -> bytes:
        if uri.startswith("gs://"):
            from google.cloud import storage

            _, _, bucket, *path_parts = uri.split("/")
            client = storage.Client(project=GOOGLE_CLOUD_PROJECT_ID or None)
            return client.bucket(bucket).blob("/".join(path_parts)).download_as_bytes()

        resp = requests.get(uri, headers=auth_headers(), timeout=120)
        if resp.status_code != 200:
            raise UpstreamAIError(f"Failed to download video: {resp.status_code}")
        return resp.content
