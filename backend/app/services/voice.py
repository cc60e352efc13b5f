import base64
import io
import logging
import wave
from typing import Optional

import requests

from app.core.config_video import GEMINI_TTS_MODEL_ID, VOICE_MAP
from app.core.errors import UpstreamAIError
from app.services.google_cloud import auth_headers, vertex_model_url

logger = logging.getLogger(__name__)

# Gemini TTS returns raw 16-bit mono PCM at 24 kHz
SAMPLE_RATE = 24000
SAMPLE_WIDTH = 2
CHANNELS = 1


def pcm_to_wav(pcm: bytes) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(CHANNELS)
        wav.setsampwidth(SAMPLE_WIDTH)
        wav.setframerate(SAMPLE_RATE)
        wav.writeframes(pcm)
    return buf.getvalue()


def voice_for(language: str, voice_name: Optional[str] = None) -> dict:
    voice = dict(VOICE_MAP.get(language, VOICE_MAP["en"]))
    if voice_name:
        voice["voice_name"] = voice_name
    return voice


class GeminiTTSService:
    def synthesize(self, text: str, language: str, voice_name: Optional[str] = None) -> bytes:
        """Speak text and return it as WAV bytes."""
        voice = voice_for(language, voice_name)
        payload = {
            "contents": [{"role": "user", "parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "languageCode": voice["language_code"],
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice["voice_name"]}},
                },
            },
        }
        try:
            resp = requests.post(
                vertex_model_url(GEMINI_TTS_MODEL_ID, "generateContent"),
                headers=auth_headers(),
                json=payload,
                timeout=120,
            )
        except requests.RequestException as e:
            raise UpstreamAIError(f"TTS request failed: {e}")

        if resp.status_code != 200:
            logger.error("TTS error: %s - %s", resp.status_code, resp.text)
            raise UpstreamAIError(f"TTS error: {resp.status_code} - {resp.text}")

        try:
            part = resp.json()["candidates"][0]["content"]["parts"][0]
            pcm = base64.b64decode(part["inlineData"]["data"])
        except (KeyError, IndexError, TypeError):
            raise UpstreamAIError("No audio generated")
        return pcm_to_wav(pcm)
