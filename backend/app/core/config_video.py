from app.core.config import settings

GOOGLE_CLOUD_PROJECT_ID = settings.GOOGLE_CLOUD_PROJECT_ID
GOOGLE_CLOUD_LOCATION = settings.GOOGLE_CLOUD_LOCATION

GEMINI_PRO_MODEL_ID = "gemini-2.5-pro"
GEMINI_FLASH_MODEL_ID = "gemini-2.5-flash"
GEMINI_TTS_MODEL_ID = "gemini-2.5-flash-preview-tts"
VEO_MODEL_ID = "veo-3.1-generate-preview"
VEO_FAST_MODEL_ID = "veo-3.1-fast-generate-preview"
IMAGEN_MODEL_ID = "imagen-4.0-generate-001"
IMAGEN_FAST_MODEL_ID = "imagen-4.0-fast-generate-001"

# USD. Token prices are per 1M tokens.
COST_ESTIMATES = {
    "gemini_pro_input_per_million": 1.25,
    "gemini_pro_output_per_million": 10.0,
    "gemini_flash_input_per_million": 0.075,
    "gemini_flash_output_per_million": 0.6,
    "veo_standard_per_second": 0.40,
    "veo_fast_per_second": 0.15,
    "imagen_standard_per_image": 0.04,
    "imagen_fast_per_image": 0.02,
}

RESOLUTION_COST_MULTIPLIER = {"4k": 2.0, "1080p": 1.5}

VOICE_MAP = {
    "en": {"voice_name": "Kore", "language_code": "en-US"},
    "de": {"voice_name": "Kore", "language_code": "de-DE"},
    "tr": {"voice_name": "Kore", "language_code": "tr-TR"},
}
