from app.core.config_video import (
    COST_ESTIMATES,
    GEMINI_PRO_MODEL_ID,
    RESOLUTION_COST_MULTIPLIER,
)


def _round(value: float) -> float:
    return round(value, 4)


def estimate_token_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    tier = "pro" if model == GEMINI_PRO_MODEL_ID or "pro" in model else "flash"
    input_cost = (input_tokens or 0) / 1_000_000 * COST_ESTIMATES[f"gemini_{tier}_input_per_million"]
    output_cost = (output_tokens or 0) / 1_000_000 * COST_ESTIMATES[f"gemini_{tier}_output_per_million"]
    return _round(input_cost + output_cost)


def is_fast_model(model: str) -> bool:
    return "fast" in (model or "")


def estimate_video_cost(duration_seconds: float, fast: bool, resolution: str = None) -> float:
    per_second = COST_ESTIMATES["veo_fast_per_second"] if fast else COST_ESTIMATES["veo_standard_per_second"]
    multiplier = RESOLUTION_COST_MULTIPLIER.get(resolution, 1.0) if resolution else 1.0
    return _round(duration_seconds * per_second * multiplier)


def estimate_image_cost(fast: bool) -> float:
    if fast:
        return COST_ESTIMATES["imagen_fast_per_image"]
    return COST_ESTIMATES["imagen_standard_per_image"]
