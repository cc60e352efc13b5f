PLATFORMS = {
    "instagram_reels": {"label": "Instagram Reels", "aspect_ratio": "9:16", "max_duration": 90},
    "tiktok": {"label": "TikTok", "aspect_ratio": "9:16", "max_duration": 60},
    "youtube_shorts": {"label": "YouTube Shorts", "aspect_ratio": "9:16", "max_duration": 60},
    "youtube": {"label": "YouTube", "aspect_ratio": "16:9", "max_duration": 600},
    "linkedin": {"label": "LinkedIn", "aspect_ratio": "16:9", "max_duration": 120},
    "twitter": {"label": "X / Twitter", "aspect_ratio": "16:9", "max_duration": 140},
    "facebook_feed": {"label": "Facebook Feed", "aspect_ratio": "1:1", "max_duration": 120},
}

ASPECT_RATIOS = {
    "9:16": {"width": 1080, "height": 1920},
    "16:9": {"width": 1920, "height": 1080},
    "1:1": {"width": 1080, "height": 1080},
}

WORKFLOW_STEPS = {
    1: "Brief",
    2: "Strategy",
    3: "Scenes",
    4: "Prompts",
    5: "Generate",
    6: "Post-Production",
}

SCENE_DURATIONS = (4, 6, 8)

BUDGET_THRESHOLDS = (0.75, 0.9, 0.95)

WATERMARK_POSITIONS = ("top-left", "top-right", "bottom-left", "bottom-right", "center")

# (max tokens, refill per second)
RATE_LIMITS = {
    "ai-gemini": (10, 10 / 60),
    "ai-media-preview": (10, 10 / 60),
    "ai-media": (50, 50 / 60),
    "api-general": (60, 1.0),
}


def clamp_scene_duration(seconds) -> int:
    """Snap a duration to the nearest length the video model accepts."""
    try:
        value = float(seconds)
    except (TypeError, ValueError):
        return 8
    return min(SCENE_DURATIONS, key=lambda d: (abs(d - value), -d))


# Frame geometry at native size; the screen rect is where the screenshot shows through.
PHONE_TEMPLATES = {
    "iphone_15_pro": {
        "label": "iPhone 15 Pro",
        "orientation": "portrait",
        "frame_width": 433,
        "frame_height": 882,
        "frame_radius": 68,
        "screen": {"x": 18, "y": 18, "width": 397, "height": 846, "radius": 54},
        "dynamic_island": {"x": 160, "y": 34, "width": 113, "height": 33, "radius": 17},
    },
    "pixel_8": {
        "label": "Pixel 8",
        "orientation": "portrait",
        "frame_width": 420,
        "frame_height": 880,
        "frame_radius": 52,
        "screen": {"x": 16, "y": 16, "width": 388, "height": 848, "radius": 40},
        "dynamic_island": {"x": 198, "y": 32, "width": 24, "height": 24, "radius": 12},
    },
    "iphone_15_pro_landscape": {
        "label": "iPhone 15 Pro (landscape)",
        "orientation": "landscape",
        "frame_width": 882,
        "frame_height": 433,
        "frame_radius": 68,
        "screen": {"x": 18, "y": 18, "width": 846, "height": 397, "radius": 54},
        "dynamic_island": {"x": 34, "y": 160, "width": 33, "height": 113, "radius": 17},
    },
}
