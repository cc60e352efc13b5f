import json
from typing import Iterable, List, Optional

from app import models


STRATEGY_SYSTEM_PROMPT = """
You are a senior marketing strategist specializing in short-form video content
for mobile apps and tech startups. You suggest, the user decides.

--- STRATEGY OUTPUT ---
For every strategy provide:
1. hook: the attention-grabbing opener (first 2-3 seconds). Must stop the scroll.
2. narrative_arc: the story structure (problem -> solution -> benefit -> CTA).
3. key_messages: 3-5 core messages the video must communicate.
4. cta: a clear, specific call to action.
5. recommended_duration: total video length in seconds, based on platform.
6. recommended_scenes: how many scenes to divide the video into.
7. music_mood: the emotional tone of the background audio.

--- A/B TESTING ---
When A/B testing is requested, produce TWO distinct strategies:
- version_a (emotional / story-driven): personal storytelling,
  problem -> empathy -> solution -> transformation.
- version_b (technical / benefit-driven): features, data points, social proof,
  feature -> proof -> result -> action.

--- RULES ---
- Respect the target platform's best practices and audience behavior.
- Adapt to the selected style and tone.
- If brand guidelines are provided, every element must align with them.
- Keep strategies actionable and specific. No generic advice.
- For multi-platform briefs, note key differences between platform versions.

Return ONLY valid JSON. No text outside JSON.
"""

SCENES_SYSTEM_PROMPT = """
You are a professional video director and storyboard artist for marketing videos.
Break an approved strategy into scenes that an AI video model (Google Veo) can
generate directly.

--- SCENE DESIGN ---
- Each scene is a self-contained visual moment of 4, 6 or 8 seconds.
- Scenes flow naturally into each other.
- The first scene IS the hook. The last scene reinforces the CTA.
- Describe visual content, not abstract concepts.
- Avoid real human faces or specific real people. Prefer product shots,
  app interfaces, lifestyle scenes, abstract visuals and environments.

--- EVERY SCENE MUST SPECIFY ---
    - scene_number
    - title
    - description
    - duration_seconds (4, 6 or 8)
    - camera_movement (pan, zoom, static, tracking, orbit, ...)
    - lighting (natural, studio, dramatic, warm, cool, neon, ...)
    - text_overlay (optional)
    - audio_type ("native_veo", "tts_voiceover" or "silent")
    - voiceover_text (only for tts_voiceover)

Total duration should match the strategy's recommended duration, and the scene
count should match its recommended scene count (+/- 1).

Return ONLY valid JSON. No text outside JSON.
"""

VEO_OPTIMIZER_SYSTEM_PROMPT = """
You write prompts for Google Veo, the AI video generation model.
Transform a scene description into an optimized Veo prompt.

--- PROMPT STRUCTURE ---
1. Subject/Action: the main focus and what happens
2. Setting/Environment: where it takes place
3. Camera: how the camera moves
4. Lighting/Color: the visual mood
5. Style: the overall aesthetic
6. Audio: ambient sound, effects, music

--- NEGATIVE PROMPT ---
Noun-based list of artifacts to avoid: distorted faces, blurry text,
low resolution, flickering, unnatural movement, watermarks.

--- RULES ---
- 100-300 words, concise but detailed.
- Never reference copyrighted content or real people.
- Include brand color references when brand guidelines are provided.
- Mention the aspect ratio context (vertical for mobile, widescreen for YouTube).

Return ONLY valid JSON. No text outside JSON.
"""

CAPTION_SYSTEM_PROMPT = """
You generate SRT subtitles for marketing videos from scene scripts and voiceover texts.

--- SRT RULES ---
- Numbering starts at 1.
- Timestamps: HH:MM:SS,mmm --> HH:MM:SS,mmm
- Max 2 lines per subtitle, max 42 characters per line.
- Display time between 1 and 7 seconds, 200ms gap between subtitles.
- Break at natural speech pauses. Never break a sentence mid-thought.

Return ONLY valid JSON. No text outside JSON.
"""

REFINE_SYSTEM_PROMPT = """
You refine an existing marketing strategy or scene breakdown.
1. Understand what the user wants to change.
2. Change ONLY that, preserving everything else and the original structure.
3. Return the complete updated content and a short explanation.
If the request is ambiguous, lean toward minimal changes.

Return ONLY valid JSON. No text outside JSON.
"""

INSIGHTS_SYSTEM_PROMPT = """
You are a marketing analyst. Produce 3-5 short, actionable insights from campaign
performance data, one sentence each.
Return a JSON array: [{"type": "success|trend|warning|info", "message": "..."}]
"""

CONTEXT_SUMMARY_SYSTEM_PROMPT = """
You are a marketing analyst. Given the raw scraped content of a website, extract the
marketing-relevant information. Be concise but accurate; where a field cannot be
determined, make a reasonable inference from the available text.

Return ONLY valid JSON with this exact structure:
{
  "company_name": "The company or product name",
  "product_description": "2-3 sentences on what the product/company does",
  "target_audience": "Who the product is for (1-2 sentences)",
  "key_features": ["Feature 1", "Feature 2", "Feature 3"],
  "unique_selling_points": ["USP 1", "USP 2"],
  "brand_tone": "professional | casual | innovative | ...",
  "tech_stack": ["Tech 1", "Tech 2"]
}
"""

CODE_ANALYSIS_SYSTEM_PROMPT = """
You are an app marketing analyst. Given a codebase summary (file tree, key files,
dependencies), extract marketing-relevant information about the PRODUCT: what the app
does, who uses it, key screens and features, visual patterns and marketing angles.
You are NOT doing a code review.

- Focus on USER-FACING features, not internal architecture.
- Marketing angles are what would appeal to potential users.
- Keep descriptions concise and actionable.
- If you can't determine something, use an empty array or "unknown".
- app_type is one of: mobile_app, web_app, saas, api, desktop_app, browser_extension.

Return ONLY valid JSON. No markdown code blocks.
"""

# Noun-based negatives and the audio line are what Veo responds to best.
VEO_PROMPT_EXAMPLES = [
    {
        "scene_description": "Show the app's event discovery feature with people finding events near them",
        "optimized_prompt": (
            "Medium shot of a smartphone held in a woman's hand with natural light reflecting off the screen, "
            "displaying a vibrant event discovery interface with colorful event cards. Camera slowly dollies in "
            "as her finger scrolls through upcoming concerts and meetups. Setting: a sun-drenched European cafe "
            "with warm wooden tables, afternoon golden hour light through tall windows. Shallow depth of field, "
            "contemporary commercial aesthetic with warm amber color grading. Audio: gentle cafe ambiance, "
            "subtle UI tap sounds, soft lo-fi music in the background."
        ),
        "negative_prompt": (
            "distorted_fingers, blurry_text, unrealistic_hand_movements, low_resolution, flickering_screen, "
            "watermarks, text_overlays, compression_artifacts"
        ),
    },
    {
        "scene_description": "App download CTA with app store buttons",
        "optimized_prompt": (
            "Clean motion graphics animation: a sleek smartphone appears center frame via a smooth 3D rotation, "
            "the app icon materializes with a subtle particle burst. App store buttons slide in from below with "
            "spring easing. Deep gradient background from midnight blue to brand purple with floating geometric "
            "patterns in parallax. Professional 60fps motion design, high contrast, crisp edges. Audio: cinematic "
            "whoosh, digital shimmer on the icon reveal, upbeat electronic music building to a resolution."
        ),
        "negative_prompt": (
            "pixelated_graphics, misaligned_text, choppy_animation, cluttered_composition, distorted_logo, "
            "low_resolution, flickering, banding_artifacts"
        ),
    },
    {
        "scene_description": "A premium coffee brand being enjoyed in a morning routine setting",
        "optimized_prompt": (
            "Extreme close-up of dark coffee poured in slow motion into a handcrafted ceramic mug, steam curling "
            "upward. Camera dollies out to reveal a serene morning kitchen: marble countertop, fresh croissant, "
            "soft light through sheer curtains. Rack focus from the coffee ripples to the garden beyond the "
            "window. Warm golden-hour lighting, amber and cream palette, photorealistic cinematic style with "
            "natural film grain. Audio: liquid pour, ceramic on stone, birdsong, gentle piano melody."
        ),
        "negative_prompt": (
            "distorted_hands, unnatural_liquid_physics, flickering_light, oversaturated_colors, watermarks, "
            "text_overlays, compression_artifacts, plastic_look"
        ),
    },
]


def _lines(*parts: Optional[str]) -> str:
    return "\n".join(p for p in parts if p)


class PromptBuilder:

    @staticmethod
    def build_brand_context(brand_kit: Optional[models.BrandKit]) -> str:
        if not brand_kit:
            return ""

        parts = ["", "## Brand Guidelines", f"Brand Name: {brand_kit.name}"]
        if brand_kit.brand_voice:
            parts.append(f"Brand Voice & Tone: {brand_kit.brand_voice}")

        colors = brand_kit.colors or {}
        if colors:
            text = (
                f"Brand Colors: Primary {colors.get('primary')}, "
                f"Secondary {colors.get('secondary')}, Accent {colors.get('accent')}"
            )
            if colors.get("background"):
                text += f", Background {colors['background']}"
            if colors.get("text"):
                text += f", Text {colors['text']}"
            parts.append(text)

        fonts = brand_kit.fonts or {}
        if fonts:
            text = f'Typography: Heading "{fonts.get("heading")}", Body "{fonts.get("body")}"'
            if fonts.get("caption"):
                text += f', Caption "{fonts["caption"]}"'
            parts.append(text)

        return "\n".join(parts)

    @staticmethod
    def build_source_context(context: Optional[dict]) -> str:
        if not context:
            return ""
        features = context.get("key_features") or []
        usps = context.get("unique_selling_points") or []
        return _lines(
            "## Product Context (from the product page)",
            f"Company: {context['company_name']}" if context.get("company_name") else None,
            f"What it does: {context['product_description']}" if context.get("product_description") else None,
            f"Audience: {context['target_audience']}" if context.get("target_audience") else None,
            f"Key Features: {', '.join(features)}" if features else None,
            f"Unique Selling Points: {', '.join(usps)}" if usps else None,
            f"Brand Tone: {context['brand_tone']}" if context.get("brand_tone") else None,
        )

    @staticmethod
    def build_code_context(code_context: Optional[models.CodeContext]) -> str:
        analysis = code_context.analysis if code_context else None
        if not analysis:
            return ""

        def joined(key: str) -> Optional[str]:
            values = analysis.get(key) or []
            return ", ".join(values) if values else None

        monetization = analysis.get("monetization")
        return _lines(
            "## App Context (from its codebase)",
            f"App: {analysis.get('app_name')} ({analysis.get('app_type')})",
            f"Main Features: {joined('main_features')}" if joined("main_features") else None,
            f"Key Screens: {joined('key_screens')}" if joined("key_screens") else None,
            f"User Flows: {joined('user_flows')}" if joined("user_flows") else None,
            f"Marketing Angles: {joined('marketing_angles')}" if joined("marketing_angles") else None,
            f"Platforms: {joined('target_platforms')}" if joined("target_platforms") else None,
            f"Monetization: {monetization}" if monetization and monetization != "unknown" else None,
        )

    @staticmethod
    def build_brief(project: models.Project, brand_context: str = "", performance_context: str = "") -> str:
        return _lines(
            "## Product/Feature",
            f"Name: {project.product_name}",
            f"Description: {project.product_description}" if project.product_description else None,
            "",
            "## Target",
            f"Platforms: {', '.join(project.target_platforms or [])}",
            f"Languages: {', '.join(project.languages or [])}",
            f"Target Audience: {project.target_audience}" if project.target_audience else None,
            "",
            "## Creative Direction",
            f"Style: {project.style}",
            f"Tone: {project.tone}",
            f"\nAdditional Notes from the creator:\n{project.additional_notes}" if project.additional_notes else None,
            f"Product page: {project.source_url}" if project.source_url else None,
            brand_context,
            PromptBuilder.build_source_context(project.source_context),
            PromptBuilder.build_code_context(project.code_context),
            performance_context,
        )

    @classmethod
    def build_strategy_prompt(cls, project: models.Project, brand_context: str = "",
                              performance_context: str = "", ab_test: bool = False) -> str:
        brief = cls.build_brief(project, brand_context, performance_context)
        if not ab_test:
            return f"""Create a marketing video strategy for the following brief:

{brief}

Generate a strategy as JSON with this exact structure:
{{
  "hook": "The attention-grabbing opening (first 2-3 seconds)",
  "narrative_arc": "The story flow from start to finish",
  "key_messages": ["message 1", "message 2", "message 3"],
  "cta": "The specific call to action",
  "recommended_duration": 30,
  "recommended_scenes": 5,
  "music_mood": "The audio/music mood description"
}}"""

        return f"""Create TWO distinct A/B marketing video strategies for the following brief:

{brief}

Generate TWO strategies as JSON with this exact structure:
{{
  "version_a": {{
    "persona_type": "emotional",
    "persona_description": "The Emotional/Story-driven approach",
    "hook": "...", "narrative_arc": "...", "key_messages": ["..."], "cta": "...",
    "recommended_duration": 30, "recommended_scenes": 5, "music_mood": "..."
  }},
  "version_b": {{
    "persona_type": "technical",
    "persona_description": "The Technical/Benefit-driven approach",
    "hook": "...", "narrative_arc": "...", "key_messages": ["..."], "cta": "...",
    "recommended_duration": 30, "recommended_scenes": 5, "music_mood": "..."
  }}
}}

Both versions address the same product and audience. Version A tells a STORY, Version B sells FEATURES."""

    @staticmethod
    def build_scenes_prompt(project: models.Project, strategy: dict, brand_context: str = "") -> str:
        key_messages = strategy.get("key_messages") or []
        return f"""Based on the approved strategy, create a scene breakdown:

## Approved Strategy
Hook: {strategy.get('hook', '')}
Narrative Arc: {strategy.get('narrative_arc', '')}
Key Messages: {'; '.join(key_messages)}
CTA: {strategy.get('cta', '')}
Target Duration: {strategy.get('recommended_duration', 30)} seconds
Target Scenes: {strategy.get('recommended_scenes', 5)} scenes
Music Mood: {strategy.get('music_mood', '')}

## Product
Name: {project.product_name}
{f'Description: {project.product_description}' if project.product_description else ''}
Style: {project.style}
Tone: {project.tone}
{brand_context}

Return JSON with this exact structure:
{{
  "scenes": [
    {{
      "scene_number": 1,
      "title": "string",
      "description": "string",
      "duration_seconds": 6,
      "camera_movement": "string",
      "lighting": "string",
      "text_overlay": "string or null",
      "audio_type": "native_veo",
      "voiceover_text": "string or null"
    }}
  ]
}}"""

    @staticmethod
    def build_veo_prompt(scene: models.Scene, project: models.Project, brand_context: str = "",
                         examples: Iterable[dict] = VEO_PROMPT_EXAMPLES) -> str:
        shots = "\n\n".join(
            f"Example {i}:\nScene: {ex['scene_description']}\n"
            f"Optimized: {ex['optimized_prompt']}\nNegative: {ex['negative_prompt']}"
            for i, ex in enumerate(examples, start=1)
        )
        return f"""Optimize this scene description into a Veo video generation prompt.

## Examples
{shots}

## Scene
Title: {scene.title}
Description: {scene.user_prompt or scene.description}
Duration: {scene.duration_seconds} seconds
{f'Camera: {scene.camera_movement}' if scene.camera_movement else ''}
{f'Lighting: {scene.lighting}' if scene.lighting else ''}
Aspect Ratio: {scene.aspect_ratio or '9:16'}

## Style
Visual Style: {project.style}
Tone: {project.tone}
{brand_context}

Return JSON with this exact structure:
{{
  "optimized_prompt": "The optimized Veo prompt text",
  "negative_prompt": "Things to avoid in generation"
}}"""

    @staticmethod
    def build_caption_prompt(scenes: List[models.Scene], language: str) -> str:
        total = sum(s.duration_seconds for s in scenes)
        details = []
        for i, s in enumerate(scenes, start=1):
            text = f"Scene {i} ({s.duration_seconds}s): {s.description}"
            if s.voiceover_text:
                text += f"\nVoiceover: {s.voiceover_text}"
            if s.text_overlay:
                text += f"\nText overlay: {s.text_overlay}"
            details.append(text)
        scene_text = "\n\n".join(details)

        return f"""Generate SRT captions for this marketing video:

Language: {language}
Total Duration: {total} seconds

## Scenes
{scene_text}

Return JSON with this exact structure:
{{
  "srt_content": "1\\n00:00:00,000 --> 00:00:03,000\\nFirst subtitle text\\n\\n2\\n..."
}}
Timestamps must not exceed the total duration."""

    @staticmethod
    def build_refine_prompt(content_type: str, current_content, refinement_request: str) -> str:
        return f"""Here is the current {content_type}:
{json.dumps(current_content, indent=2, ensure_ascii=False)}

User's refinement request: "{refinement_request}"

Apply the requested changes and return JSON with this structure:
{{
  "updated_content": {{ "...": "the complete updated {content_type}" }},
  "explanation": "Brief explanation of what was changed"
}}"""

    @staticmethod
    def build_context_summary_prompt(raw) -> str:
        features = "\n".join(f"- {f}" for f in raw.features)
        usps = "\n".join(f"- {u}" for u in raw.usp)
        return _lines(
            "Here is the scraped content from a website:",
            "",
            f"**Title:** {raw.title}",
            f"**Meta Description:** {raw.description}",
            f"**About Section:**\n{raw.about_us}" if raw.about_us else None,
            f"**Features Found:**\n{features}" if features else None,
            f"**USP/Benefits Found:**\n{usps}" if usps else None,
            f"**Tech Stack Detected:** {', '.join(raw.tech_stack)}" if raw.tech_stack else None,
            "",
            f"**Raw Page Text (first 2000 chars):**\n{raw.raw_text[:2000]}",
            "",
            "Analyze this content and return the structured marketing context as JSON.",
        )

    @staticmethod
    def build_code_analysis_prompt(codebase: str) -> str:
        return f"""Analyze the following codebase summary and extract marketing-relevant information as JSON:

{codebase}

Respond with a JSON object matching this structure:
{{
  "app_name": "App Name",
  "app_type": "mobile_app",
  "tech_stack": ["React", "TypeScript"],
  "main_features": ["Feature 1", "Feature 2"],
  "key_screens": ["Home", "Profile"],
  "ui_components": ["Tab navigation", "Card grid"],
  "user_flows": ["Signup -> Profile -> Explore"],
  "marketing_angles": ["Angle 1", "Angle 2"],
  "target_platforms": ["iOS", "Android"],
  "monetization": "freemium"
}}"""
