# app/services/llm.py

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional

from app.core.config import settings
from app.core.errors import UpstreamAIError
from app.services.ai_cache import AICache, ai_cache, make_cache_key

logger = logging.getLogger(__name__)


@dataclass
class LLMResult:
    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cached: bool = False


class LLMClient:
    """
    Text generation for the creative workflow.
    Talks to Vertex AI Gemini by default, or OpenAI when LLM_PROVIDER=openai.
    Identical prompts within the cache TTL are served from memory.
    """

    def __init__(self, provider: Optional[str] = None, cache: Optional[AICache] = None):
        self.provider = provider or settings.LLM_PROVIDER
        self.cache = cache if cache is not None else ai_cache
        self._client = None

    @property
    def configured(self) -> bool:
        if self.provider == "openai":
            return bool(settings.OPENAI_API_KEY)
        return bool(settings.GOOGLE_CLOUD_PROJECT_ID)

    def generate(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        json_output: bool = True,
        use_cache: bool = True,
    ) -> LLMResult:
        key = make_cache_key(self.provider, model, system_prompt, user_prompt, temperature)
        if use_cache:
            hit = self.cache.get(key)
            if hit is not None:
                logger.debug("AI cache hit for %s", model)
                return LLMResult(text=hit.text, model=hit.model, cached=True)

        if self.provider == "openai":
            result = self._call_openai(system_prompt, user_prompt, temperature, max_tokens, json_output)
        else:
            result = self._call_gemini(system_prompt, user_prompt, model, temperature, max_tokens, json_output)

        if use_cache and result.text:
            self.cache.set(key, result)
        return result

    def _call_openai(
        self, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int, json_output: bool
    ) -> LLMResult:
        from openai import OpenAI

        if self._client is None:
            self._client = OpenAI(api_key=settings.OPENAI_API_KEY)

        kwargs = {}
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = self._client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )
        except Exception as e:
            logger.error("OpenAI API error: %s", e)
            raise UpstreamAIError(f"OpenAI API error: {e}")

        usage = response.usage
        return LLMResult(
            text=response.choices[0].message.content or "",
            model=settings.OPENAI_MODEL,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )

    def _call_gemini(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        json_output: bool,
    ) -> LLMResult:
        import vertexai
        from vertexai.generative_models import GenerativeModel

        generation_config = {
            "temperature": temperature,
            "top_p": 0.9,
            "max_output_tokens": max_tokens,
        }
        if json_output:
            generation_config["response_mime_type"] = "application/json"

        try:
            vertexai.init(
                project=settings.GOOGLE_CLOUD_PROJECT_ID,
                location=settings.GOOGLE_CLOUD_LOCATION,
            )
            gemini = GenerativeModel(model, system_instruction=system_prompt)
            response = gemini.generate_content(
                contents=[user_prompt],
                generation_config=generation_config,
            )
            text = response.text
        except Exception as e:
            logger.error("Gemini API error (%s): %s", model, e)
            raise UpstreamAIError(f"Gemini API error: {e}")

        usage = getattr(response, "usage_metadata", None)
        return LLMResult(
            text=text or "",
            model=model,
            input_tokens=getattr(usage, "prompt_token_count", 0) or 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) or 0,
        )


def dumps_for_prompt(data) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)
