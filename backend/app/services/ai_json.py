import json
import re
from typing import Any, Iterable, Optional

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


class AIJSONError(ValueError):
    pass


def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```(?:json)?\s*\n?", "", cleaned)
        cleaned = re.sub(r"\n?```\s*$", "", cleaned)
    return cleaned.strip()


def _extract_balanced(text: str) -> Optional[str]:
    """Return the first balanced {...} or [...] block, ignoring brackets in strings."""
    start = None
    depth = 0
    in_string = False
    escaped = False
    opener = closer = ""

    for i, ch in enumerate(text):
        if start is None:
            if ch in "{[":
                start, opener = i, ch
                closer = "}" if ch == "{" else "]"
                depth = 1
            continue

        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def parse_ai_json(text: str, required_keys: Iterable[str] = ()) -> Any:
    """
    Parse JSON out of an LLM reply.

    Tries, in order: the reply with code fences stripped, the first fenced
    block anywhere in the reply, and the first balanced object/array.
    Raises AIJSONError when nothing parses or a required key is missing.
    """
    if not text or not text.strip():
        raise AIJSONError("Empty response from AI model")

    candidates = [_strip_fences(text)]
    match = _FENCE_RE.search(text)
    if match:
        candidates.append(match.group(1).strip())
    balanced = _extract_balanced(text)
    if balanced:
        candidates.append(balanced)

    data = None
    for candidate in candidates:
        try:
            data = json.loads(candidate)
            break
        except json.JSONDecodeError:
            continue
    else:
        raise AIJSONError(f"Could not parse JSON from AI response: {text[:200]}")

    required = list(required_keys)
    if required:
        if not isinstance(data, dict):
            raise AIJSONError("Expected a JSON object from AI model")
        missing = [k for k in required if k not in data]
        if missing:
            raise AIJSONError(f"Missing {', '.join(repr(k) for k in missing)} in AI output")
    return data
