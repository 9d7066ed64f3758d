"""
LLM response parsing utilities

Gemini may wrap JSON output in markdown code fences even when a JSON
response mime type is requested. These helpers strip the fences before
parsing.
"""
import json
import re

# opening fence with an optional language tag, body, optional closing fence
_FENCE_RE = re.compile(r"^```[\w-]*[ \t]*\n?(?P<body>.*?)(?:\n?```)?$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code block, if any.

    Handles ```json ... ```, bare ``` ... ```, an unterminated opening
    fence, and plain text (returned stripped).
    """
    text = text.strip()
    match = _FENCE_RE.match(text)
    if not match:
        return text
    return match.group("body").strip()


def parse_llm_json(text: str):
    """Parse an LLM response as JSON after removing markdown fences.

    Raises:
        json.JSONDecodeError: when the payload is not valid JSON
    """
    return json.loads(strip_code_fence(text))
