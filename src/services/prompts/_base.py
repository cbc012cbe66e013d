"""Base utilities for prompts module.

Contains shared helper functions used across prompt modules.
"""

import re

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)(?:```|$)", re.DOTALL)


def strip_markdown_code_blocks(text: str) -> str:
    """Strip markdown code blocks from AI response text.

    Handles a fenced block anywhere in the text as well as an opening fence
    whose closing fence was cut off.

    Args:
        text: Raw text that may contain markdown code blocks

    Returns:
        Cleaned text with markdown code blocks removed
    """
    text = (text or "").strip()
    if "```" not in text:
        return text
    match = _FENCE_RE.search(text)
    if match is None:
        return text
    return match.group(1).strip()
