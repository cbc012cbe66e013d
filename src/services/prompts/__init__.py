"""Prompts module - centralized prompt templates for AI services.

Re-exports all prompt constants and utilities for easy importing:
    from services.prompts import PROMPT_VERSIONS, strip_markdown_code_blocks
    from services.prompts import SCRIPT_GENERATOR_V2, build_script_prompt
"""

from services.prompts._base import strip_markdown_code_blocks
from services.prompts.images import IMAGE_PROMPT_PREAMBLE
from services.prompts.script_generation import SCRIPT_GENERATOR_V2, build_script_prompt

# Prompt version identifiers, logged with every generation request
PROMPT_VERSIONS = {
    "generate_script": "v2",  # Scenes with image prompts + per-language narration
    "image_preamble": "v1",
}

__all__ = [
    # Utilities
    "strip_markdown_code_blocks",
    # Version tracking
    "PROMPT_VERSIONS",
    # Script generation prompts
    "SCRIPT_GENERATOR_V2",
    "build_script_prompt",
    # Image generation
    "IMAGE_PROMPT_PREAMBLE",
]
