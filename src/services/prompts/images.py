"""Image-related prompt templates.

Contains prompts for:
- IMAGE_PROMPT_PREAMBLE: prefix added to every scene and thumbnail image prompt
"""

# Image generation preamble, prepended verbatim to each image prompt
IMAGE_PROMPT_PREAMBLE = (
    "High quality, detailed, professional image in 9:16 vertical aspect ratio "
    "for mobile viewing. Vibrant colors, engaging composition. "
)


def build_image_prompt(prompt: str) -> str:
    """Prefix a scene image prompt with the vertical-format preamble."""
    return f"{IMAGE_PROMPT_PREAMBLE}{prompt.strip()}"
