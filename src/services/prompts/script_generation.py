"""Script generation prompt templates.

Contains prompts for:
- SCRIPT_GENERATOR_V2: Generate a vertical short-video script (scenes with
  image prompts and single-narrator narration) from a topic
"""

AVG_SCENE_SECONDS = 15
IMAGES_PER_SCENE = 3

# Per-language narration settings
LANGUAGE_STYLES = {
    "gujarati": {
        "name": "Gujarati",
        "phrases": {
            "comedy": '"તમે જાણો છો શું થાય છે...", "મને યાદ છે એકવાર...", "સૌથી મજાની વાત તો એ છે કે..."',
            "storytelling": '"એક વખત...", "અને પછી...", "અચાનક..."',
            "motivational": '"તમે કરી શકો છો!", "યાદ રાખો...", "સફળતા તમારી રાહ જુએ છે!"',
        },
    },
    "hindi": {
        "name": "Hindi",
        "phrases": {
            "comedy": '"आप जानते हैं क्या होता है...", "मुझे याद है एक बार...", "सबसे मजेदार बात तो यह है कि..."',
            "storytelling": '"एक बार...", "और फिर...", "अचानक..."',
            "motivational": '"आप कर सकते हैं!", "याद रखें...", "सफलता आपकी प्रतीक्षा कर रही है!"',
        },
    },
    "english": {
        "name": "English",
        "phrases": {
            "comedy": '"You know what happens...", "I remember once...", "The funniest part is..."',
            "storytelling": '"Once upon a time...", "And then...", "Suddenly..."',
            "motivational": '"You can do this!", "Remember...", "Success awaits you!"',
        },
    },
}

COMEDY_STYLES = {
    "mild": {
        "style": "light, family-friendly humor",
        "image_style": "colorful, cheerful cartoon illustrations with friendly expressions",
        "script_style": "gentle stand-up monologue with light jokes and wholesome observations",
        "intensity": (
            "MILD COMEDY: keep every joke wholesome and suitable for all ages. "
            "Puns and playful observations only."
        ),
    },
    "medium": {
        "style": "edgy, relatable adult humor",
        "image_style": "exaggerated cartoon illustrations with expressive, mischievous faces",
        "script_style": "confident stand-up monologue with sarcasm, irony and relatable adult situations",
        "intensity": (
            "MEDIUM COMEDY: use sarcasm, irony, clever wordplay and unexpected twists. "
            "Edgier than mild but still appropriate."
        ),
    },
    "spicy": {
        "style": "bold humor with maximum comedic impact",
        "image_style": "wild cartoon illustrations with extreme expressions and absurd situations",
        "script_style": "high-energy stand-up monologue with bold observations and sharp timing",
        "intensity": (
            "SPICY COMEDY: bold punchlines, absurd scenarios and surprising twists. "
            "Daring, but never tasteless."
        ),
    },
}

GENRE_STYLES = {
    "informative": {
        "style": "educational and informative",
        "image_style": "clean, professional visuals with infographic elements",
        "script_style": "clear, factual monologue that explains the topic in an engaging way",
    },
    "storytelling": {
        "style": "narrative, story-driven",
        "image_style": "cinematic, dramatic visuals that tell the story on their own",
        "script_style": "a narrator telling a story, describing scenes and emotions",
    },
    "motivational": {
        "style": "inspiring and motivational",
        "image_style": "uplifting, powerful imagery with warm colors",
        "script_style": "powerful monologue with encouraging, empowering language",
    },
    "factreveal": {
        "style": "surprising facts and revelations",
        "image_style": "eye-catching, dramatic visuals with bold colors and factual or historical imagery",
        "script_style": "an attention-grabbing hook followed by a fascinating reveal and explanation",
    },
}

# Fact-reveal videos follow a fixed hook / reveal / details structure
FACT_REVEAL_STRUCTURE = """FACT REVEAL STRUCTURE (the topic holds a HOOK and a FACT):
- Scene 1, THE HOOK: open with the surprising question or statement from the HOOK. Build curiosity.
- Scene 2, THE REVEAL: reveal the fact with "yes, it's really true" energy.
- Scene 3, THE DETAILS: add context and related details, then close with a short, punchy
  spoken subscribe appeal in {language_name} (audio only, 3-5 seconds).
- Image prompts of EVERY scene, including the last one, show only topic content. Never draw
  subscribe buttons, CTA text or channel branding: the system overlays its own end card."""

# Script Generator v2 prompt
# Template placeholders: {topic}, {genre_upper}, {style}, {image_style}, {script_style},
# {num_scenes}, {duration}, {avg_scene_seconds}, {images_per_scene}, {language_name},
# {narration_field}, {genre_block}
SCRIPT_GENERATOR_V2 = """You are a professional cinematic scriptwriter for vertical short videos,
specializing in {style} content.

Write a compelling {genre_upper} video script for: "{topic}"

FORMAT
- Exactly {num_scenes} scenes for a {duration}-second video (9:16, mobile first).
- Roughly {avg_scene_seconds} seconds of narration per scene.
- Each scene has EXACTLY {images_per_scene} image prompts.

NARRATION
- A single male narrator speaking a monologue. No dialogue, no second voice.
- Write ALL narration in {language_name}, using its native script only (no romanization).
- Spell every number and year out in English words (e.g. "nineteen forty-seven", never 1947)
  so the voice pronounces them correctly.
- Use punctuation to guide rhythm; vary sentence length.

STYLE
- Visual style: {image_style}
- Script style: {script_style}

IMAGE PROMPTS
- The prompts of one scene are consecutive storyboard moments of that scene's narration.
- Each prompt is a literal, concrete visual of the sentence it accompanies (era, place, subject).
- English, detailed, photorealistic unless the visual style says otherwise.
- A friendly male presenter may appear where it fits.

{genre_block}

TITLE
- "video_title" is an English URL slug: lowercase a-z, 0-9 and hyphens, max 40 characters,
  e.g. "the-midnight-mystery".

OUTPUT (JSON only)
{{
  "video_title": "slug-format-title",
  "scenes": [
    {{
      "scene_number": 1,
      "image_prompts": ["moment 1", "moment 2", "moment 3"],
      "{narration_field}": "{language_name} narration for this scene"
    }}
  ],
  "youtube_metadata": {{
    "title": "Hook-style YouTube Short title, max 60 characters",
    "description": "SEO description (100-150 words) with keywords and hashtags",
    "tags": ["10-15 high volume tags"],
    "thumbnail_prompts": ["high-CTR thumbnail concept 1", "different thumbnail concept 2"]
  }}
}}

Keep the JSON complete and valid. Do not truncate."""


def build_genre_block(genre: str, comedy_level: str, language: str) -> str:
    """Genre-specific instructions appended to the script prompt."""
    lang = LANGUAGE_STYLES.get(language, LANGUAGE_STYLES["gujarati"])
    name = lang["name"]
    if genre == "comedy":
        comedy = COMEDY_STYLES.get(comedy_level, COMEDY_STYLES["mild"])
        return (
            f"{comedy['intensity']}\n\n"
            f"COMEDY STYLE: write like a male stand-up comedian joking in {name}. "
            f"Use phrases like {lang['phrases']['comedy']}. Find the humor in daily life and the topic."
        )
    if genre == "storytelling":
        return (
            f"STORYTELLING STYLE: narrate like a male storyteller in {name}. "
            f"Use {lang['phrases']['storytelling']}. Create vivid, emotional moments."
        )
    if genre == "motivational":
        return (
            f"MOTIVATIONAL STYLE: powerful, uplifting {name}. "
            f"Include phrases like {lang['phrases']['motivational']}."
        )
    if genre == "factreveal":
        return FACT_REVEAL_STRUCTURE.format(language_name=name)
    return ""


def build_script_prompt(
    topic: str,
    duration: int,
    num_scenes: int,
    genre: str = "informative",
    comedy_level: str = "mild",
    language: str = "gujarati",
) -> str:
    """Fill SCRIPT_GENERATOR_V2 for one request.

    Args:
        topic: Effective topic text (for fact reveals, the HOOK/FACT block)
        duration: Target duration in seconds
        num_scenes: Number of scenes to request
        genre: Genre value
        comedy_level: Comedy level value (only used for comedy)
        language: Narration language value

    Returns:
        Prompt text
    """
    if genre == "comedy":
        style = COMEDY_STYLES.get(comedy_level, COMEDY_STYLES["mild"])
    else:
        style = GENRE_STYLES.get(genre, GENRE_STYLES["informative"])
    lang = LANGUAGE_STYLES.get(language, LANGUAGE_STYLES["gujarati"])

    return SCRIPT_GENERATOR_V2.format(
        topic=topic,
        genre_upper=genre.upper(),
        style=style["style"],
        image_style=style["image_style"],
        script_style=style["script_style"],
        num_scenes=num_scenes,
        duration=duration,
        avg_scene_seconds=AVG_SCENE_SECONDS,
        images_per_scene=IMAGES_PER_SCENE,
        language_name=lang["name"],
        narration_field=f"audio_script_{language}",
        genre_block=build_genre_block(genre, comedy_level, language),
    )
