"""
Server-side presets, prompt templates and personas.

These stay on the server so clients only send ``text``, ``content_type`` and
``persona_id``; model parameters cannot be set from the outside.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from rabbit.config import settings

logger = logging.getLogger(__name__)

# Content types generated for every input, one card each
TAKE_TYPES = ("expansion", "contrarian", "synapse")
RELATED_THOUGHTS = "relatedThoughts"
# Characters of expanded content forwarded when asking for follow-ups
RELATED_CONTENT_LIMIT = 800
PREVIEW_MAX_TOKENS = 100


# =============================================================================
# PRESETS
# =============================================================================

def _presets() -> Dict[str, dict]:
    base = {
        "model": settings.default_model,
        "temperature": settings.default_temperature,
        "top_p": settings.default_top_p,
        "max_tokens": settings.default_max_tokens,
    }
    return {
        "default": base,
        "creative": {**base, "temperature": 0.9, "top_p": 0.95},
        "precise": {**base, "temperature": 0.3, "top_p": 0.7},
        "preview": {**base, "max_tokens": PREVIEW_MAX_TOKENS},
        # Four short strings as a JSON array
        "json": {
            **base,
            "temperature": 0.8,
            "top_p": 0.95,
            "max_tokens": 200,
            "response_format": {"type": "json_object"},
        },
    }


CONTENT_TYPE_PRESETS = {
    "expansion": "default",
    "contrarian": "default",
    "synapse": "creative",
    "deeper": "default",
    RELATED_THOUGHTS: "json",
    "preview": "preview",
}


def get_preset_config(preset_name: str) -> dict:
    """Parameters for a preset, falling back to 'default'."""
    presets = _presets()
    return dict(presets.get(preset_name, presets["default"]))


def get_config_for_content_type(content_type: str) -> dict:
    return get_preset_config(CONTENT_TYPE_PRESETS.get(content_type, "default"))


def get_available_presets() -> List[str]:
    return list(_presets().keys())


# =============================================================================
# PROMPT TEMPLATES
# =============================================================================

PROMPT_TEMPLATES = {
    "expansion": (
        "Expand on this idea with additional depth, implications, or related angles. "
        "Structure your response with clear headings, bullet points where appropriate, "
        "and ensure a logical flow of ideas. Include concrete examples or applications "
        "where possible."
    ),
    "contrarian": (
        "Present a counterintuitive or opposing view to this idea. Structure your "
        "response with clear headings, supporting evidence, and logical reasoning. "
        "Challenge the initial premise respectfully but thoroughly."
    ),
    "synapse": (
        "Offer concepts, metaphors, or ideas from different domains that relate to this "
        "topic. Structure your response to highlight unexpected connections, "
        "cross-disciplinary insights, and novel perspectives."
    ),
    "deeper": (
        "Provide a deeper analysis exploring further implications, nuances, and "
        "dimensions of this idea. Include historical context, potential future "
        "implications, and multidisciplinary viewpoints."
    ),
    "preview": "Generate a brief preview summary of the following idea. Keep it concise and compelling.",
    "default": "Provide a thoughtful, balanced response to the following idea.",
}

# Short teasers shown on a card before the full take is generated
PREVIEW_TEMPLATES = {
    "expansion": "Provide a brief 1-2 sentence preview summarizing how you would expand on this idea",
    "contrarian": "Provide a brief 1-2 sentence preview of a counterintuitive or opposing view to this idea",
    "synapse": (
        "Provide a brief 1-2 sentence preview of a concept, metaphor, or idea from a "
        "different domain that relates to"
    ),
    "deeper": "Provide a brief 1-2 sentence preview of a deeper analysis of this idea",
}

RELATED_THOUGHTS_PROMPT = """Based on the following text:
\"\"\"
{content}
\"\"\"
Generate exactly 4 thoughtful follow-up questions or ideas that would naturally extend this conversation.
Each item should be:
1. Concise (under 15 words).
2. Thought-provoking.
3. Directly related to the provided text.
Format your response ONLY as a valid JSON array of strings, like this:
["Question 1?", "Idea 2.", "Question 3?", "Idea 4."]
Do not include any introductory text, explanations, markdown formatting, or numbering outside the JSON array itself."""


# =============================================================================
# PERSONAS
# =============================================================================

@dataclass(frozen=True)
class Persona:
    id: str
    name: str
    instruction: str
    description: str = ""


PERSONAS: Dict[str, Persona] = {
    p.id: p
    for p in (
        Persona(
            "default",
            "AI Assistant",
            "Provide a thoughtful, balanced response.",
            "Balanced and thoughtful responses",
        ),
        Persona(
            "naval",
            "Naval",
            "Channel Naval Ravikant's philosophical approach to wealth, happiness, and life "
            "optimization. Use concise, tweet-like wisdom with occasional paradoxes. Focus on "
            "long-term thinking, mental models, and the pursuit of happiness through freedom.",
            "Philosophical wealth builder",
        ),
        Persona(
            "graham",
            "Paul Graham",
            "Write like Paul Graham with clear, thoughtful analysis. Use simple language to "
            "explain complex ideas. Focus on startups, innovation, and contrarian thinking about "
            "conventional wisdom. Include occasional personal anecdotes and practical wisdom.",
            "Startup thinker",
        ),
        Persona(
            "trump",
            "Donald Trump",
            "Write in Donald Trump's distinctive style: confident, bombastic, and direct. Use "
            "simple vocabulary, short sentences, frequent superlatives (\"tremendous\", \"the "
            "best\"), and occasional ALL CAPS for emphasis. Make bold, declarative statements "
            "and add \"Believe me\" or similar phrases.",
            "Chaotic, confident, punchy",
        ),
        Persona(
            "nietzsche",
            "Nietzsche",
            "Write in Friedrich Nietzsche's philosophical style: profound, poetic, and "
            "challenging conventional morality. Use aphorisms, paradoxes, and metaphors. "
            "Emphasize will to power, the übermensch concept, and critique of societal values. "
            "Be existential and harsh when necessary.",
            "Existential and harsh",
        ),
        Persona(
            "aristotle",
            "Aristotle",
            "Write in Aristotle's scholarly style: methodical, logical, and ethically grounded. "
            "Construct arguments using clear premises and conclusions, draw upon empirical "
            "observations, emphasize the Golden Mean and virtue ethics, and illustrate points "
            "with concrete examples. Maintain a balanced, moderate tone and seek the underlying "
            "purpose (telos) of each topic.",
            "Logical, empirical, balanced",
        ),
        Persona(
            "future",
            "Future Self",
            "Respond as if you are the user's future self, looking back with wisdom gained from "
            "experience. Offer perspective that comes from having lived through challenges and "
            "seen long-term patterns. Be encouraging but realistic.",
            "Imaginative projection",
        ),
    )
}


def get_persona(persona_id: Optional[str]) -> Optional[Persona]:
    if not persona_id:
        return None
    return PERSONAS.get(persona_id)


# =============================================================================
# REQUEST BUILDERS
# =============================================================================

def build_prompt(
    user_input: str,
    content_type: str,
    persona_id: Optional[str] = None,
    preview: bool = False,
) -> str:
    """Complete prompt for one take. Unknown personas add no prefix.

    With ``preview`` the take's teaser template is used; content types without
    one get the expansion teaser.
    """
    if content_type == RELATED_THOUGHTS:
        return RELATED_THOUGHTS_PROMPT.format(content=user_input)

    if preview:
        template = PREVIEW_TEMPLATES.get(content_type, PREVIEW_TEMPLATES["expansion"])
    else:
        template = PROMPT_TEMPLATES.get(content_type, PROMPT_TEMPLATES["default"])

    persona_prefix = ""
    persona = get_persona(persona_id)
    if persona:
        persona_prefix = f"Respond as if you were {persona.name}. {persona.instruction} "
    elif persona_id:
        logger.debug(f"Unknown persona '{persona_id}', using no persona")

    if preview or content_type == "preview":
        format_instructions = "Keep it concise and compelling."
    else:
        format_instructions = (
            "Write in a clear, engaging style with well-structured paragraphs "
            "and thoughtful transitions."
        )

    return f'{persona_prefix}{template}: "{user_input}". {format_instructions}'


def build_request_body(
    user_input: str,
    content_type: str,
    persona_id: Optional[str] = None,
    stream: bool = False,
    preview: bool = False,
) -> dict:
    """Chat-completions request body for the provider."""
    if preview and content_type != RELATED_THOUGHTS:
        config = get_preset_config("preview")
    else:
        config = get_config_for_content_type(content_type)
    logger.info(
        f"Building provider request for {content_type}, streaming: {stream}, preview: {preview}"
    )

    prompt = build_prompt(user_input, content_type, persona_id, preview=preview)
    body = {
        "model": config["model"],
        "messages": [{"role": "user", "content": prompt}],
        "temperature": config["temperature"],
        "top_p": config["top_p"],
        "max_tokens": config["max_tokens"],
        "stream": bool(stream),
    }
    if config.get("response_format"):
        body["response_format"] = config["response_format"]
    return body


def truncate_for_related(content: str, limit: int = RELATED_CONTENT_LIMIT) -> str:
    if len(content) > limit:
        return content[:limit] + "..."
    return content
