from typing import Set

from errors import ValidationError
from logging_config import get_logger

logger = get_logger(__name__)

SUPPORTED_LANGUAGES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "hi": "Hindi",
    "zh": "Chinese",
    "ja": "Japanese",
}

# Names used inside translation prompts where they differ from the display name
PROMPT_NAMES = {
    "zh": "Chinese (Mandarin)",
}


def validate_language(code) -> str:
    if not code or code not in SUPPORTED_LANGUAGES:
        raise ValidationError(f"Unsupported language: {code!r}")
    return code


def language_name(code: str) -> str:
    return PROMPT_NAMES.get(code, SUPPORTED_LANGUAGES[code])


def resolve_targets(sessions, room_code: str, sender_id: str, sender_language: str) -> Set[str]:
    """Languages to produce for one utterance: every other member's plus the sender's own."""
    targets = sessions.other_languages(room_code, sender_id)
    targets.add(sender_language)
    logger.debug(f"Resolved targets for {sender_id} in room {room_code}: {sorted(targets)}")
    return targets
