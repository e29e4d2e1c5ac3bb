"""
Synthesis voice selection.

The preference table is ordered (predicate, label) pairs, evaluated
first-match-wins against the platform's voice list. Named engines come first
because their voices sound best; then language matches, then the platform
default, then anything at all.
"""
from typing import Callable, Optional, Sequence

from .platform import Voice

VoicePredicate = Callable[[Voice], bool]


def _name_has(fragment: str) -> VoicePredicate:
    return lambda v: fragment in v.name.lower()


def _name_has_with_lang(fragment: str, lang_prefix: str) -> VoicePredicate:
    return lambda v: fragment in v.name.lower() and v.lang.lower().startswith(lang_prefix)


def build_preferences(language: str = "en-US") -> list[tuple[VoicePredicate, str]]:
    """Voice preference table for a BCP 47 language tag, e.g. "en-US"."""
    tag = language.lower()
    base = tag.split("-")[0]
    return [
        (_name_has_with_lang("google", base), f"google {base}"),
        (_name_has_with_lang("microsoft", base), f"microsoft {base}"),
        (_name_has_with_lang("apple", base), f"apple {base}"),
        (_name_has("samantha"), "samantha"),
        (_name_has("karen"), "karen"),
        (_name_has_with_lang("female", base), f"female {base}"),
        (lambda v: v.lang.lower() == tag, f"exact {language}"),
        (lambda v: v.lang.lower().startswith(f"{base}-"), f"region {base}-*"),
        (lambda v: v.lang.lower().startswith(base), f"prefix {base}"),
        (lambda v: v.default, "platform default"),
        (lambda v: True, "any voice"),
    ]


def select_voice(voices: Sequence[Voice], language: str = "en-US") -> tuple[Optional[Voice], Optional[str]]:
    """
    Pick the best voice for `language`.

    Returns (voice, label of the matching preference); (None, None) when the
    platform has no voices.
    """
    if not voices:
        return None, None
    for predicate, label in build_preferences(language):
        for voice in voices:
            if predicate(voice):
                return voice, label
    return voices[0], "first available"
