"""
Text preparation for speech output.

Assistant responses are markdown; read aloud they need code, formatting and
emoji removed, and a bounded length.
"""
import re

CODE_BLOCK_PLACEHOLDER = "Code example"
ELLIPSIS = "..."

_EMOJI = re.compile(
    "["
    "\U0001F300-\U0001FAFF"  # pictographs, emoticons, transport, supplemental
    "\u2600-\u27BF"          # misc symbols, dingbats
    "\uFE0F"                 # variation selector
    "]",
)

# (pattern, replacement), applied in order.
_SPEECH_RULES = (
    (re.compile(r"```[\s\S]*?```"), CODE_BLOCK_PLACEHOLDER),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),
    (re.compile(r"\*(.*?)\*"), r"\1"),
    (re.compile(r"#{1,6}\s+"), ""),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"\[([^\]]+)\]"), r"\1"),
    (_EMOJI, ""),
    (re.compile(r"\n+"), ". "),
    (re.compile(r"\s+"), " "),
    (re.compile(r"\.\s*\."), "."),
)


def clean_text_for_speech(text: str) -> str:
    """
    Strip markdown for speech.

    Fenced code blocks become a fixed placeholder phrase, links become their
    label, line breaks become sentence breaks and whitespace is collapsed.
    """
    result = text or ""
    for pattern, replacement in _SPEECH_RULES:
        result = pattern.sub(replacement, result)
    return result.strip()


def truncate_for_speech(text: str, max_length: int) -> str:
    """Cut text to max_length at a word boundary and mark the cut with an ellipsis."""
    if len(text) <= max_length:
        return text
    cut = re.sub(r"\s+\S*$", "", text[:max_length])
    return cut + ELLIPSIS
