"""
Voice command interpretation.

classify() maps one final transcript to exactly one Interpretation by ordered
substring rules, first match wins:

1. navigation phrases
2. generation verbs ("generate" / "create" / "build")
3. conversion phrasing ("convert" + "to"/"from")
4. help phrases
5. anything longer than FALLBACK_PROMPT_MIN_CHARS becomes the prompt
6. otherwise: not understood

No fuzzy matching and no scoring. A navigation phrase always wins, so
"generate code" opens the code generator instead of generating "code".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from logging_setup import get_logger, Component
from .host import VoiceHost


logger = get_logger(Component.COMMAND_INTERPRETER)

# Utterances at or below this length are treated as unrecognized.
FALLBACK_PROMPT_MIN_CHARS = 10

GENERATE_CODE_ACTION = "generate-code"
CONVERT_CODE_ACTION = "convert-code"


class CommandKind(str, Enum):
    NAVIGATE = "navigate"
    GENERATE = "generate"
    CONVERT = "convert"
    HELP = "help"
    PROMPT = "prompt"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class NavigationTarget:
    phrases: tuple[str, ...]
    view_id: str
    message: str


NAVIGATION_TARGETS: tuple[NavigationTarget, ...] = (
    NavigationTarget(("go to dashboard", "show dashboard", "dashboard"), "dashboard", "Navigating to dashboard"),
    NavigationTarget(("code generator", "generate code", "generator"), "ai-code-generator", "Opening code generator"),
    NavigationTarget(("code converter", "convert code", "converter"), "code-converter", "Opening code converter"),
    NavigationTarget(("bug recorder", "record bug", "bugs"), "bug-recorder", "Opening bug recorder"),
    NavigationTarget(("snippet library", "my snippets", "snippets"), "code-snippet-library", "Opening snippet library"),
)

GENERATION_VERBS = ("generate", "create", "build")
_LEADING_VERB = re.compile(r"^(generate|create|build)\s*", re.IGNORECASE)

HELP_PHRASES = ("help", "what can you do")

HELP_MESSAGE = "\n".join((
    "I can help you with:",
    '- Generate code: Say "Generate a React component"',
    '- Convert code: Say "Convert JavaScript to Python"',
    '- Navigate: Say "Go to dashboard" or "Open code generator"',
    '- Debug: Say "Help me debug this error"',
    '- Explain: Say "Explain this code"',
))

UNRECOGNIZED_MESSAGE = "I didn't understand that command. Try saying 'help' to see what I can do."


@dataclass(frozen=True)
class Interpretation:
    """Result of classifying one voice command."""

    kind: CommandKind
    message: str
    view: Optional[str] = None
    prompt: Optional[str] = None
    action: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None

    @property
    def has_effect(self) -> bool:
        return self.kind not in (CommandKind.HELP, CommandKind.UNRECOGNIZED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "view": self.view,
            "prompt": self.prompt,
            "action": self.action,
            "payload": self.payload,
        }


def classify(text: str) -> Interpretation:
    """Classify a final transcript. Pure: no host side effects."""
    command = (text or "").strip()
    lowered = command.lower()

    for target in NAVIGATION_TARGETS:
        if any(phrase in lowered for phrase in target.phrases):
            return Interpretation(CommandKind.NAVIGATE, target.message, view=target.view_id)

    if any(verb in lowered for verb in GENERATION_VERBS):
        prompt = _LEADING_VERB.sub("", command, count=1)
        return Interpretation(
            CommandKind.GENERATE,
            f"Generating code for: {prompt}",
            prompt=prompt,
            action=GENERATE_CODE_ACTION,
            payload={"prompt": prompt},
        )

    if "convert" in lowered and ("to" in lowered or "from" in lowered):
        return Interpretation(
            CommandKind.CONVERT,
            "Processing code conversion request",
            action=CONVERT_CODE_ACTION,
            payload={"command": command},
        )

    if any(phrase in lowered for phrase in HELP_PHRASES):
        return Interpretation(CommandKind.HELP, HELP_MESSAGE)

    if len(command) > FALLBACK_PROMPT_MIN_CHARS:
        return Interpretation(
            CommandKind.PROMPT,
            f"I'll help you with: {command}. Please navigate to the appropriate tool or I can generate code for you.",
            prompt=command,
        )

    return Interpretation(CommandKind.UNRECOGNIZED, UNRECOGNIZED_MESSAGE)


class CommandInterpreter:
    """Classifies voice commands and applies their effect to the host."""

    def __init__(self, host: VoiceHost, session_id: Optional[str] = None):
        self.host = host
        self.logger = get_logger(Component.COMMAND_INTERPRETER, session_id=session_id)

    def dispatch(self, text: str) -> Interpretation:
        result = classify(text)
        self.logger.info(
            "Voice command classified",
            kind=result.kind.value,
            view=result.view,
            action=result.action,
            command_length=len(text or ""),
        )

        if result.kind is CommandKind.NAVIGATE:
            self.host.navigate(result.view)
        elif result.kind is CommandKind.GENERATE:
            self.host.set_prompt(result.prompt)
            self.host.execute_action(result.action, result.payload)
        elif result.kind is CommandKind.CONVERT:
            self.host.execute_action(result.action, result.payload)
        elif result.kind is CommandKind.PROMPT:
            self.host.set_prompt(result.prompt)

        return result
