"""
Host-facing interfaces of the voice session.

VoiceHost is what the host application implements (navigation, prompt field,
actions, advisory toasts). StatusCallbacks carries the optional status hooks
the controller calls as its state changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Literal, Optional, Protocol

if TYPE_CHECKING:
    from .commands import Interpretation
    from .errors import VoiceError


MessageSeverity = Literal["success", "error", "info"]


class VoiceHost(Protocol):
    def navigate(self, view_id: str) -> None: ...

    def set_prompt(self, text: str) -> None: ...

    def execute_action(self, action: str, payload: Optional[Dict[str, Any]] = None) -> None: ...

    def show_message(self, text: str, severity: MessageSeverity = "info") -> None: ...


def _ignore(*_args: Any) -> None:
    return None


@dataclass
class StatusCallbacks:
    """Status hooks; every hook is optional."""

    transcript_updated: Callable[[str], None] = _ignore
    listening_changed: Callable[[bool], None] = _ignore
    speaking_changed: Callable[[bool], None] = _ignore
    error_occurred: Callable[[Optional["VoiceError"]], None] = _ignore
    volume_changed: Callable[[float], None] = _ignore
    command_handled: Callable[[str, "Interpretation"], None] = _ignore
