"""
Console host for the voice session.

A terminal stand-in for the host application: navigation and prompt changes
are printed, code actions are forwarded to the assistant API and the reply is
spoken back through the session.

Keys (followed by Enter):
    <Enter>  toggle listening
    s        toggle speaking of the last response
    q        quit
"""

from __future__ import annotations

import asyncio
import sys
from typing import Any, Callable, Dict, Optional

from logging_setup import get_logger, Component
from .commands import CONVERT_CODE_ACTION, GENERATE_CODE_ACTION, CommandKind, Interpretation
from .errors import VoiceError
from .host import MessageSeverity, StatusCallbacks
from .relay_client import request_completion
from .session import VoiceSessionController


ASSISTANT_UNAVAILABLE_MESSAGE = "The assistant service is unavailable right now"

# action -> prompt set used by the assistant API
ACTION_TOOLS = {
    GENERATE_CODE_ACTION: "code_generator",
    CONVERT_CODE_ACTION: "code_converter",
}


class ConsoleHost:
    """VoiceHost that renders to a terminal."""

    def __init__(
        self,
        *,
        assistant_api_url: Optional[str] = None,
        out: Callable[[str], None] = print,
    ):
        self.assistant_api_url = assistant_api_url
        self.current_view = "dashboard"
        self.prompt = ""
        self.session: Optional[VoiceSessionController] = None
        self._out = out
        self._tasks: set[asyncio.Task] = set()
        self.logger = get_logger(Component.CONSOLE_HOST)

    def attach(self, session: VoiceSessionController) -> None:
        self.session = session
        self.logger = self.logger.with_session(session.session_id)

    def callbacks(self) -> StatusCallbacks:
        return StatusCallbacks(
            transcript_updated=self.show_transcript,
            listening_changed=lambda on: self._out("[mic] listening" if on else "[mic] idle"),
            error_occurred=self.show_error,
            command_handled=self.on_command_handled,
        )

    # --- VoiceHost ---

    def navigate(self, view_id: str) -> None:
        self.current_view = view_id
        self._out(f"[view] {view_id}")

    def set_prompt(self, text: str) -> None:
        self.prompt = text
        self._out(f"[prompt] {text}")

    def execute_action(self, action: str, payload: Optional[Dict[str, Any]] = None) -> None:
        self._spawn(self.run_action(action, payload or {}))

    def show_message(self, text: str, severity: MessageSeverity = "info") -> None:
        self._out(f"[{severity}] {text}")

    # --- Status hooks ---

    def show_transcript(self, text: str) -> None:
        if text:
            self._out(f"[heard] {text}")

    def show_error(self, error: Optional[VoiceError]) -> None:
        if error is not None:
            self._out(f"[error] {error.message}")

    def on_command_handled(self, command: str, result: Interpretation) -> None:
        self._out(f"[assistant] {result.message}")
        # Code actions answer through the assistant API instead.
        if result.kind in (CommandKind.GENERATE, CommandKind.CONVERT):
            return
        if self.session is not None:
            self._spawn(self.session.set_response(result.message))

    # --- Actions ---

    async def run_action(self, action: str, payload: Dict[str, Any]) -> Optional[str]:
        prompt = payload.get("prompt") or payload.get("command") or self.prompt
        if not prompt:
            self.logger.warning("Action without prompt ignored", action=action)
            return None

        session_id = self.session.session_id if self.session else None
        result = await request_completion(
            prompt,
            tool=ACTION_TOOLS.get(action),
            base_url=self.assistant_api_url,
            session_id=session_id,
        )
        if result is None:
            self.show_message(ASSISTANT_UNAVAILABLE_MESSAGE, "error")
            text = ASSISTANT_UNAVAILABLE_MESSAGE
        else:
            text = result.get("text", "")
            if result.get("error"):
                self.show_message(result["error"], "error")
            self._out(text)

        if self.session is not None:
            await self.session.set_response(text)
        return text

    # --- Main loop ---

    async def run(self) -> None:
        """Read key commands from stdin until 'q' or EOF."""
        if self.session is None:
            raise RuntimeError("ConsoleHost.run() requires an attached session")

        loop = asyncio.get_running_loop()
        self.session.start_listening()
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            key = line.strip().lower()
            if key == "q":
                break
            if key == "s":
                await self.session.toggle_speaking()
            else:
                self.session.toggle_listening()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
