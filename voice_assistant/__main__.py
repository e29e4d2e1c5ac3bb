"""
Entry point for running the voice assistant in a terminal.

Usage:
    python -m voice_assistant

Needs the `audio` extra (microphone, recognition and synthesis libraries) and,
for code actions, a running assistant API (python -m assistant_api).
"""
import asyncio

from logging_setup import setup_logging, get_logger, Component
from .config import get_config
from .console import ConsoleHost
from .local_platform import LocalSpeechPlatform
from .session import VoiceSessionController


async def main() -> None:
    config = get_config()
    platform = LocalSpeechPlatform()
    host = ConsoleHost(assistant_api_url=config.assistant_api_url)

    try:
        async with VoiceSessionController(platform, host, config=config, callbacks=host.callbacks()) as session:
            host.attach(session)
            if not session.is_supported:
                host.show_message(session.error_message or "Voice input unavailable", "error")
                return
            await host.run()
    finally:
        platform.close()


if __name__ == "__main__":
    # Initialize logging
    setup_logging(use_json=True)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        get_logger(Component.CONSOLE_HOST).info("Interrupted")
