"""
Command-line entry point for the Knowledge Base Voice Assistant.
"""

import asyncio
import sys
from pathlib import Path

from loguru import logger

from .config import ConfigurationError, Settings, get_settings
from .interaction.loop import InteractionLoop
from .qa_integration.client import KnowledgeBaseClient
from .voice_processing.speech_gateway import SpeechGateway


def setup_logging(settings: Settings):
    """Setup application logging."""
    logger.remove()  # Remove default handler

    # Console logging goes to stderr, stdout carries the conversation
    logger.add(
        sys.stderr,
        level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )

    # File logging
    Path(settings.LOGS_DIR).mkdir(parents=True, exist_ok=True)
    logger.add(
        f"{settings.LOGS_DIR}/kb_assistant.log",
        level=settings.LOG_FILE_LEVEL,
        rotation="1 day",
        retention="30 days",
        compression="gz",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
    )


def build_loop(settings: Settings, qa_client: KnowledgeBaseClient) -> InteractionLoop:
    """Wire the speech gateway and the question answering client into a session."""
    speech = SpeechGateway(settings.AZURE, exit_keyword=settings.EXIT_KEYWORD)
    microphone_available = speech.detect_microphone()

    return InteractionLoop(
        qa_client,
        speech,
        microphone_available,
        exit_keyword=settings.EXIT_KEYWORD,
        farewell=settings.FAREWELL_MESSAGE,
        prompt=settings.INPUT_PROMPT,
        welcome=settings.WELCOME_MESSAGE,
    )


def main() -> int:
    """Main application entry point."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    setup_logging(settings)
    logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION}")

    try:
        with KnowledgeBaseClient(settings.AZURE) as qa_client:
            return asyncio.run(build_loop(settings, qa_client).run())
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
