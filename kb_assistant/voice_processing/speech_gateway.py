"""
Voice processing module for speech recognition and text-to-speech.

Both directions go through the hosted Azure speech service. Recognizers and
synthesizers are created for a single call and released when it returns.
"""

import asyncio
from typing import Any, Callable, Optional

import azure.cognitiveservices.speech as speechsdk
from loguru import logger

from ..config import AzureSettings


def build_speech_config(azure: AzureSettings) -> speechsdk.SpeechConfig:
    """Create the speech service configuration shared by every call."""
    speech_config = speechsdk.SpeechConfig(
        subscription=azure.speech_key.get_secret_value(),
        region=azure.speech_region,
    )
    if azure.speech_recognition_language:
        speech_config.speech_recognition_language = azure.speech_recognition_language
    if azure.speech_synthesis_voice_name:
        speech_config.speech_synthesis_voice_name = azure.speech_synthesis_voice_name
    return speech_config


def _default_microphone() -> speechsdk.audio.AudioConfig:
    return speechsdk.audio.AudioConfig(use_default_microphone=True)


class SpeechGateway:
    """Speech recognition and synthesis against the hosted speech service."""

    def __init__(
        self,
        azure: AzureSettings,
        exit_keyword: str = "exit",
        output: Callable[[str], None] = print,
        speech_config: Optional[speechsdk.SpeechConfig] = None,
        microphone_factory: Callable[[], Any] = _default_microphone,
        recognizer_factory: Callable[..., Any] = speechsdk.SpeechRecognizer,
        synthesizer_factory: Callable[..., Any] = speechsdk.SpeechSynthesizer,
    ):
        self.exit_keyword = exit_keyword
        self.output = output
        self.speech_config = speech_config or build_speech_config(azure)
        self._microphone_factory = microphone_factory
        self._recognizer_factory = recognizer_factory
        self._synthesizer_factory = synthesizer_factory
        self._audio_config = None

        logger.info(f"Speech gateway initialized for region {azure.speech_region}")

    @property
    def microphone_available(self) -> bool:
        return self._audio_config is not None

    def detect_microphone(self) -> bool:
        """
        Check for a default audio input device.

        Returns:
            True if voice input can be used, False to fall back to text only
        """
        try:
            self._audio_config = self._microphone_factory()
        except Exception as e:
            self._audio_config = None
            logger.info(f"No default microphone: {str(e)}")
            self.output("Microphone not detected or not available. Falling back to text input.")
            return False

        logger.info("Default microphone detected")
        return True

    async def recognize_once(self) -> str:
        """
        Recognize a single utterance from the microphone.

        Returns:
            The trimmed transcript, the exit keyword when that was spoken,
            or an empty string when nothing usable was recognized
        """
        if self._audio_config is None:
            logger.warning("Speech recognition requested without a microphone")
            return ""

        try:
            result = await asyncio.to_thread(self._recognize_blocking)
        except Exception as e:
            logger.error(f"Error during speech recognition: {str(e)}")
            self.output(f"Speech Recognition Canceled: {speechsdk.CancellationReason.Error.name}")
            self.output(f"Error Details: {str(e)}")
            return ""

        return self._interpret(result)

    def _recognize_blocking(self) -> Any:
        # The recognizer lives only for this call and is released on return or raise
        recognizer = self._recognizer_factory(
            speech_config=self.speech_config,
            audio_config=self._audio_config,
        )
        return recognizer.recognize_once_async().get()

    def _interpret(self, result: Any) -> str:
        if result.reason == speechsdk.ResultReason.RecognizedSpeech:
            text = (result.text or "").strip()
            logger.info(f"Recognized speech: {text}")
            if text.casefold() == self.exit_keyword.casefold():
                return self.exit_keyword
            return text

        if result.reason == speechsdk.ResultReason.NoMatch:
            logger.warning("Could not understand audio")
            self.output("No speech could be recognized.")
            return ""

        if result.reason == speechsdk.ResultReason.Canceled:
            cancellation = result.cancellation_details
            logger.warning(f"Speech recognition canceled: {cancellation.reason.name}")
            self.output(f"Speech Recognition Canceled: {cancellation.reason.name}")
            if cancellation.reason == speechsdk.CancellationReason.Error:
                logger.error(f"Speech recognition error: {cancellation.error_details}")
                self.output(f"Error Details: {cancellation.error_details}")
            return ""

        logger.warning(f"Unexpected recognition result: {result.reason}")
        return ""

    async def synthesize(self, text: str) -> None:
        """Speak text on the default speaker. Failures never reach the caller."""
        if not text:
            return

        try:
            result = await asyncio.to_thread(self._speak_blocking, text)
            if result.reason == speechsdk.ResultReason.Canceled:
                logger.debug(f"Speech synthesis canceled: {result.cancellation_details.reason}")
        except Exception as e:
            logger.debug(f"Speech synthesis failed: {str(e)}")

    def _speak_blocking(self, text: str) -> Any:
        # Same lifetime rule as _recognize_blocking
        synthesizer = self._synthesizer_factory(speech_config=self.speech_config)
        return synthesizer.speak_text_async(text).get()
