"""
Console interaction loop: read a question, ask the knowledge base, answer aloud.
"""

from enum import Enum
from typing import Callable, Optional

from loguru import logger

from ..qa_integration.client import KnowledgeBaseClient, RequestError
from ..voice_processing.speech_gateway import SpeechGateway


class LoopState(Enum):
    AWAITING_INPUT = "awaiting_input"
    DISPATCHING = "dispatching"
    TERMINATED = "terminated"


class InteractionLoop:
    """
    Drives one console session.

    Typed questions are sent as-is. An empty line switches to a single voice
    capture when a microphone was detected at startup, otherwise the prompt is
    shown again. Every answer is printed and then spoken before the next one.
    """

    def __init__(
        self,
        qa_client: KnowledgeBaseClient,
        speech: SpeechGateway,
        microphone_available: bool,
        exit_keyword: str = "exit",
        farewell: str = "Goodbye!",
        prompt: str = "Q: ",
        welcome: Optional[str] = None,
        read_line: Callable[[str], str] = input,
        write: Callable[[str], None] = print,
    ):
        self.qa_client = qa_client
        self.speech = speech
        self.microphone_available = microphone_available
        self.exit_keyword = exit_keyword
        self.farewell = farewell
        self.prompt = prompt
        self.welcome = welcome
        self.read_line = read_line
        self.write = write
        self.state = LoopState.AWAITING_INPUT

    def is_exit(self, question: str) -> bool:
        return question.strip().casefold() == self.exit_keyword.casefold()

    async def run(self) -> int:
        """Run until the exit command. Returns the process exit status."""
        if self.welcome:
            self.write(self.welcome)

        while self.state is not LoopState.TERMINATED:
            self.state = await self.step(self._read())

        logger.info("Session ended")
        return 0

    def _read(self) -> Optional[str]:
        try:
            return self.read_line(self.prompt)
        except (EOFError, KeyboardInterrupt):
            # Closed input ends the session like the exit command
            self.write("")
            return None

    async def step(self, line: Optional[str]) -> LoopState:
        """
        Handle one line of operator input.

        Args:
            line: Raw text read at the prompt, None when input was closed

        Returns:
            The state the loop moves to next
        """
        if line is None:
            question = self.exit_keyword
        else:
            question = line.strip()
            if not question:
                if not self.microphone_available:
                    return LoopState.AWAITING_INPUT
                question = await self._listen()

        self.state = LoopState.DISPATCHING
        return await self.dispatch(question)

    async def _listen(self) -> str:
        self.write("Listening for voice input...")
        question = await self.speech.recognize_once()
        if question:
            self.write(f"Recognized Speech: {question}")
        return question

    async def dispatch(self, question: str) -> LoopState:
        """Answer a question, or end the session on the exit keyword."""
        if self.is_exit(question):
            await self.speech.synthesize(self.farewell)
            self.write(self.farewell)
            return LoopState.TERMINATED

        if not question:
            return LoopState.AWAITING_INPUT

        try:
            answer_set = self.qa_client.get_answers(question)
        except RequestError as e:
            self.write(f"Request Error: {e.message}")
            return LoopState.AWAITING_INPUT

        if not answer_set:
            logger.info(f"No answers for question: {question}")

        for answer in answer_set:
            self.write(f"A: {answer.text}")
            await self.speech.synthesize(answer.text)

        return LoopState.AWAITING_INPUT
