"""
Knowledge base question answering integration.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from azure.ai.language.questionanswering import QuestionAnsweringClient
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError
from loguru import logger

from ..config import AzureSettings, ProjectIdentity


class RequestError(Exception):
    """The question answering request failed in transport or in the service."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class Answer:
    """One knowledge base answer. Ranking is carried by position."""
    text: str
    confidence: Optional[float] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class AnswerSet:
    """Answers returned for a single question, in service order."""
    question: str
    answers: Tuple[Answer, ...] = ()

    def __iter__(self) -> Iterator[Answer]:
        return iter(self.answers)

    def __len__(self) -> int:
        return len(self.answers)

    def texts(self) -> List[str]:
        return [answer.text for answer in self.answers]


class KnowledgeBaseClient:
    """Queries a deployed question answering project."""

    def __init__(self, azure: AzureSettings, client: Optional[QuestionAnsweringClient] = None):
        self.project = azure.project
        self.client = client or QuestionAnsweringClient(
            azure.endpoint_url,
            AzureKeyCredential(azure.key.get_secret_value()),
        )
        logger.info(
            f"Question answering client ready for project {self.project.project_name} "
            f"({self.project.deployment_name})"
        )

    def get_answers(self, question: str, project: Optional[ProjectIdentity] = None) -> AnswerSet:
        """
        Ask the knowledge base a question.

        Args:
            question: Natural-language question
            project: Project and deployment to query, defaults to the configured one

        Returns:
            AnswerSet in the order the service ranked them, possibly empty

        Raises:
            RequestError: the request could not be completed
        """
        project = project or self.project

        try:
            response = self.client.get_answers(
                question=question,
                project_name=project.project_name,
                deployment_name=project.deployment_name,
            )
        except AzureError as e:
            message = getattr(e, 'message', None) or str(e)
            logger.error(f"Question answering request failed: {message}")
            raise RequestError(message) from e

        answers = tuple(
            Answer(text=item.answer or "", confidence=item.confidence, source=item.source)
            for item in (response.answers or [])
        )

        logger.debug(f"Received {len(answers)} answers for question: {question}")
        for rank, answer in enumerate(answers, start=1):
            logger.debug(f"Answer {rank}: confidence={answer.confidence} source={answer.source}")

        return AnswerSet(question=question, answers=answers)

    def close(self):
        """Release the underlying HTTP transport."""
        self.client.close()

    def __enter__(self) -> 'KnowledgeBaseClient':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
